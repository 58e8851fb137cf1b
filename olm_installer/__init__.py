"""
Package exports
"""

# Local
from . import config, constants, filters, status
from .cluster_gateway import (
    ClusterGatewayBase,
    DryRunClusterGateway,
    OpenshiftClusterGateway,
)
from .exceptions import (
    ClusterError,
    ConfigError,
    ConvergenceTimeoutError,
    CreateFailedError,
    DeleteFailedError,
    InstallFailedError,
    NotInstalledError,
    ObjectNotFoundError,
    OperationCancelledError,
    ResolutionTimeoutError,
    VerificationError,
    assert_cluster,
    assert_config,
    assert_verified,
)
from .installer import OperatorInstaller
from .managed_object import ManagedObject, ObjectKey
from .manifest import InstallRequest, build_manifest
from .status import InstallState, StatusAggregator, StatusView
from .waiter import ResolutionWaiter
