"""
The ClusterGateway is the abstraction in charge of interacting with the
kubernetes cluster to create, look up, and delete objects.
"""

# Local
from .base import ClusterGatewayBase
from .dry_run_cluster_gateway import DryRunClusterGateway
from .openshift_cluster_gateway import OpenshiftClusterGateway
