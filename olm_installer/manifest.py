"""
The InstallRequest describes a single desired operator install and is turned
into the cluster objects it implies by build_manifest.
"""

# Standard
from dataclasses import dataclass, field
from typing import List, Optional

# First Party
import alog

# Local
from . import config, constants
from .exceptions import assert_config
from .managed_object import ObjectKey
from .utils import nested_get

log = alog.use_channel("MNFST")


def _default(key: str):
    """Field factory that reads the default from the library config at
    construction time so that config overrides are honored
    """
    return field(default_factory=lambda: getattr(config.defaults, key))


@dataclass(frozen=True)
class InstallRequest:
    """Identifies one desired operator installation. The name is used as both
    the Subscription name and the OLM package name.
    """

    name: str
    channel: str
    namespace: str = _default("namespace")
    source_catalog: str = _default("source_catalog")
    source_catalog_namespace: str = _default("source_catalog_namespace")
    approval_mode: str = _default("approval_mode")

    def __post_init__(self):
        assert_config(bool(self.name), "An install request must have a name")
        assert_config(
            bool(self.channel), f"Install request [{self.name}] must have a channel"
        )
        assert_config(
            bool(self.namespace),
            f"Install request [{self.name}] must have a namespace",
        )
        assert_config(
            self.approval_mode in constants.APPROVAL_MODES,
            f"Invalid approval mode [{self.approval_mode}] for [{self.name}]. "
            f"Must be one of {constants.APPROVAL_MODES}",
        )
        if self.approval_mode == constants.APPROVAL_MANUAL:
            log.warning(
                "Install request [%s] uses Manual approval. The install will not "
                "converge until the install plan is approved out of band",
                self.name,
            )

    @property
    def subscription_key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)

    @classmethod
    def from_dict(cls, values: dict) -> "InstallRequest":
        """Construct from a dict using either the python field names or the
        Subscription spec names (source, sourceNamespace, installPlanApproval)
        """
        aliases = {
            "source": "source_catalog",
            "sourceNamespace": "source_catalog_namespace",
            "source_namespace": "source_catalog_namespace",
            "installPlanApproval": "approval_mode",
            "install_plan_approval": "approval_mode",
        }
        kwargs = {aliases.get(key, key): val for key, val in values.items()}
        kwargs = {key: val for key, val in kwargs.items() if val is not None}
        return cls(**kwargs)


def build_subscription(request: InstallRequest) -> dict:
    """Build the Subscription manifest for an install request"""
    return {
        "apiVersion": constants.OLM_API_VERSION,
        "kind": constants.SUBSCRIPTION_KIND,
        "metadata": {
            "name": request.name,
            "namespace": request.namespace,
        },
        "spec": {
            "channel": request.channel,
            "name": request.name,
            "source": request.source_catalog,
            "sourceNamespace": request.source_catalog_namespace,
            "installPlanApproval": request.approval_mode,
        },
    }


def build_manifest(request: InstallRequest) -> List[dict]:
    """Build the full set of objects implied by an install request. This is a
    pure function: every call returns new, structurally equal dicts.
    """
    return [build_subscription(request)]


def csv_reference(
    subscription: dict, namespace: Optional[str] = None
) -> Optional[ObjectKey]:
    """Get the key of the ClusterServiceVersion a live Subscription points at,
    or None if the Subscription has not resolved yet
    """
    csv_name = nested_get(
        subscription, constants.SUBSCRIPTION_CURRENT_CSV_FIELD
    ) or nested_get(subscription, constants.SUBSCRIPTION_INSTALLED_CSV_FIELD)
    if not csv_name:
        return None
    namespace = namespace or subscription.get("metadata", {}).get("namespace")
    return ObjectKey(namespace, csv_name)
