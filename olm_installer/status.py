"""
This module holds the status aggregation used to decide whether the objects of
an install are actually present in the cluster.

Each object in a set is fetched from the cluster and lands in one of three
states:

* Found: the object exists
* NotFound: the cluster answered that the object does not exist
* Error: the cluster could not be asked (auth, network, malformed request, ...)

The aggregate verdict over the set is:

* installed: every object was found
* not installed: at least one object was not found and none errored
* errored: at least one object errored. This is never reported as "not
  installed".
"""

# Standard
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

# First Party
import alog

# Local
from . import config
from .cluster_gateway import ClusterGatewayBase
from .exceptions import ClusterError, ObjectNotFoundError
from .managed_object import ManagedObject, ObjectKey

log = alog.use_channel("STTUS")

## Public ######################################################################


class ObjectState(Enum):
    """The outcome of fetching a single object"""

    FOUND = "Found"
    NOT_FOUND = "NotFound"
    ERROR = "Error"


class InstallState(Enum):
    """The lifecycle of a single Subscription as driven by the installer"""

    REQUESTED = "Requested"
    CREATED = "Created"
    RESOLUTION_PENDING = "ResolutionPending"
    CONVERGENCE_PENDING = "ConvergencePending"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    TIMED_OUT = "TimedOut"


@dataclass
class ObjectStatus:
    """The fetched state of a single object"""

    resource: ManagedObject
    state: ObjectState
    content: Optional[dict] = None
    error: Optional[Exception] = None

    def to_dict(self) -> dict:
        out = {
            "apiVersion": self.resource.api_version,
            "kind": self.resource.kind,
            "namespace": self.resource.namespace,
            "name": self.resource.name,
            "state": self.state.value,
        }
        if self.error is not None:
            out["error"] = str(self.error)
        return out


@dataclass
class StatusView:
    """Aggregate view over a set of objects"""

    objects: List[ObjectStatus] = field(default_factory=list)
    install_states: Dict[ObjectKey, InstallState] = field(default_factory=dict)

    def has_installed_resources(self) -> Tuple[bool, Optional[Exception]]:
        """Determine whether every object in the view is present

        Returns:
            installed:  bool
                True only if every object was found
            error:  Optional[Exception]
                The first hard error hit while fetching, if any. A not-found
                object is not an error.
        """
        errors = self.errors
        if errors:
            error_messages = "; ".join(str(err) for err in errors)
            return False, ClusterError(
                f"Failed to fetch {len(errors)} object(s): {error_messages}"
            )
        if not self.objects:
            return False, None
        return all(obj.state is ObjectState.FOUND for obj in self.objects), None

    @property
    def errors(self) -> List[Exception]:
        return [obj.error for obj in self.objects if obj.state is ObjectState.ERROR]

    @property
    def found(self) -> List[ObjectStatus]:
        return [obj for obj in self.objects if obj.state is ObjectState.FOUND]

    @property
    def not_found(self) -> List[ObjectStatus]:
        return [obj for obj in self.objects if obj.state is ObjectState.NOT_FOUND]

    def get(self, key: ObjectKey, kind: Optional[str] = None) -> Optional[ObjectStatus]:
        """Look up the status of a single object by key (and kind if given)"""
        for obj in self.objects:
            if obj.resource.key == key and (kind is None or obj.resource.kind == kind):
                return obj
        return None

    def to_dict(self) -> dict:
        installed, error = self.has_installed_resources()
        out = {
            "installed": installed,
            "objects": [obj.to_dict() for obj in self.objects],
        }
        if self.install_states:
            out["installStates"] = {
                str(key): state.value for key, state in self.install_states.items()
            }
        if error is not None:
            out["error"] = str(error)
        return out


class StatusAggregator:
    """The StatusAggregator fetches the live form of each object in a set and
    records the outcome without letting any single failure stop the others
    """

    def __init__(
        self,
        gateway: ClusterGatewayBase,
        max_workers: Optional[int] = None,
    ):
        """
        Args:
            gateway:  ClusterGatewayBase
                The gateway used to fetch the objects
            max_workers:  Optional[int]
                Number of parallel fetches. Values <= 1 fetch sequentially.
                Defaults to the library config.
        """
        self._gateway = gateway
        self._max_workers = (
            config.status.max_workers if max_workers is None else max_workers
        )

    def aggregate(self, resources: List[dict]) -> StatusView:
        """Fetch every object and build the StatusView. The order of the
        objects in the view matches the input order.
        """
        managed = [ManagedObject(resource) for resource in resources]
        if self._max_workers > 1 and len(managed) > 1:
            log.debug2(
                "Fetching %d objects with %d threads", len(managed), self._max_workers
            )
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                statuses = list(pool.map(self._fetch, managed))
        else:
            statuses = [self._fetch(resource) for resource in managed]

        view = StatusView(objects=statuses)
        log.debug(
            "Status of %d objects: %d found, %d not found, %d errored",
            len(statuses),
            len(view.found),
            len(view.not_found),
            len(view.errors),
        )
        return view

    ## Implementation Details ##################################################

    def _fetch(self, resource: ManagedObject) -> ObjectStatus:
        try:
            content = self._gateway.get(
                kind=resource.kind,
                name=resource.name,
                namespace=resource.namespace,
                api_version=resource.api_version,
            )
        except ObjectNotFoundError:
            log.debug2("%s not found", resource)
            return ObjectStatus(resource=resource, state=ObjectState.NOT_FOUND)
        except Exception as err:  # pylint: disable=broad-except
            log.warning("Failed to fetch %s: %s", resource, err)
            return ObjectStatus(
                resource=resource,
                state=ObjectState.ERROR,
                error=ClusterError(f"{resource}: {err}"),
            )
        log.debug3("%s found", resource)
        return ObjectStatus(resource=resource, state=ObjectState.FOUND, content=content)
