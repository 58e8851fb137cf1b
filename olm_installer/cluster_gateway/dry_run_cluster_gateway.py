"""
The DryRunClusterGateway implements the ClusterGateway interface but does not
actually interact with the cluster and instead holds the state of the cluster in
a local map.
"""

# Standard
from datetime import datetime
from threading import RLock
from typing import Callable, List, Optional, Tuple
import copy
import uuid

# First Party
import alog

# Local
from ..exceptions import ObjectNotFoundError
from .base import ClusterGatewayBase

log = alog.use_channel("DRY-RUN")

# Type definition for the callbacks invoked on create and delete
DRY_RUN_CALLBACK = Callable[[dict], None]  # pylint: disable=invalid-name


class DryRunClusterGateway(ClusterGatewayBase):
    """
    Cluster gateway which doesn't actually touch a cluster!
    """

    def __init__(self, resources: Optional[List[dict]] = None):
        """Construct with an optional set of objects already in the "cluster"

        Args:
            resources:  Optional[List[dict]]
                Objects to seed the in-memory cluster with. Registered create
                callbacks are not called for these.
        """
        self._cluster_content = {}
        self._lock = RLock()

        # Dicts of registered create and delete callbacks
        self._watches = {}
        self._finalizers = {}

        for resource in resources or []:
            self._put(resource)

    ## Interface ###############################################################

    def create(self, resource_definitions: List[dict]):
        log.info("DRY RUN create")
        for resource in resource_definitions:
            api_version, kind, name, namespace = self._get_resource_identifiers(
                resource
            )
            if self._lookup(kind, name, namespace, api_version) is not None:
                log.info("%s [%s/%s] already exists", kind, namespace, name)
                continue

            created = self._put(resource)
            for key, callback in self._get_registered_callbacks(
                self._watches, api_version, kind, namespace, name
            ):
                log.debug2("Calling registered watch [%s] for [%s]", callback, key)
                callback(copy.deepcopy(created))

    def delete(self, resource_definitions: List[dict]):
        log.info("DRY RUN delete")
        for resource in resource_definitions:
            api_version, kind, name, namespace = self._get_resource_identifiers(
                resource
            )
            with self._lock:
                current = self._lookup(kind, name, namespace, api_version)
                if current is None:
                    log.debug2("[%s/%s] already absent from %s", kind, name, namespace)
                    continue
                self._delete_key(namespace, kind, current["apiVersion"], name)

            current["metadata"]["deletionTimestamp"] = datetime.now().strftime(
                "%Y-%m-%dT%H:%M:%SZ"
            )
            for key, callback in self._get_registered_callbacks(
                self._finalizers, api_version, kind, namespace, name
            ):
                log.debug2("Calling registered finalizer [%s] for [%s]", callback, key)
                callback(current)

    def get(self, kind, name, namespace=None, api_version=None):
        log.debug("DRY RUN get of [%s/%s] in [%s]", kind, name, namespace)
        content = self._lookup(kind, name, namespace, api_version)
        if content is None:
            raise ObjectNotFoundError(
                f"{kind} [{namespace}/{name}] not found",
                kind=kind,
                name=name,
                namespace=namespace,
            )
        return content

    def list(self, kind, namespace=None, api_version=None, label_selector=None):
        log.debug("DRY RUN list of [%s] in [%s]", kind, namespace)
        selector = _parse_label_selector(label_selector)
        matches = []
        with self._lock:
            namespaces = (
                [namespace] if namespace is not None else list(self._cluster_content)
            )
            for list_namespace in namespaces:
                kind_entries = self._cluster_content.get(list_namespace, {}).get(
                    kind, {}
                )
                for api_ver, entries in kind_entries.items():
                    if api_version is not None and api_ver != api_version:
                        continue
                    for resource in entries.values():
                        labels = resource.get("metadata", {}).get("labels") or {}
                        if all(check(labels) for check in selector):
                            matches.append(copy.deepcopy(resource))
        return matches

    ## Dry Run Methods #########################################################

    def register_watch(
        self,
        api_version: str,
        kind: str,
        callback: DRY_RUN_CALLBACK,
        namespace: str = "",
        name: str = "",
    ):
        """Register a callback to call with the created object whenever an
        object of the given api_version/kind is created
        """
        watch_key = self._watch_key(api_version, kind, namespace, name)
        log.debug("Registering watch for %s", watch_key)
        self._watches.setdefault(watch_key, []).append(callback)

    def register_finalizer(
        self,
        api_version: str,
        kind: str,
        callback: DRY_RUN_CALLBACK,
        namespace: str = "",
        name: str = "",
    ):
        """Register a callback to call with the removed object whenever an
        object of the given api_version/kind is deleted
        """
        watch_key = self._watch_key(api_version, kind, namespace, name)
        log.debug("Registering finalizer for %s", watch_key)
        self._finalizers.setdefault(watch_key, []).append(callback)

    def set_status(
        self,
        kind: str,
        name: str,
        namespace: Optional[str],
        status: dict,
        api_version: Optional[str] = None,
    ) -> bool:
        """Overwrite the status of an object in the "cluster" the way a
        controller would. Returns False if the object is not present.
        """
        log.debug2(
            "DRY RUN set_status of [%s/%s] in %s: %s", kind, name, namespace, status
        )
        with self._lock:
            current = self._lookup(kind, name, namespace, api_version, copy_out=False)
            if current is None:
                log.debug("Did not find [%s/%s] in %s", kind, name, namespace)
                return False
            current["status"] = copy.deepcopy(status)
            return True

    ## Implementation Details ##################################################

    def _put(self, resource: dict) -> dict:
        api_version, kind, name, namespace = self._get_resource_identifiers(resource)
        log.debug("DRY RUN put [%s/%s/%s/%s]", namespace, kind, api_version, name)
        stored = copy.deepcopy(resource)
        metadata = stored.setdefault("metadata", {})
        metadata.setdefault("creationTimestamp", datetime.now().isoformat())
        metadata.setdefault("uid", str(uuid.uuid4()))
        with self._lock:
            self._cluster_content.setdefault(namespace, {}).setdefault(
                kind, {}
            ).setdefault(api_version, {})[name] = stored
        return stored

    def _lookup(self, kind, name, namespace, api_version, copy_out=True):
        with self._lock:
            matches = [
                entries[name]
                for api_ver, entries in self._cluster_content.get(namespace, {})
                .get(kind, {})
                .items()
                if name in entries and (api_version is None or api_ver == api_version)
            ]
            log.debug3(
                "Found %d matches for [%s/%s] in %s",
                len(matches),
                kind,
                name,
                namespace,
            )
            if len(matches) != 1:
                return None
            return copy.deepcopy(matches[0]) if copy_out else matches[0]

    def _delete_key(self, namespace, kind, api_version, name):
        del self._cluster_content[namespace][kind][api_version][name]
        if not self._cluster_content[namespace][kind][api_version]:
            del self._cluster_content[namespace][kind][api_version]
        if not self._cluster_content[namespace][kind]:
            del self._cluster_content[namespace][kind]
        if not self._cluster_content[namespace]:
            del self._cluster_content[namespace]

    @staticmethod
    def _watch_key(api_version="", kind="", namespace="", name=""):
        return ":".join([api_version or "", kind or "", namespace or "", name or ""])

    def _get_registered_callbacks(
        self,
        callback_map: dict,
        api_version: str,
        kind: str,
        namespace: str,
        name: str,
    ) -> List[Tuple[str, DRY_RUN_CALLBACK]]:
        """Get the callbacks registered for this object, its namespace, or its
        kind as a whole
        """
        candidate_keys = [
            self._watch_key(api_version, kind, namespace, name),
            self._watch_key(api_version, kind, namespace),
            self._watch_key(api_version, kind),
        ]
        return [
            (key, callback)
            for key, callback_list in list(callback_map.items())
            if key in candidate_keys
            for callback in callback_list
        ]


def _parse_label_selector(label_selector: Optional[str]) -> List[Callable]:
    """Parse the equality-based subset of the kubernetes label selector syntax
    (key=value, key==value, key!=value, key, !key) into a list of checks
    """
    checks = []
    for selector in (label_selector or "").split(","):
        selector = selector.strip()
        if not selector:
            continue
        if "!=" in selector:
            key, value = (part.strip() for part in selector.split("!=", 1))
            checks.append(lambda labels, k=key, v=value: labels.get(k) != v)
        elif "=" in selector:
            key, value = (
                part.strip() for part in selector.replace("==", "=").split("=", 1)
            )
            checks.append(lambda labels, k=key, v=value: labels.get(k) == v)
        elif selector.startswith("!"):
            checks.append(lambda labels, k=selector[1:].strip(): k not in labels)
        else:
            checks.append(lambda labels, k=selector: k in labels)
    return checks
