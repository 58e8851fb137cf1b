"""
Helper objects to represent a kubernetes object and its identity
"""
# Standard
from typing import NamedTuple, Optional


class ObjectKey(NamedTuple):
    """The (namespace, name) pair used to correlate a Subscription with its
    ClusterServiceVersion and to look objects up in the cluster
    """

    namespace: Optional[str]
    name: str

    def __str__(self):
        return f"{self.namespace}/{self.name}" if self.namespace else self.name


class ManagedObject:
    """Basic struct to represent a kubernetes object handled by the installer"""

    def __init__(self, definition: dict):
        self.kind = definition.get("kind")
        self.metadata = definition.get("metadata", {})
        self.name = self.metadata.get("name")
        self.namespace = self.metadata.get("namespace")
        self.api_version = definition.get("apiVersion")
        self.definition = definition

        assert self.kind is not None, "No kind found"
        assert self.api_version is not None, "No apiVersion found"
        assert self.name is not None, "No name found"

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)

    def get(self, *args, **kwargs):
        """Pass get calls to the objects definition"""
        return self.definition.get(*args, **kwargs)

    def __str__(self):
        return f"{self.api_version}/{self.kind}/{self.key}"

    def __repr__(self):
        return str(self)

    def __hash__(self):
        """Hash only on the identity of the object in the cluster so the
        definition content doesn't affect map lookups
        """
        return hash((self.api_version, self.kind, self.namespace, self.name))

    def __eq__(self, other):
        return hash(self) == hash(other)
