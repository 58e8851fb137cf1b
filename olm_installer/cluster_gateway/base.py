"""
This defines the base class for all ClusterGateway types.
"""

# Standard
from typing import List, Optional
import abc


class ClusterGatewayBase(abc.ABC):
    """
    Base class for cluster gateways which are responsible for carrying out the
    create, delete, and lookup operations the installer needs against the
    cluster. Implementations must not retry create or delete on their own.
    """

    @abc.abstractmethod
    def create(self, resource_definitions: List[dict]):
        """Create the given objects in the cluster, in order

        Args:
            resource_definitions:  list(dict)
                List of resource object dicts to create

        Raises:
            CreateFailedError: If the cluster rejects any of the objects. The
                objects before the failing one are left in place.
        """

    @abc.abstractmethod
    def delete(self, resource_definitions: List[dict]):
        """Delete the given objects from the cluster. Objects that are already
        absent are not an error.

        Args:
            resource_definitions:  list(dict)
                List of resource object dicts to delete

        Raises:
            DeleteFailedError: If the cluster rejects the deletion of any of
                the objects
        """

    @abc.abstractmethod
    def get(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> dict:
        """Fetch the current state of a single object by name

        Args:
            kind:  str
                The kind of the object to fetch
            name:  str
                The name of the object to fetch
            namespace:  Optional[str]
                The namespace to search for the object or None for cluster
                scoped kinds
            api_version:  Optional[str]
                The api_version of the resource kind to fetch

        Returns:
            current_state:  dict
                The dict representation of the object

        Raises:
            ObjectNotFoundError: If the object does not exist
            ClusterError: For any other failure to fetch the object
        """

    @abc.abstractmethod
    def list(
        self,
        kind: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
        label_selector: Optional[str] = None,
    ) -> List[dict]:
        """Fetch all objects of a kind, optionally filtered by label selector

        Args:
            kind:  str
                The kind of the objects to fetch
            namespace:  Optional[str]
                The namespace to search or None for all namespaces
            api_version:  Optional[str]
                The api_version of the resource kind to fetch
            label_selector:  Optional[str]
                Kubernetes label selector to filter the objects

        Returns:
            current_state:  List[dict]
                The matching objects, or an empty list if there are none

        Raises:
            ClusterError: If the objects can't be listed
        """

    ## Shared Helpers ##########################################################

    @staticmethod
    def _get_resource_identifiers(resource_definition: dict):
        """Helper for getting the required parts of a single resource definition

        Returns:
            api_version, kind, name, namespace
        """
        api_version = resource_definition.get("apiVersion")
        kind = resource_definition.get("kind")
        metadata = resource_definition.get("metadata", {})
        name = metadata.get("name")
        namespace = metadata.get("namespace")
        assert None not in [kind, name], "Cannot handle resource without kind or name"
        return api_version, kind, name, namespace
