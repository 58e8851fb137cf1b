"""
This ClusterGateway is responsible for delegating cluster operations to the
openshift library. It is the one that will be used when talking to a live
cluster either from inside a pod or from a workstation.
"""
# Standard
from typing import List, Optional
import atexit
import os
import tempfile

# Third Party
from openshift.dynamic import DynamicClient
from openshift.dynamic.exceptions import (
    ConflictError,
    DynamicApiError,
    NotFoundError,
    ResourceNotFoundError,
    ResourceNotUniqueError,
)
from openshift.dynamic.resource import Resource
import kubernetes
import urllib3
import yaml

# First Party
import aconfig
import alog

# Local
from .. import config
from ..exceptions import (
    ClusterError,
    CreateFailedError,
    DeleteFailedError,
    ObjectNotFoundError,
    assert_cluster,
)
from .base import ClusterGatewayBase

log = alog.use_channel("OSFTG")

# Errors which indicate a failure to talk to the cluster rather than a
# meaningful response from it
_TRANSPORT_ERRORS = (
    DynamicApiError,
    kubernetes.client.exceptions.ApiException,
    urllib3.exceptions.HTTPError,
)


class OpenshiftClusterGateway(ClusterGatewayBase):
    """This ClusterGateway uses the openshift DynamicClient to interact with
    the cluster
    """

    def __init__(self, cluster_config: Optional[aconfig.Config] = None):
        """
        Args:
            cluster_config:  Optional[aconfig.Config]
                Connection parameters (see the "cluster" section of the library
                config). Defaults to the library config.
        """
        self._cluster_config = cluster_config or config.cluster

        # The client is set up lazily on first use
        self._client = None

    @property
    def client(self) -> DynamicClient:
        """Lazy property access to the client"""
        if self._client is None:
            try:
                self._client = self._setup_client()
            except (kubernetes.config.ConfigException, *_TRANSPORT_ERRORS) as err:
                log.warning("Failed to set up the cluster client: %s", err)
                raise ClusterError(f"Failed to connect to the cluster: {err}") from err
        return self._client

    ## Interface ###############################################################

    @alog.logged_function(log.debug)
    def create(self, resource_definitions: List[dict]):
        """Create each object in order, stopping at the first failure. Objects
        that already exist are left untouched, which makes a repeated create of
        the same manifest safe.
        """
        assert isinstance(
            resource_definitions, list
        ), "Programming Error: resource_definitions is not a list"
        for resource_definition in resource_definitions:
            api_version, kind, name, namespace = self._get_resource_identifiers(
                resource_definition
            )
            log.debug2("Creating [%s/%s/%s] in %s", api_version, kind, name, namespace)
            try:
                resource_handle = self._require_resource_handle(kind, api_version)
                resource_handle.create(body=resource_definition, namespace=namespace)
            except ConflictError:
                log.info("%s [%s/%s] already exists", kind, namespace, name)
            except (ClusterError, *_TRANSPORT_ERRORS) as err:
                log.warning(
                    "Failed to create [%s/%s] in %s: %s", kind, name, namespace, err
                )
                raise CreateFailedError(
                    f"Failed to create {kind} [{namespace}/{name}]: {err}"
                ) from err

    @alog.logged_function(log.debug)
    def delete(self, resource_definitions: List[dict]):
        """Delete each object, treating objects (or kinds) that are already
        gone as deleted
        """
        assert isinstance(
            resource_definitions, list
        ), "Programming Error: resource_definitions is not a list"
        for resource_definition in resource_definitions:
            api_version, kind, name, namespace = self._get_resource_identifiers(
                resource_definition
            )
            log.debug2(
                "Deleting [%s/%s/%s] from %s", api_version, kind, name, namespace
            )
            try:
                resource_handle = self.client.resources.get(
                    api_version=api_version, kind=kind
                )
                resource_handle.delete(name=name, namespace=namespace)
            except (ResourceNotFoundError, NotFoundError) as err:
                log.debug2(
                    "Valid error caught when deleting [%s/%s]: %s", kind, name, err
                )
            except (ClusterError, ResourceNotUniqueError, *_TRANSPORT_ERRORS) as err:
                log.warning(
                    "Failed to delete [%s/%s] in %s: %s", kind, name, namespace, err
                )
                raise DeleteFailedError(
                    f"Failed to delete {kind} [{namespace}/{name}]: {err}"
                ) from err

    def get(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> dict:
        # An unknown kind means the object can't exist (e.g. OLM's CRDs are not
        # installed), so it is reported the same as a missing object
        resources = self._get_resource_handle(kind, api_version)
        if not resources:
            raise ObjectNotFoundError(
                f"No resource kind [{api_version}/{kind}] served by the cluster",
                kind=kind,
                name=name,
                namespace=namespace,
            )

        try:
            resource = resources.get(name=name, namespace=namespace)
        except NotFoundError as err:
            log.debug(
                "No object named [%s/%s] found in namespace [%s]", kind, name, namespace
            )
            raise ObjectNotFoundError(
                f"{kind} [{namespace}/{name}] not found",
                kind=kind,
                name=name,
                namespace=namespace,
            ) from err
        except _TRANSPORT_ERRORS as err:
            log.debug("Failed to fetch [%s/%s] in [%s]: %s", kind, name, namespace, err)
            raise ClusterError(
                f"Failed to fetch {kind} [{namespace}/{name}]: {err}"
            ) from err

        return resource.to_dict()

    def list(
        self,
        kind: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
        label_selector: Optional[str] = None,
    ) -> List[dict]:
        resources = self._get_resource_handle(kind, api_version)
        if not resources:
            return []

        try:
            list_obj = resources.get(
                label_selector=label_selector,
                namespace=namespace,
            )
        except NotFoundError:
            log.debug(
                "No objects of kind [%s] found in namespace [%s]", kind, namespace
            )
            return []
        except _TRANSPORT_ERRORS as err:
            raise ClusterError(
                f"Failed to list {kind} in namespace [{namespace}]: {err}"
            ) from err

        return list_obj.to_dict().get("items", [])

    ## Implementation Helpers ##################################################

    def _setup_client(self) -> DynamicClient:
        """Create a DynamicClient from, in order of precedence, explicit
        connection parameters, raw kubeconfig content, a kubeconfig file, the
        in-cluster service account, or the default kubeconfig location
        """
        cluster_config = self._cluster_config
        if cluster_config.get("host"):
            log.debug2("Running with explicit connection parameters")
            return DynamicClient(
                kubernetes.client.ApiClient(self._explicit_configuration())
            )

        if cluster_config.get("kubeconfig_content"):
            log.debug2("Running with provided kubeconfig content")
            return DynamicClient(
                kubernetes.config.new_client_from_config_dict(
                    yaml.safe_load(cluster_config.kubeconfig_content),
                    context=cluster_config.get("context"),
                )
            )

        if cluster_config.get("kubeconfig"):
            log.debug2("Running with kubeconfig [%s]", cluster_config.kubeconfig)
            return DynamicClient(
                kubernetes.config.new_client_from_config(
                    config_file=cluster_config.kubeconfig,
                    context=cluster_config.get("context"),
                )
            )

        try:
            log.debug2("Running with in-cluster config")
            kube_config = kubernetes.client.Configuration()
            kubernetes.config.load_incluster_config(client_configuration=kube_config)
            return DynamicClient(kubernetes.client.ApiClient(kube_config))

        # Fall back to out-of-cluster config
        except kubernetes.config.ConfigException:
            log.debug2("Running with out-of-cluster config")
            return DynamicClient(
                kubernetes.config.new_client_from_config(
                    context=cluster_config.get("context")
                )
            )

    def _explicit_configuration(self) -> kubernetes.client.Configuration:
        """Build a client Configuration from explicit host and PEM content. The
        kubernetes client only reads certificates from files, so the content
        is written to temporary files which are removed at exit.
        """
        cluster_config = self._cluster_config
        kube_config = kubernetes.client.Configuration()
        kube_config.host = cluster_config.host
        if cluster_config.get("token"):
            kube_config.api_key = {"authorization": f"Bearer {cluster_config.token}"}
        if cluster_config.get("ca_certificate"):
            kube_config.ssl_ca_cert = _pem_file(cluster_config.ca_certificate)
        if cluster_config.get("client_certificate"):
            kube_config.cert_file = _pem_file(cluster_config.client_certificate)
        if cluster_config.get("client_key"):
            kube_config.key_file = _pem_file(cluster_config.client_key)
        return kube_config

    def _get_resource_handle(
        self, kind: str, api_version: Optional[str]
    ) -> Optional[Resource]:
        """Get the openshift resource handle for a specified kind and
        api_version
        """
        resources = None
        try:
            resources = self.client.resources.get(kind=kind, api_version=api_version)
        except (ResourceNotFoundError, ResourceNotUniqueError):
            log.debug(
                "No objects of kind [%s] found or multiple objects matching request found",
                kind,
            )
        except _TRANSPORT_ERRORS as err:
            log.debug("Failed to discover [%s/%s]: %s", api_version, kind, err)
            raise ClusterError(
                f"Failed to discover resource kind [{api_version}/{kind}]: {err}"
            ) from err
        return resources

    def _require_resource_handle(self, kind: str, api_version: Optional[str]):
        resources = self._get_resource_handle(kind, api_version)
        assert_cluster(
            resources is not None,
            f"Failed to fetch resource handle for {api_version}/{kind}",
        )
        return resources


def _pem_file(content: str) -> str:
    """Write PEM content to a private temporary file and return its path"""
    handle, path = tempfile.mkstemp(suffix=".pem")
    with os.fdopen(handle, "w", encoding="utf-8") as pem_file:
        pem_file.write(content)
    atexit.register(os.remove, path)
    return path
