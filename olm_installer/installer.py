"""
The OperatorInstaller is the top-level entrypoint for reconciling an operator
install request against a cluster running OLM.

Every verb rebuilds the manifest from the request, so the installer holds no
state between invocations. The cluster is the only source of truth.
"""

# Standard
from typing import List, Optional
import threading

# First Party
import alog

# Local
from . import constants
from .cluster_gateway import ClusterGatewayBase
from .exceptions import (
    ClusterError,
    CreateFailedError,
    DeleteFailedError,
    NotInstalledError,
    ObjectNotFoundError,
    OlmInstallerError,
    OperationCancelledError,
    ResolutionTimeoutError,
    assert_verified,
)
from .filters import filter_subscriptions
from .managed_object import ManagedObject, ObjectKey
from .manifest import InstallRequest, build_manifest
from .status import InstallState, StatusAggregator, StatusView
from .waiter import ResolutionWaiter

log = alog.use_channel("INSTL")

## OperatorInstaller ###########################################################


class OperatorInstaller:
    """The OperatorInstaller drives the install, status, uninstall, and update
    of a single operator through its Subscription and the
    ClusterServiceVersion the Subscription resolves to
    """

    def __init__(
        self,
        gateway: ClusterGatewayBase,
        waiter: Optional[ResolutionWaiter] = None,
        aggregator: Optional[StatusAggregator] = None,
    ):
        """Construct with the gateway used for all cluster access

        Args:
            gateway:  ClusterGatewayBase
                The gateway to the cluster
            waiter:  Optional[ResolutionWaiter]
                The waiter used to follow Subscriptions. Defaults to a waiter
                configured from the library config.
            aggregator:  Optional[StatusAggregator]
                The aggregator used to judge whether objects are present.
                Defaults to an aggregator configured from the library config.
        """
        self._gateway = gateway
        self._waiter = waiter or ResolutionWaiter(gateway)
        self._aggregator = aggregator or StatusAggregator(gateway)

    ## Public ##################################################################

    @staticmethod
    def build_manifest(request: InstallRequest) -> List[dict]:
        """Build the cluster objects implied by the request"""
        return build_manifest(request)

    @alog.logged_function(log.debug)
    def install(
        self,
        request: InstallRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> StatusView:
        """Create the Subscription for the request and wait for the operator
        to finish installing

        Args:
            request:  InstallRequest
                The operator to install
            cancel_event:  Optional[threading.Event]
                Event the caller may set to abort the install

        Returns:
            status:  StatusView
                The verified view over the installed objects

        Raises:
            CreateFailedError: If the cluster rejects the Subscription. Nothing
                is rolled back.
            InstallFailedError: If the CSV reaches a failure phase
            ResolutionTimeoutError: If the Subscription never resolves
            ConvergenceTimeoutError: If the CSV never succeeds
            OperationCancelledError: If the cancel event is set
        """
        _check_cancelled(cancel_event, "install", request)
        manifest = self.build_manifest(request)
        subscription_keys = _subscription_keys(manifest)
        install_states = {key: InstallState.REQUESTED for key in subscription_keys}

        log.info("Installing [%s] from channel [%s]", request.name, request.channel)
        try:
            self._gateway.create(manifest)
        except CreateFailedError:
            raise
        except ClusterError as err:
            raise CreateFailedError(
                f"Failed to create objects for [{request.name}]: {err}"
            ) from err
        for key in subscription_keys:
            install_states[key] = InstallState.CREATED

        csv_keys = []
        for key in subscription_keys:
            with alog.ContextTimer(log.debug2, "Resolve duration for %s: ", key):
                csv_keys.append(
                    self._follow_subscription(
                        key, cancel_event, on_state=install_states.__setitem__
                    )
                )

        status = self._aggregator.aggregate(manifest + _csv_definitions(csv_keys))
        status.install_states = install_states
        self.verify(status)
        log.info("Installed [%s] as %s", request.name, [str(key) for key in csv_keys])
        return status

    @alog.logged_function(log.debug)
    def read_status(
        self,
        request: InstallRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> StatusView:
        """Read the current state of a previously installed request without
        creating anything

        Raises:
            NotInstalledError: If the Subscription or its CSV is gone, or the
                Subscription never reports a CSV
            ClusterError: If the cluster could not be asked
        """
        _check_cancelled(cancel_event, "read status", request)
        manifest = self.build_manifest(request)
        install_states = {}
        csv_keys = []
        for key in _subscription_keys(manifest):
            try:
                csv_keys.append(
                    self._follow_subscription(
                        key,
                        cancel_event,
                        on_state=install_states.__setitem__,
                        wait_for_creation=False,
                    )
                )
            except (ObjectNotFoundError, ResolutionTimeoutError) as err:
                log.debug("Subscription [%s] is not installed: %s", key, err)
                raise NotInstalledError(
                    f"Operator [{request.name}] is not installed in "
                    f"[{request.namespace}]: {err}"
                ) from err

        status = self._aggregator.aggregate(manifest + _csv_definitions(csv_keys))
        status.install_states = install_states
        installed, error = status.has_installed_resources()
        if error is not None:
            raise error
        if not installed:
            raise NotInstalledError(
                f"Operator [{request.name}] is not installed in [{request.namespace}]"
            )
        return status

    @alog.logged_function(log.debug)
    def uninstall(
        self,
        request: InstallRequest,
        cancel_event: Optional[threading.Event] = None,
    ):
        """Delete the Subscription for the request along with the CSV it
        resolved to. A CSV that is already gone is skipped.

        Raises:
            NotInstalledError: If the Subscription does not exist. No delete
                is issued.
            DeleteFailedError: If the cluster rejects the delete
            ClusterError: If the cluster could not be asked
        """
        _check_cancelled(cancel_event, "uninstall", request)
        manifest = self.build_manifest(request)

        status = self._aggregator.aggregate(manifest)
        installed, error = status.has_installed_resources()
        if error is not None:
            raise error
        if not installed:
            raise NotInstalledError(
                f"Operator [{request.name}] is not installed in [{request.namespace}]"
            )

        csv_keys = []
        for key in _subscription_keys(manifest):
            try:
                csv_key = self._waiter.lookup(key)
            except ObjectNotFoundError:
                log.debug("Subscription [%s] removed during uninstall", key)
                continue
            if csv_key is None:
                log.debug("Subscription [%s] has no CSV reference", key)
                continue
            csv_keys.append(csv_key)

        csv_status = self._aggregator.aggregate(_csv_definitions(csv_keys))
        if csv_status.errors:
            _, error = csv_status.has_installed_resources()
            raise error
        for missing in csv_status.not_found:
            log.info("CSV [%s] already deleted", missing.resource.key)
        to_delete = manifest + [found.resource.definition for found in csv_status.found]

        _check_cancelled(cancel_event, "uninstall", request)
        log.info("Uninstalling [%s]: deleting %d objects", request.name, len(to_delete))
        try:
            self._gateway.delete(to_delete)
        except DeleteFailedError:
            raise
        except ClusterError as err:
            raise DeleteFailedError(
                f"Failed to delete objects for [{request.name}]: {err}"
            ) from err

    @staticmethod
    def verify(status: StatusView) -> StatusView:
        """Check that every object in the view is present

        Raises:
            VerificationError: If any object is missing
            ClusterError: If any object could not be fetched
        """
        installed, error = status.has_installed_resources()
        if error is not None:
            raise error
        assert_verified(
            installed,
            "Objects not present after install: "
            + ", ".join(str(obj.resource) for obj in status.not_found),
        )
        return status

    def update(
        self,
        current: InstallRequest,
        desired: InstallRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> StatusView:
        """Move an install from the current request to the desired one. An
        unchanged request only reads the status. Anything else is an uninstall
        of the current request followed by an install of the desired one.
        """
        if current == desired:
            log.debug("Request for [%s] unchanged", current.name)
            return self.read_status(current, cancel_event)

        log.info("Updating [%s] -> [%s]", current, desired)
        try:
            self.uninstall(current, cancel_event)
        except NotInstalledError:
            log.info("Current install of [%s] already absent", current.name)
        return self.install(desired, cancel_event)

    ## Implementation Details ##################################################

    def _follow_subscription(
        self,
        subscription_key: ObjectKey,
        cancel_event: Optional[threading.Event],
        on_state,
        wait_for_creation: bool = True,
    ) -> ObjectKey:
        """Run the waiter for one Subscription and attach the Subscription's
        identity to any error it raises
        """
        try:
            return self._waiter.resolve_and_await(
                subscription_key,
                cancel_event,
                on_state=on_state,
                wait_for_creation=wait_for_creation,
            )
        except OlmInstallerError as err:
            prefix = f"Subscription [{subscription_key}]"
            if not str(err).startswith(prefix):
                err.args = (f"{prefix}: {err}",) + err.args[1:]
            raise


def _subscription_keys(manifest: List[dict]) -> List[ObjectKey]:
    return [ManagedObject(sub).key for sub in filter_subscriptions(manifest)]


def _csv_definitions(csv_keys: List[ObjectKey]) -> List[dict]:
    """Minimal definitions used to look up CSVs by key"""
    return [
        {
            "apiVersion": constants.OLM_API_VERSION,
            "kind": constants.CLUSTER_SERVICE_VERSION_KIND,
            "metadata": {"name": key.name, "namespace": key.namespace},
        }
        for key in csv_keys
    ]


def _check_cancelled(
    cancel_event: Optional[threading.Event], verb: str, request: InstallRequest
):
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError(f"Cancelled {verb} of [{request.name}]")
