"""
The ResolutionWaiter follows a Subscription to the ClusterServiceVersion (CSV)
it resolves to and waits for that CSV to finish installing.

Both legs are asynchronous in the cluster and are polled separately:

1. Resolution: the Subscription's status is populated by OLM with the name of
   the CSV it resolved to. Until then the Subscription points nowhere.
2. Convergence: the CSV moves through its lifecycle phases until it reaches
   Succeeded (or a failure phase).

Polls never sleep the thread unconditionally. Every wait is a wait on the
caller's cancel event, so setting the event aborts the poll at the next
iteration boundary.
"""

# Standard
from typing import Any, Callable, Iterable, Optional, Tuple
import threading
import time

# First Party
import alog

# Local
from . import config, constants
from .cluster_gateway import ClusterGatewayBase
from .exceptions import (
    ConvergenceTimeoutError,
    InstallFailedError,
    ObjectNotFoundError,
    OperationCancelledError,
    PollTimeoutError,
    ResolutionTimeoutError,
)
from .managed_object import ObjectKey
from .manifest import csv_reference
from .status import InstallState
from .utils import config_seconds, nested_get

log = alog.use_channel("WAITR")

# Type definition for the state transition callback
STATE_CALLBACK = Callable[[ObjectKey, InstallState], None]  # pylint: disable=invalid-name

# A single poll check returns (done, result, last_observed)
_POLL_CHECK = Callable[[], Tuple[bool, Any, Any]]  # pylint: disable=invalid-name


class ResolutionWaiter:
    """Resolve a Subscription to its CSV and wait for the CSV to succeed"""

    def __init__(  # pylint: disable=too-many-arguments
        self,
        gateway: ClusterGatewayBase,
        resolution_timeout: Optional[float] = None,
        resolution_poll_interval: Optional[float] = None,
        convergence_timeout: Optional[float] = None,
        convergence_poll_interval: Optional[float] = None,
        failure_phases: Optional[Iterable[str]] = None,
    ):
        """Construct with the gateway and the polling configuration. All
        durations are in seconds and default to the library config.

        Args:
            gateway:  ClusterGatewayBase
                The gateway used to fetch Subscriptions and CSVs
            resolution_timeout:  Optional[float]
                Max time to wait for a Subscription to report its CSV
            resolution_poll_interval:  Optional[float]
                Time between Subscription fetches
            convergence_timeout:  Optional[float]
                Max time to wait for a CSV to reach Succeeded
            convergence_poll_interval:  Optional[float]
                Time between CSV fetches
            failure_phases:  Optional[Iterable[str]]
                CSV phases which end the wait immediately as a failed install
        """
        self._gateway = gateway
        self.resolution_timeout = _or_config(
            resolution_timeout, config.resolution.timeout, "resolution.timeout"
        )
        self.resolution_poll_interval = _or_config(
            resolution_poll_interval,
            config.resolution.poll_interval,
            "resolution.poll_interval",
        )
        self.convergence_timeout = _or_config(
            convergence_timeout, config.convergence.timeout, "convergence.timeout"
        )
        self.convergence_poll_interval = _or_config(
            convergence_poll_interval,
            config.convergence.poll_interval,
            "convergence.poll_interval",
        )
        self.failure_phases = set(
            config.convergence.failure_phases
            if failure_phases is None
            else failure_phases
        )

    ## Public ##################################################################

    def resolve_and_await(
        self,
        subscription_key: ObjectKey,
        cancel_event: Optional[threading.Event] = None,
        on_state: Optional[STATE_CALLBACK] = None,
        wait_for_creation: bool = True,
    ) -> ObjectKey:
        """Resolve the Subscription's CSV and wait for it to succeed

        Args:
            subscription_key:  ObjectKey
                The key of the Subscription to follow
            cancel_event:  Optional[threading.Event]
                Event the caller may set to abort the wait
            on_state:  Optional[Callable[[ObjectKey, InstallState], None]]
                Called with each state transition of the Subscription
            wait_for_creation:  bool
                If False, a CSV that does not exist is reported immediately
                with ObjectNotFoundError instead of being waited for

        Returns:
            csv_key:  ObjectKey
                The key of the CSV that reached Succeeded
        """

        def report(state: InstallState):
            if on_state is not None:
                on_state(subscription_key, state)

        try:
            report(InstallState.RESOLUTION_PENDING)
            csv_key = self.resolve(subscription_key, cancel_event)
            report(InstallState.CONVERGENCE_PENDING)
            self.await_convergence(
                csv_key, cancel_event, wait_for_creation=wait_for_creation
            )
        except InstallFailedError:
            report(InstallState.FAILED)
            raise
        except PollTimeoutError:
            report(InstallState.TIMED_OUT)
            raise
        report(InstallState.SUCCEEDED)
        return csv_key

    def resolve(
        self,
        subscription_key: ObjectKey,
        cancel_event: Optional[threading.Event] = None,
    ) -> ObjectKey:
        """Poll the Subscription until it reports the CSV it resolved to

        Raises:
            ObjectNotFoundError: If the Subscription does not exist
            ResolutionTimeoutError: If no CSV is reported before the deadline
            OperationCancelledError: If the cancel event is set
        """
        log.debug("Waiting for subscription [%s] to resolve a CSV", subscription_key)

        def _check():
            subscription = self._get_subscription(subscription_key)
            csv_key = csv_reference(subscription, namespace=subscription_key.namespace)
            state = nested_get(subscription, constants.SUBSCRIPTION_STATE_FIELD)
            log.debug2(
                "Subscription [%s] state [%s] CSV [%s]",
                subscription_key,
                state,
                csv_key,
            )
            return csv_key is not None, csv_key, state

        def _on_timeout(last_state):
            return ResolutionTimeoutError(
                f"Subscription [{subscription_key}] did not resolve a CSV within "
                f"{self.resolution_timeout}s (last state: {last_state})",
                last_observed=last_state,
            )

        csv_key = self._poll(
            _check,
            self.resolution_timeout,
            self.resolution_poll_interval,
            cancel_event,
            _on_timeout,
        )
        log.debug("Subscription [%s] resolved to CSV [%s]", subscription_key, csv_key)
        return csv_key

    def lookup(self, subscription_key: ObjectKey) -> Optional[ObjectKey]:
        """Single, non-polling lookup of the CSV a Subscription points at.
        Returns None if the Subscription has not resolved a CSV.

        Raises:
            ObjectNotFoundError: If the Subscription does not exist
        """
        return csv_reference(
            self._get_subscription(subscription_key),
            namespace=subscription_key.namespace,
        )

    def await_convergence(
        self,
        csv_key: ObjectKey,
        cancel_event: Optional[threading.Event] = None,
        wait_for_creation: bool = True,
    ) -> dict:
        """Poll the CSV until its phase is Succeeded

        Returns:
            csv:  dict
                The content of the succeeded CSV

        Raises:
            InstallFailedError: If the CSV reaches a failure phase
            ConvergenceTimeoutError: If the CSV does not succeed before the
                deadline
            ObjectNotFoundError: If the CSV does not exist and
                wait_for_creation is False
            OperationCancelledError: If the cancel event is set
        """
        log.debug(
            "Waiting for CSV [%s] to reach [%s]",
            csv_key,
            constants.CSV_PHASE_SUCCEEDED,
        )

        def _check():
            try:
                csv = self._gateway.get(
                    kind=constants.CLUSTER_SERVICE_VERSION_KIND,
                    name=csv_key.name,
                    namespace=csv_key.namespace,
                    api_version=constants.OLM_API_VERSION,
                )
            except ObjectNotFoundError:
                if not wait_for_creation:
                    raise
                log.debug2("CSV [%s] does not exist yet", csv_key)
                return False, None, None

            phase = nested_get(csv, constants.CSV_PHASE_FIELD)
            log.debug2("CSV [%s] phase [%s]", csv_key, phase)
            if phase == constants.CSV_PHASE_SUCCEEDED:
                return True, csv, phase
            if phase in self.failure_phases:
                reason = nested_get(csv, "status.reason")
                message = nested_get(csv, "status.message")
                log.warning(
                    "CSV [%s] failed in phase [%s]: %s (%s)",
                    csv_key,
                    phase,
                    message,
                    reason,
                )
                raise InstallFailedError(
                    f"ClusterServiceVersion [{csv_key}] reached phase [{phase}]"
                    + (f": {message}" if message else ""),
                    phase=phase,
                )
            return False, None, phase

        def _on_timeout(last_phase):
            return ConvergenceTimeoutError(
                f"ClusterServiceVersion [{csv_key}] did not reach phase "
                f"[{constants.CSV_PHASE_SUCCEEDED}] within "
                f"{self.convergence_timeout}s (last phase: {last_phase})",
                last_observed=last_phase,
            )

        csv = self._poll(
            _check,
            self.convergence_timeout,
            self.convergence_poll_interval,
            cancel_event,
            _on_timeout,
        )
        log.debug("CSV [%s] succeeded", csv_key)
        return csv

    ## Implementation Details ##################################################

    def _get_subscription(self, subscription_key: ObjectKey) -> dict:
        return self._gateway.get(
            kind=constants.SUBSCRIPTION_KIND,
            name=subscription_key.name,
            namespace=subscription_key.namespace,
            api_version=constants.OLM_API_VERSION,
        )

    @staticmethod
    def _poll(
        check: _POLL_CHECK,
        timeout: float,
        poll_interval: float,
        cancel_event: Optional[threading.Event],
        on_timeout: Callable[[Any], PollTimeoutError],
    ) -> Any:
        """Run the check until it reports done, the deadline passes, or the
        cancel event is set. No wait extends past the deadline, so the loop
        returns at most one check after it.
        """
        cancel_event = cancel_event or threading.Event()
        deadline = time.monotonic() + timeout
        last_observed = None
        while True:
            if cancel_event.is_set():
                raise OperationCancelledError(
                    f"Cancelled while waiting (last observed: {last_observed})"
                )

            done, result, last_observed = check()
            if done:
                return result

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise on_timeout(last_observed)

            log.debug3("Polling again in %.2fs", min(poll_interval, remaining))
            if cancel_event.wait(min(poll_interval, remaining)):
                raise OperationCancelledError(
                    f"Cancelled while waiting (last observed: {last_observed})"
                )


def _or_config(value: Optional[float], config_value: str, config_key: str) -> float:
    if value is not None:
        return float(value)
    return config_seconds(config_value, config_key)
