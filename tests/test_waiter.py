"""
Tests for the ResolutionWaiter
"""

# Standard
import threading
import time

# Third Party
import pytest

# Local
from olm_installer.exceptions import (
    ClusterError,
    ConfigError,
    ConvergenceTimeoutError,
    InstallFailedError,
    ObjectNotFoundError,
    OperationCancelledError,
    ResolutionTimeoutError,
)
from olm_installer.managed_object import ObjectKey
from olm_installer.status import InstallState
from olm_installer.test_helpers.helpers import (
    TEST_NAMESPACE,
    TEST_PACKAGE,
    FailOnce,
    MockClusterGateway,
    OlmSimulator,
    csv_name,
    library_config,
    make_csv,
    make_subscription,
)
from olm_installer.waiter import ResolutionWaiter

## Helpers #####################################################################

SUB_KEY = ObjectKey(TEST_NAMESPACE, TEST_PACKAGE)
CSV_KEY = ObjectKey(TEST_NAMESPACE, csv_name())
POLL = 0.02


def make_waiter(gateway, timeout=0.3, **kwargs):
    return ResolutionWaiter(
        gateway,
        resolution_timeout=timeout,
        resolution_poll_interval=POLL,
        convergence_timeout=timeout,
        convergence_poll_interval=POLL,
        **kwargs,
    )


## Config ######################################################################


def test_defaults_from_config():
    """Make sure the durations are parsed from the library config"""
    with library_config(
        resolution={"timeout": "2m", "poll_interval": "3s"},
        convergence={"timeout": "1h", "poll_interval": "0.5s"},
    ):
        waiter = ResolutionWaiter(MockClusterGateway())
    assert waiter.resolution_timeout == 120
    assert waiter.resolution_poll_interval == 3
    assert waiter.convergence_timeout == 3600
    assert waiter.convergence_poll_interval == 0.5
    assert waiter.failure_phases == {"Failed"}


def test_invalid_duration_in_config():
    with library_config(resolution={"timeout": "forever"}):
        with pytest.raises(ConfigError):
            ResolutionWaiter(MockClusterGateway())


## resolve #####################################################################


def test_resolve_already_resolved():
    gateway = MockClusterGateway(
        resources=[make_subscription(current_csv=csv_name())]
    )
    assert make_waiter(gateway).resolve(SUB_KEY) == CSV_KEY
    assert gateway.get.call_count == 1


def test_resolve_after_delay():
    """Make sure the waiter keeps polling until the Subscription resolves"""
    gateway = MockClusterGateway()
    simulator = OlmSimulator(gateway, delay=0.05)
    gateway.create([make_subscription()])
    try:
        assert make_waiter(gateway, timeout=2).resolve(SUB_KEY) == CSV_KEY
    finally:
        simulator.stop()
    assert gateway.get.call_count > 1


def test_resolve_timeout_carries_state():
    """Make sure a Subscription that never resolves times out with its last
    state
    """
    gateway = MockClusterGateway(resources=[make_subscription(state="UpgradePending")])
    with pytest.raises(ResolutionTimeoutError) as exc_info:
        make_waiter(gateway, timeout=0.1).resolve(SUB_KEY)
    assert exc_info.value.last_observed == "UpgradePending"


def test_resolve_missing_subscription():
    with pytest.raises(ObjectNotFoundError):
        make_waiter(MockClusterGateway()).resolve(SUB_KEY)


def test_resolve_transport_error_propagates():
    gateway = MockClusterGateway(get_fail=ClusterError("no route to host"))
    with pytest.raises(ClusterError):
        make_waiter(gateway).resolve(SUB_KEY)


def test_lookup_single_fetch():
    """Make sure lookup never polls"""
    gateway = MockClusterGateway(resources=[make_subscription()])
    assert make_waiter(gateway).lookup(SUB_KEY) is None
    assert gateway.get.call_count == 1


## await_convergence ###########################################################


def test_convergence_succeeded():
    gateway = MockClusterGateway(resources=[make_csv(phase="Succeeded")])
    csv = make_waiter(gateway).await_convergence(CSV_KEY)
    assert csv["status"]["phase"] == "Succeeded"


def test_convergence_csv_appears_late():
    """Make sure a CSV that doesn't exist yet is treated as pending"""
    gateway = MockClusterGateway()
    put_csv = gateway._put  # pylint: disable=protected-access
    timer = threading.Timer(0.05, lambda: put_csv(make_csv(phase="Succeeded")))
    timer.start()
    try:
        make_waiter(gateway).await_convergence(CSV_KEY)
    finally:
        timer.cancel()


def test_convergence_missing_csv_without_wait():
    """Make sure a missing CSV is reported at once when not waiting for it"""
    gateway = MockClusterGateway()
    with pytest.raises(ObjectNotFoundError):
        make_waiter(gateway).await_convergence(CSV_KEY, wait_for_creation=False)
    assert gateway.get.call_count == 1


def test_convergence_failed_phase_is_immediate():
    """Make sure a failure phase ends the wait without waiting out the
    timeout
    """
    gateway = MockClusterGateway(
        resources=[make_csv(phase="Failed", message="install strategy failed")]
    )
    start = time.monotonic()
    with pytest.raises(InstallFailedError, match="install strategy failed") as exc_info:
        make_waiter(gateway, timeout=5).await_convergence(CSV_KEY)
    assert exc_info.value.phase == "Failed"
    assert time.monotonic() - start < 1


def test_convergence_custom_failure_phase():
    gateway = MockClusterGateway(resources=[make_csv(phase="Unknown")])
    with pytest.raises(InstallFailedError) as exc_info:
        make_waiter(gateway, failure_phases=["Unknown"]).await_convergence(CSV_KEY)
    assert exc_info.value.phase == "Unknown"


def test_convergence_timeout_bounded():
    """Make sure a CSV that never succeeds times out with its last phase and
    the wait doesn't overrun the deadline by more than one poll interval
    """
    gateway = MockClusterGateway(resources=[make_csv(phase="Installing")])
    timeout = 0.2
    start = time.monotonic()
    with pytest.raises(ConvergenceTimeoutError) as exc_info:
        make_waiter(gateway, timeout=timeout).await_convergence(CSV_KEY)
    elapsed = time.monotonic() - start
    assert exc_info.value.last_phase == "Installing"
    # Allow some scheduling slack on top of the one interval
    assert timeout <= elapsed < timeout + POLL + 0.2


def test_convergence_interval_longer_than_timeout():
    """Make sure a long poll interval is cut short by the deadline"""
    gateway = MockClusterGateway(resources=[make_csv(phase="Installing")])
    waiter = ResolutionWaiter(
        gateway, convergence_timeout=0.1, convergence_poll_interval=10
    )
    start = time.monotonic()
    with pytest.raises(ConvergenceTimeoutError):
        waiter.await_convergence(CSV_KEY)
    assert time.monotonic() - start < 1


def test_convergence_transient_error_propagates():
    """Make sure a hard error mid-poll is raised rather than retried"""
    gateway = MockClusterGateway(
        resources=[make_csv(phase="Installing")],
        get_fail=FailOnce(ClusterError, fail_number=2),
    )
    with pytest.raises(ClusterError):
        make_waiter(gateway).await_convergence(CSV_KEY)


## cancellation ################################################################


def test_cancel_before_start(cancel_event):
    gateway = MockClusterGateway(resources=[make_csv(phase="Succeeded")])
    cancel_event.set()
    with pytest.raises(OperationCancelledError):
        make_waiter(gateway).await_convergence(CSV_KEY, cancel_event)
    gateway.get.assert_not_called()


def test_cancel_interrupts_wait(cancel_event):
    """Make sure setting the event ends a long wait promptly"""
    gateway = MockClusterGateway(resources=[make_csv(phase="Installing")])
    waiter = ResolutionWaiter(
        gateway, convergence_timeout=30, convergence_poll_interval=10
    )
    threading.Timer(0.05, cancel_event.set).start()
    start = time.monotonic()
    with pytest.raises(OperationCancelledError):
        waiter.await_convergence(CSV_KEY, cancel_event)
    assert time.monotonic() - start < 1


## resolve_and_await ###########################################################


def test_resolve_and_await_states():
    """Make sure every state transition is reported in order"""
    gateway = MockClusterGateway()
    simulator = OlmSimulator(gateway, delay=0.02)
    gateway.create([make_subscription()])
    states = []
    try:
        csv_key = make_waiter(gateway, timeout=2).resolve_and_await(
            SUB_KEY, on_state=lambda key, state: states.append((key, state))
        )
    finally:
        simulator.stop()
    assert csv_key == CSV_KEY
    assert states == [
        (SUB_KEY, InstallState.RESOLUTION_PENDING),
        (SUB_KEY, InstallState.CONVERGENCE_PENDING),
        (SUB_KEY, InstallState.SUCCEEDED),
    ]


@pytest.mark.parametrize(
    ["simulator_kwargs", "error_type", "final_state"],
    [
        ({"resolve": False}, ResolutionTimeoutError, InstallState.TIMED_OUT),
        (
            {"phases": ["Pending", "Installing"]},
            ConvergenceTimeoutError,
            InstallState.TIMED_OUT,
        ),
        ({"phases": ["Pending", "Failed"]}, InstallFailedError, InstallState.FAILED),
    ],
)
def test_resolve_and_await_failures(simulator_kwargs, error_type, final_state):
    """Make sure the two phases fail independently and report the final state"""
    gateway = MockClusterGateway()
    OlmSimulator(gateway, **simulator_kwargs)
    gateway.create([make_subscription()])
    states = []
    with pytest.raises(error_type):
        make_waiter(gateway, timeout=0.1).resolve_and_await(
            SUB_KEY, on_state=lambda _, state: states.append(state)
        )
    assert states[-1] == final_state
