"""
This module holds common helper functions for making testing easy
"""

# Standard
from contextlib import contextmanager
from typing import Iterable, List, Optional
from unittest import mock
import copy
import inspect
import os
import threading

# First Party
import aconfig
import alog

# Local
from olm_installer import constants
from olm_installer.cluster_gateway import DryRunClusterGateway
from olm_installer.config import library_config as config_detail_dict
from olm_installer.exceptions import ClusterError, CreateFailedError, DeleteFailedError

log = alog.use_channel("TEST")


def configure_logging():
    alog.configure(
        os.environ.get("LOG_LEVEL", "off"),
        os.environ.get("LOG_FILTERS", ""),
        formatter="json"
        if os.environ.get("LOG_JSON", "").lower() == "true"
        else "pretty",
        thread_id=os.environ.get("LOG_THREAD_ID", "").lower() == "true",
    )


configure_logging()

TEST_NAMESPACE = "operators"
TEST_PACKAGE = "etcd-operator"
TEST_CHANNEL = "stable"
TEST_VERSION = "1.2.3"

# Phases a CSV moves through on a healthy install
INSTALL_PHASES = ("Pending", "InstallReady", "Installing", "Succeeded")


@contextmanager
def library_config(**config_overrides):
    """This context manager sets library config values temporarily and reverts
    them on completion. Nested sections are merged, so only the given keys of
    a section are changed.
    """
    # Override the configs and hang onto the old values
    old_vals = {}
    for key, val in config_overrides.items():
        if key in config_detail_dict:
            old_vals[key] = copy.deepcopy(config_detail_dict[key])
            if isinstance(val, dict) and isinstance(config_detail_dict[key], dict):
                val = _merged(config_detail_dict[key], val)
        config_detail_dict[key] = val

    # Yield to the context
    try:
        yield
    finally:
        # Revert to the old values
        for key in config_overrides:
            if key in old_vals:
                config_detail_dict[key] = old_vals[key]
            else:
                del config_detail_dict[key]


def _merged(base: dict, overrides: dict) -> aconfig.Config:
    merged = copy.deepcopy(dict(base))
    for key, val in overrides.items():
        if isinstance(val, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merged(merged[key], val)
        else:
            merged[key] = val
    return aconfig.Config(merged, override_env_vars=False)


## Manifests ###################################################################


def csv_name(package: str = TEST_PACKAGE, version: str = TEST_VERSION) -> str:
    return f"{package}.v{version}"


def make_subscription(
    name: str = TEST_PACKAGE,
    namespace: str = TEST_NAMESPACE,
    channel: str = TEST_CHANNEL,
    current_csv: Optional[str] = None,
    state: Optional[str] = None,
    **kwargs,
) -> dict:
    """Make a live-looking Subscription"""
    subscription = {
        "apiVersion": constants.OLM_API_VERSION,
        "kind": constants.SUBSCRIPTION_KIND,
        "metadata": {"name": name, "namespace": namespace},
        "spec": {
            "channel": channel,
            "name": name,
            "source": "operatorhubio-catalog",
            "sourceNamespace": "olm",
            "installPlanApproval": constants.APPROVAL_AUTOMATIC,
        },
    }
    status = {}
    if current_csv is not None:
        status["currentCSV"] = current_csv
    if state is not None:
        status["state"] = state
    if status:
        subscription["status"] = status
    subscription.update(kwargs)
    return subscription


def make_csv(
    name: str = csv_name(),
    namespace: str = TEST_NAMESPACE,
    phase: Optional[str] = None,
    **status,
) -> dict:
    """Make a live-looking ClusterServiceVersion"""
    csv = {
        "apiVersion": constants.OLM_API_VERSION,
        "kind": constants.CLUSTER_SERVICE_VERSION_KIND,
        "metadata": {"name": name, "namespace": namespace},
        "spec": {"displayName": name},
    }
    if phase is not None:
        status["phase"] = phase
    if status:
        csv["status"] = status
    return csv


## Failable Mocks ##############################################################


def get_failable_method(fail_flag, method, failure_exception=ClusterError):
    log.debug4(
        "Setting up failable mock of [%s] with fail flag: %s", str(method), fail_flag
    )

    def failable_method(*args, **kwargs):
        log.debug4(
            "Running failable mock of [%s] with fail flag: %s", str(method), fail_flag
        )
        if isinstance(fail_flag, Exception) or (
            inspect.isclass(fail_flag) and issubclass(fail_flag, Exception)
        ):
            log.debug4("Raising in failable mock")
            raise fail_flag
        if callable(fail_flag):
            log.debug4("Calling callable fail flag")
            res = fail_flag()
            if res is not None:
                return res
        elif fail_flag == "assert":
            log.debug4("Asserting in failable mock")
            raise AssertionError(f"You told me to fail {method}!")
        elif fail_flag:
            log.debug4("Raising %s", failure_exception)
            raise failure_exception(f"Mock failure of {method}")
        log.debug4("Passing through (%s, **%s)", args, kwargs)
        res = method(*args, **kwargs)
        log.debug4("Passthrough res: %s", res)
        return res

    return failable_method


class FailOnce:
    """Helper callable that will fail once on the N'th call"""

    def __init__(self, fail_val, fail_number=1):
        self.call_count = 0
        self.fail_number = fail_number
        self.fail_val = fail_val

    def __call__(self, *_, **__):
        self.call_count += 1
        if self.call_count == self.fail_number:
            log.debug("Failing on call %d with %s", self.call_count, self.fail_val)
            if isinstance(self.fail_val, type) and issubclass(self.fail_val, Exception):
                raise self.fail_val("Raising!")
            return self.fail_val
        log.debug("Not failing on call %d", self.call_count)
        return None


class MockClusterGateway(DryRunClusterGateway):
    """The MockClusterGateway wraps a standard DryRunClusterGateway and adds
    configuration options to simulate failures in each of its operations.
    Every operation is a mock.Mock so calls can be inspected.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        create_fail=False,
        delete_fail=False,
        get_fail=False,
        list_fail=False,
        auto_enable=True,
        resources=None,
    ):
        super().__init__(resources)
        self.create_fail = create_fail
        self.delete_fail = delete_fail
        self.get_fail = get_fail
        self.list_fail = list_fail

        # If auto-enabling, turn the mocks on now
        if auto_enable:
            self.enable_mocks()

    def enable_mocks(self):
        """Turn the mocks on"""
        self.create = mock.Mock(
            side_effect=get_failable_method(
                self.create_fail, super().create, CreateFailedError
            )
        )
        self.delete = mock.Mock(
            side_effect=get_failable_method(
                self.delete_fail, super().delete, DeleteFailedError
            )
        )
        self.get = mock.Mock(
            side_effect=get_failable_method(self.get_fail, super().get)
        )
        self.list = mock.Mock(
            side_effect=get_failable_method(self.list_fail, super().list)
        )

    def has_obj(self, kind, name, namespace=None, api_version=None) -> bool:
        return self._lookup(kind, name, namespace, api_version) is not None

    def deleted_objects(self) -> List[dict]:
        """All objects passed to delete, flattened across calls"""
        return [
            resource
            for call in self.delete.call_args_list
            for resource in (
                call.args[0] if call.args else call.kwargs["resource_definitions"]
            )
        ]


## OLM Simulation ##############################################################


class OlmSimulator:
    """The OlmSimulator stands in for the OLM controllers in a dry run cluster.
    When a Subscription is created it resolves the Subscription to a CSV,
    creates the CSV, and moves it through the given phases. With a delay, each
    step runs on a threading.Timer so the installer has to poll for it.

    The CSV is written straight into the cluster content, so it never shows
    up as a call to the gateway's create.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        gateway: DryRunClusterGateway,
        phases: Iterable[str] = INSTALL_PHASES,
        version: str = TEST_VERSION,
        resolve: bool = True,
        create_csv: bool = True,
        delay: float = 0,
    ):
        """
        Args:
            gateway:  DryRunClusterGateway
                The in-memory cluster to simulate OLM for
            phases:  Iterable[str]
                The phases the CSV moves through. The last one sticks.
            version:  str
                The version used to name the resolved CSV
            resolve:  bool
                If False, Subscriptions never report a CSV
            create_csv:  bool
                If False, Subscriptions report a CSV that never appears
            delay:  float
                Seconds between each simulated step
        """
        self.gateway = gateway
        self.phases = list(phases)
        self.version = version
        self.resolve = resolve
        self.create_csv = create_csv
        self.delay = delay
        self._timers = []
        self._lock = threading.Lock()

        gateway.register_watch(
            constants.OLM_API_VERSION,
            constants.SUBSCRIPTION_KIND,
            self._on_subscription_created,
        )
        gateway.register_finalizer(
            constants.OLM_API_VERSION,
            constants.SUBSCRIPTION_KIND,
            self._on_subscription_deleted,
        )

    def stop(self):
        """Cancel all pending steps"""
        with self._lock:
            for timer in self._timers:
                timer.cancel()
            self._timers = []

    ## Implementation Details ##################################################

    def _on_subscription_created(self, subscription: dict):
        name = subscription["metadata"]["name"]
        namespace = subscription["metadata"].get("namespace")
        package = subscription.get("spec", {}).get("name", name)
        resolved_csv = csv_name(package, self.version)

        if not self.resolve:
            log.debug("Leaving subscription [%s/%s] unresolved", namespace, name)
            self.gateway.set_status(
                constants.SUBSCRIPTION_KIND,
                name,
                namespace,
                {"state": "UpgradePending"},
                api_version=constants.OLM_API_VERSION,
            )
            return

        steps = [lambda: self._resolve(name, namespace, resolved_csv)]
        if self.create_csv and self.phases:
            steps.append(
                lambda: self.gateway._put(  # pylint: disable=protected-access
                    make_csv(resolved_csv, namespace, phase=self.phases[0])
                )
            )
            for phase in self.phases[1:]:
                steps.append(
                    lambda phase=phase: self.gateway.set_status(
                        constants.CLUSTER_SERVICE_VERSION_KIND,
                        resolved_csv,
                        namespace,
                        {"phase": phase},
                        api_version=constants.OLM_API_VERSION,
                    )
                )
        self._run(steps)

    def _on_subscription_deleted(self, subscription: dict):
        log.debug(
            "Subscription [%s] deleted, cancelling pending steps",
            subscription["metadata"]["name"],
        )
        self.stop()

    def _resolve(self, name: str, namespace: str, resolved_csv: str):
        self.gateway.set_status(
            constants.SUBSCRIPTION_KIND,
            name,
            namespace,
            {
                "state": "AtLatestKnown",
                "currentCSV": resolved_csv,
                "installedCSV": resolved_csv,
            },
            api_version=constants.OLM_API_VERSION,
        )

    def _run(self, steps: list):
        if not self.delay:
            for step in steps:
                step()
            return

        def _step(remaining):
            remaining[0]()
            if remaining[1:]:
                self._schedule(_step, remaining[1:])

        self._schedule(_step, steps)

    def _schedule(self, func, steps):
        timer = threading.Timer(self.delay, func, args=(steps,))
        timer.daemon = True
        with self._lock:
            self._timers.append(timer)
        timer.start()
