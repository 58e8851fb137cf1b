"""
Shared test config
"""
# Standard
from unittest import mock
import threading

# Third Party
import pytest

# Local
from olm_installer.test_helpers.helpers import (
    MockClusterGateway,
    OlmSimulator,
    configure_logging,
    library_config,
)

configure_logging()


@pytest.fixture(autouse=True)
def no_local_kubeconfig():
    """This fixture makes sure the tests run as if KUBECONFIG is not exported in
    the environment, even if it is
    """
    with mock.patch(
        "kubernetes.config.new_client_from_config", side_effect=RuntimeError
    ):
        yield


@pytest.fixture(autouse=True)
def fast_polling():
    """Keep every poll short so that timeout tests finish quickly"""
    with library_config(
        resolution={"timeout": "1s", "poll_interval": "0.05s"},
        convergence={"timeout": "1s", "poll_interval": "0.05s"},
    ):
        yield


@pytest.fixture
def gateway():
    return MockClusterGateway()


@pytest.fixture
def olm(gateway):
    simulator = OlmSimulator(gateway)
    yield simulator
    simulator.stop()


@pytest.fixture
def cancel_event():
    return threading.Event()
