"""
Test the custom exceptions and assert functions
"""

# Third Party
import pytest

# Local
from olm_installer import exceptions


def test_assert_config_pass():
    """Make sure that no exception is thrown by assert_config when it passes"""
    exceptions.assert_config(True)


def test_assert_config_fail():
    """Make sure the right exception is thrown by assert_config when it fails"""
    exception_msg = "error message"
    with pytest.raises(exceptions.ConfigError, match=exception_msg):
        exceptions.assert_config(False, exception_msg)


def test_assert_cluster_fail():
    """Make sure the right exception is thrown by assert_cluster when it fails"""
    exception_msg = "error message"
    exceptions.assert_cluster(True)
    with pytest.raises(exceptions.ClusterError, match=exception_msg):
        exceptions.assert_cluster(False, exception_msg)


def test_assert_verified_fail():
    """Make sure the right exception is thrown by assert_verified when it
    fails
    """
    exception_msg = "error message"
    exceptions.assert_verified(True)
    with pytest.raises(exceptions.VerificationError, match=exception_msg):
        exceptions.assert_verified(False, exception_msg)


@pytest.mark.parametrize(
    "exc",
    [
        exceptions.ConfigError(),
        exceptions.ClusterError(),
        exceptions.CreateFailedError(),
        exceptions.DeleteFailedError(),
        exceptions.InstallFailedError(phase="Failed"),
    ],
)
def test_fatal_errors(exc):
    """Make sure the fatal errors are flagged as such"""
    assert exc.is_fatal_error
    assert isinstance(exc, exceptions.OlmInstallerFatalError)


@pytest.mark.parametrize(
    "exc",
    [
        exceptions.ObjectNotFoundError(),
        exceptions.NotInstalledError(),
        exceptions.VerificationError(),
        exceptions.OperationCancelledError(),
        exceptions.ResolutionTimeoutError(),
        exceptions.ConvergenceTimeoutError(),
    ],
)
def test_expected_errors(exc):
    """Make sure the expected errors are not flagged as fatal"""
    assert not exc.is_fatal_error
    assert isinstance(exc, exceptions.OlmInstallerExpectedError)


def test_install_failed_carries_phase():
    """Make sure the failure phase is kept on the error"""
    err = exceptions.InstallFailedError("boom", phase="Failed")
    assert err.phase == "Failed"
    assert str(err) == "boom"


def test_convergence_timeout_last_phase():
    """Make sure the convergence timeout exposes the last phase it saw"""
    err = exceptions.ConvergenceTimeoutError("slow", last_observed="Installing")
    assert err.last_phase == "Installing"
    assert isinstance(err, exceptions.PollTimeoutError)


def test_object_not_found_identity():
    """Make sure the identity of the missing object is kept"""
    err = exceptions.ObjectNotFoundError(
        "gone", kind="Subscription", name="foo", namespace="bar"
    )
    assert (err.kind, err.name, err.namespace) == ("Subscription", "foo", "bar")
