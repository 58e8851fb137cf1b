"""
This module implements custom exceptions
"""

# Standard
from typing import Any, Optional

## Base Error ##################################################################


class OlmInstallerError(Exception):
    """Base class for all olm_installer exceptions"""

    def __init__(self, message: str, is_fatal_error: bool):
        """Construct with a flag indicating whether this is a fatal error. This
        will be a static property of all children.
        """
        super().__init__(message)
        self._is_fatal_error = is_fatal_error

    @property
    def is_fatal_error(self):
        """Property indicating whether or not retrying the same request is
        expected to give a different result
        """
        return self._is_fatal_error


## Fatal Errors ################################################################


class OlmInstallerFatalError(OlmInstallerError):
    """An OlmInstallerFatalError indicates an unexpected, and likely
    unrecoverable, failure while talking to the cluster or installing.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=True)


class ConfigError(OlmInstallerFatalError):
    """Exception caused by invalid user-provided configuration or install
    request values
    """


class ClusterError(OlmInstallerFatalError):
    """Exception raised when a cluster operation fails for any reason other
    than the object not being found (auth, network, malformed objects, ...)
    """


class CreateFailedError(OlmInstallerFatalError):
    """Exception raised when the cluster rejects the creation of one or more
    objects
    """


class DeleteFailedError(OlmInstallerFatalError):
    """Exception raised when the cluster rejects the deletion of one or more
    objects
    """


class InstallFailedError(OlmInstallerFatalError):
    """Exception raised when a ClusterServiceVersion reaches a terminal
    failure phase
    """

    def __init__(self, message: str = "", phase: Optional[str] = None):
        self.phase = phase
        super().__init__(message)


## Expected Errors #############################################################


class OlmInstallerExpectedError(OlmInstallerError):
    """An OlmInstallerExpectedError indicates a condition which the caller is
    expected to handle, usually by retrying or by treating the operator as
    absent.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=False)


class ObjectNotFoundError(OlmInstallerExpectedError):
    """Exception raised by a cluster gateway when the requested object does
    not exist
    """

    def __init__(
        self,
        message: str = "",
        kind: Optional[str] = None,
        name: Optional[str] = None,
        namespace: Optional[str] = None,
    ):
        self.kind = kind
        self.name = name
        self.namespace = namespace
        super().__init__(message)


class NotInstalledError(OlmInstallerExpectedError):
    """Exception raised when the objects implied by an install request are not
    (or no longer) present in the cluster
    """


class VerificationError(OlmInstallerExpectedError):
    """Exception raised when the cluster was reachable but the installed
    objects could not be verified
    """


class OperationCancelledError(OlmInstallerExpectedError):
    """Exception raised when the caller cancels an in-flight operation"""


class PollTimeoutError(OlmInstallerExpectedError):
    """Base for timeouts while polling the cluster. The last observed value is
    kept so that a caller can tell a slow install from a stuck one.
    """

    def __init__(self, message: str = "", last_observed: Any = None):
        self.last_observed = last_observed
        super().__init__(message)


class ResolutionTimeoutError(PollTimeoutError):
    """A Subscription never reported the ClusterServiceVersion it resolved to"""


class ConvergenceTimeoutError(PollTimeoutError):
    """A ClusterServiceVersion never reached the Succeeded phase"""

    @property
    def last_phase(self) -> Optional[str]:
        return self.last_observed


## Assertions ##################################################################


def assert_config(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a ConfigError. This should be
    used when validating install requests or library config values.
    """
    if not condition:
        raise ConfigError(message)


def assert_cluster(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a ClusterError. This should
    be used when an operation in the cluster (such as resolving an API kind)
    must succeed.
    """
    if not condition:
        raise ClusterError(message)


def assert_verified(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a VerificationError. This
    should be used when verifying the state of installed objects.
    """
    if not condition:
        raise VerificationError(message)
