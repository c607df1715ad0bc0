"""
Exceptions raised by corral.

Two families live here. `Error` and its subclasses report problems to the
caller of the container API. The control exceptions (`Interrupt`,
`Terminate`, `Restart`, `Reload`, `Kill`) are raised inside a child, or in
the supervising process when it receives a signal, to unwind whatever code
is running. They derive from `BaseException` so `except Exception` in worker
code does not swallow them.
"""

import signal


class Error(Exception):
    """Base class for corral errors."""


class SetupError(Error):
    """A container could not be started."""

    def __init__(self, container, message: str = "Could not create container!"):
        super().__init__(message)
        self.container = container


class SignalException(BaseException):
    """Base class for control exceptions tied to a POSIX signal."""

    signo: int = 0


class Interrupt(SignalException, KeyboardInterrupt):
    """Graceful stop request, SIGINT."""

    signo = signal.SIGINT


class Terminate(SignalException):
    """Stop request, SIGTERM."""

    signo = signal.SIGTERM


class Restart(SignalException):
    """Restart request, SIGHUP."""

    signo = signal.SIGHUP


class Reload(SignalException):
    """Keyed reload request, SIGUSR1."""

    signo = signal.SIGUSR1


class Kill(SignalException):
    """Forced stop of a thread. Processes get a real SIGKILL instead."""

    signo = signal.SIGKILL


SIGNAL_EXCEPTIONS = {
    exception.signo: exception for exception in (Interrupt, Terminate, Restart, Reload)
}
