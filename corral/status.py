"""Exit status of a child process or thread."""

import signal as signals
from dataclasses import dataclass


@dataclass(frozen=True)
class Status:
    """How a child finished: exited with a code, or terminated by a signal.

    Threads have no real exit code: a clean return is exit code 0, an
    exception is exit code 1 with the exception kept in `error`, and a
    forced kill is reported as SIGKILL.
    """

    exit_code: int | None = None
    signal: int | None = None
    error: BaseException | None = None

    @classmethod
    def from_exit_code(cls, exit_code: int | None) -> "Status":
        """Build from a Popen/psutil style code, negative meaning a signal."""
        if exit_code is not None and exit_code < 0:
            return cls(signal=-exit_code)
        return cls(exit_code=exit_code)

    @classmethod
    def killed(cls) -> "Status":
        return cls(signal=signals.SIGKILL)

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and self.signal is None

    @property
    def signaled(self) -> bool:
        return self.signal is not None

    def __str__(self):
        if self.signal is not None:
            try:
                name = signals.Signals(self.signal).name
            except ValueError:
                name = str(self.signal)
            return f"terminated by {name}"
        if self.error is not None:
            return f"failed with {self.error!r}"
        if self.exit_code is None:
            return "unknown"
        return f"exited with code {self.exit_code}"
