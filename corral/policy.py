"""
Policy hooks for container lifecycle events.

A container detects failures (timeouts, crashes) and asks its policy what to
do about them. Subclass `Policy` to log, alert or escalate differently
without touching the scheduler.
"""

import logging
import signal as signals

logger = logging.getLogger(__name__)


class Policy:
    """Default container policy: log, and kill children that time out."""

    def child_spawn(self, container, child, name: str, key=None, **options):
        """Called each time a child is started, including restarts."""

    def child_exit(self, container, child, status, name: str, key=None, **options):
        """Called each time a child exits."""

    def health_check_failed(self, container, child, age: float, timeout: float, **options):
        """Called when a ready child has been silent for longer than `timeout`."""
        logger.warning(f"Health check failed for {child}: silent for {age:.2f}s (timeout {timeout}s)")
        child.kill()

    def startup_failed(self, container, child, age: float, timeout: float, **options):
        """Called when a child did not become ready within `timeout`."""
        logger.warning(f"Startup failed for {child}: not ready after {age:.2f}s (timeout {timeout}s)")
        child.kill()

    def segfault(self, status) -> bool:
        return self.signal(status) == signals.SIGSEGV

    def abort(self, status) -> bool:
        return self.signal(status) == signals.SIGABRT

    def killed(self, status) -> bool:
        return self.signal(status) == signals.SIGKILL

    def success(self, status) -> bool:
        return bool(status is not None and status.success)

    def signal(self, status) -> int | None:
        """The signal that terminated the child, if any."""
        if status is None:
            return None
        return status.signal

    def exit_code(self, status) -> int | None:
        """The exit code, None if the child was terminated by a signal."""
        if status is None:
            return None
        return status.exit_code


DEFAULT_POLICY = Policy()
