"""
Cooperative scheduler for the children of a container.

Each child is awaited by one waiter: a generator that is suspended inside
`Group.wait_for` until the child's channel becomes readable or a broadcast
token arrives. The group multiplexes all the waiters over a single selector
keyed by the channels' read descriptors, so the supervising process never
needs more than one thread.

Resuming a waiter can run arbitrary callbacks, which may start a new child
(adding a waiter) or finish a waiter (removing it). Every loop over the
waiter table therefore works on a snapshot and re-checks membership before
each resume.
"""

import enum
import logging
import selectors
import time

from .channel import INCOMPLETE
from .clock import Clock
from .config import config
from .signals import trap

logger = logging.getLogger(__name__)


class Token(enum.Enum):
    """Values a waiter can be resumed with, besides channel readiness."""

    INTERRUPT = "interrupt"
    TERMINATE = "terminate"
    KILL = "kill"
    HEALTH_CHECK = "health_check"


class Group:
    """Manages the waiters of a group of running children."""

    def __init__(
        self,
        health_check_interval: float | None = None,
        graceful_timeout: float | None = None,
        reap_timeout: float | None = None,
        kill_interval: float | None = None,
    ):
        self.health_check_interval = (
            config.health_check_interval if health_check_interval is None else health_check_interval
        )
        self.graceful_timeout = config.graceful_timeout if graceful_timeout is None else graceful_timeout
        self.reap_timeout = config.reap_timeout if reap_timeout is None else reap_timeout
        self.kill_interval = config.kill_interval if kill_interval is None else kill_interval

        # Wait key (read descriptor) -> waiter generator:
        self.running: dict[int, object] = {}

        self._selector = selectors.DefaultSelector()
        self._current = None

    def __repr__(self):
        return f"<Group running={len(self.running)}>"

    @property
    def size(self) -> int:
        return len(self.running)

    @property
    def is_running(self) -> bool:
        return bool(self.running)

    def __contains__(self, child) -> bool:
        channel = child.channel
        return channel.input is not None and channel.fileno() in self.running

    def close(self):
        self._selector.close()

    # Waiters

    def start(self, waiter):
        """Run a new waiter generator until its first suspension.

        Exceptions raised by the waiter propagate to the caller.
        """
        self.resume(waiter)

    def resume(self, waiter, value=None):
        previous, self._current = self._current, waiter
        try:
            waiter.send(value)
        except StopIteration:
            pass
        finally:
            self._current = previous

    def wait_for(self, child, callback):
        """Wait for `child` to exit, passing each message to `callback`.

        This is a generator to be used with `yield from` inside a waiter.
        Broadcast tokens are forwarded to the child as signals; the
        health check token is passed to `callback` unchanged. Returns the
        child's exit status.
        """
        if self._current is None:
            raise RuntimeError("wait_for must run inside a waiter started by this group")

        channel = child.channel
        key = channel.fileno()

        self.running[key] = self._current
        self._selector.register(key, selectors.EVENT_READ)

        try:
            while key in self.running:
                token = yield

                if token is Token.INTERRUPT:
                    child.interrupt()
                elif token is Token.TERMINATE:
                    child.terminate()
                elif token is Token.KILL:
                    child.kill()
                elif token is not None:
                    callback(token)
                else:
                    message = channel.receive()
                    if message is None:
                        return self._reap(child)
                    if message is INCOMPLETE:
                        continue

                    callback(message)

                    while channel.pending:
                        callback(channel.receive())
        finally:
            self.running.pop(key, None)
            try:
                self._selector.unregister(key)
            except (KeyError, ValueError):
                pass

    def _reap(self, child):
        # The channel is closed but the child may not have exited yet:
        status = child.wait(self.reap_timeout)

        if status is None:
            logger.warning(f"{child} closed its channel but did not exit, killing it")
            child.kill()
            status = child.wait()

        return status

    # Broadcasts

    def _broadcast(self, token: Token):
        for key, waiter in list(self.running.items()):
            # An earlier resume may have finished this waiter:
            if self.running.get(key) is waiter:
                self.resume(waiter, token)

    def health_check(self):
        """Resume every waiter with the health check sentinel."""
        self._broadcast(Token.HEALTH_CHECK)

    def interrupt(self):
        self._broadcast(Token.INTERRUPT)

    def terminate(self):
        self._broadcast(Token.TERMINATE)

    def kill(self):
        self._broadcast(Token.KILL)

    # Waiting

    def _wait_for_children(self, duration: float | None = None):
        if not self.running:
            if duration:
                with trap.interruptible():
                    time.sleep(duration)
            return

        with trap.interruptible():
            events = self._selector.select(duration)

        for selector_key, _ in events:
            waiter = self.running.get(selector_key.fd)
            if waiter is not None:
                self.resume(waiter)

    def sleep(self, duration: float | None = None):
        """Wait up to `duration` for activity and dispatch it."""
        self._wait_for_children(duration)

    def wait(self):
        """Wait until every child has exited, running periodic health checks."""
        interval = self.health_check_interval

        if not interval:
            while self.running:
                self._wait_for_children()
            return

        clock = Clock.start()
        while self.running:
            self._wait_for_children(max(interval - clock.total, 0))

            if clock.total >= interval:
                self.health_check()
                clock.reset()

    def stop(self, graceful: bool | float = True):
        """Stop all children, interrupting first if `graceful`, then killing.

        `graceful` may be a number of seconds to wait after the interrupt;
        `True` uses the group's default graceful timeout.
        """
        if graceful:
            timeout = self.graceful_timeout if graceful is True else float(graceful)

            logger.debug(f"Interrupting {len(self.running)} children, waiting up to {timeout}s")
            self.interrupt()

            clock = Clock.start()
            while self.running:
                remaining = timeout - clock.total
                if remaining <= 0:
                    break
                self._wait_for_children(remaining)

        if self.running:
            logger.debug(f"Killing {len(self.running)} children")

        # A child may trap or ignore every other signal; this always runs:
        while self.running:
            self.kill()
            self._wait_for_children(self.kill_interval)
