"""
Generic container: spawns, restarts, reloads and stops children.

Subclasses provide `start(name, block) -> Child`, which creates one child
running `block(instance)`; everything else (restart loops, health checks,
keyed reload, statistics) is implemented here on top of `Group`.
"""

import logging

import psutil

from .clock import Clock
from .config import config
from .error import SetupError
from .group import Group, Token
from .keyed import Keyed
from .policy import DEFAULT_POLICY
from .statistics import Statistics

logger = logging.getLogger(__name__)


def processor_count(override: int | None = None) -> int:
    """Number of processors available for running children."""
    if override is None:
        override = config.processor_count

    if override is not None:
        count = int(override)
        if count < 1:
            raise ValueError(f"Invalid processor count: {override!r}")
        return count

    return psutil.cpu_count() or 2


class Generic:
    """Base class for containers."""

    UNNAMED = "Unnamed"

    multiprocess = False

    def __init__(self, policy=None, **options):
        self.group = Group(**options)
        self.policy = policy or DEFAULT_POLICY
        self.statistics = Statistics()

        # Key -> Keyed(child), for children which survive reloads:
        self.keyed: dict[object, Keyed] = {}

        # Child -> last known status, as reported over its channel:
        self.state: dict[object, dict] = {}

        self._running = True

    def __str__(self):
        return (
            f"{type(self).__name__} with {self.statistics.spawns} spawns "
            f"and {self.statistics.failures} failures"
        )

    def __getitem__(self, key):
        return self.keyed[key].value

    @property
    def size(self) -> int:
        return self.group.size

    @property
    def failed(self) -> bool:
        return self.statistics.failed

    @property
    def running(self) -> bool:
        """Whether any child is running."""
        return self.group.is_running

    def start(self, name: str, block):
        """Start a child running `block`. Implemented by subclasses."""
        raise NotImplementedError

    def sleep(self, duration: float | None = None):
        """Sleep until some state change occurs, or `duration` elapses."""
        self.group.sleep(duration)

    def wait(self):
        """Wait until every child has exited."""
        self.group.wait()

    def status(self, flag: str) -> bool:
        """Whether every child reports `flag`. True if there are none."""
        return all(state.get(flag) for state in list(self.state.values()))

    def wait_until_ready(self) -> bool:
        """Block until every child is ready or has exited."""
        interval = self.group.health_check_interval
        clock = Clock.start()

        while not self.status("ready"):
            if logger.isEnabledFor(logging.DEBUG):
                for child, state in list(self.state.items()):
                    logger.debug(f"Waiting for ready: {child} {state}")

            self.group.sleep(interval or None)

            # Children that never become ready must still hit their startup timeout:
            if interval and clock.total >= interval:
                self.group.health_check()
                clock.reset()

        return True

    def stop(self, timeout: bool | float = True):
        """Stop every child; `timeout` is passed to `Group.stop`."""
        self._running = False
        try:
            self.group.stop(timeout)

            if self.group.is_running:
                logger.warning(f"{self} is still running after stopping it")
        finally:
            self._running = True

    def spawn(
        self,
        block,
        name: str | None = None,
        restart: bool = False,
        key=None,
        health_check_timeout: float | None = None,
        startup_timeout: float | None = None,
    ) -> bool:
        """Spawn a child running `block(instance)`.

        Returns False if `key` refers to a child which is already running;
        that child is marked and reused instead.
        """
        name = name or self.UNNAMED

        if self.mark(key):
            logger.debug(f"Reusing existing child for {key!r}: {name}")
            return False

        self.statistics.spawn()

        waiter = self._supervise(block, name, restart, key, health_check_timeout, startup_timeout)
        self.group.start(waiter)

        return True

    def run(self, block, count: int | None = None, **options) -> "Generic":
        """Spawn `count` children (default: one per processor) with the same options."""
        if count is None:
            count = processor_count()

        for _ in range(count):
            self.spawn(block, **options)

        return self

    def _supervise(self, block, name, restart, key, health_check_timeout, startup_timeout):
        while self._running:
            try:
                child = self.start(name, block)
            except Exception as error:
                logger.error(f"Failed to start child {name}: {error}")
                raise SetupError(self, f"Could not start child {name}: {error}") from error

            state, keyed = self._insert(key, child)
            self.policy.child_spawn(self, child, name=name, key=key)

            clock = Clock.start()

            def update(message, child=child, state=state, clock=clock):
                if message is Token.HEALTH_CHECK:
                    self._health_check(child, state, clock, health_check_timeout, startup_timeout)
                else:
                    state.update(message)
                    clock.reset()

            try:
                status = yield from self.group.wait_for(child, update)
            finally:
                self._delete(key, child)
                child.close()

            if status is not None and status.success:
                logger.info(f"{child} {status}")
            else:
                self.statistics.failure()
                logger.error(f"{child} {status}")

            self.policy.child_exit(self, child, status, name=name, key=key)

            # A swept keyed child was stopped on purpose:
            swept = keyed is not None and not keyed.marked

            if restart and self._running and not swept:
                self.statistics.restart()
            else:
                break

    def _health_check(self, child, state, clock, health_check_timeout, startup_timeout):
        age = clock.total

        if not state.get("ready") and startup_timeout is not None:
            if age > startup_timeout:
                self.policy.startup_failed(self, child, age=age, timeout=startup_timeout)
        elif health_check_timeout is not None:
            if age > health_check_timeout:
                self.policy.health_check_failed(self, child, age=age, timeout=health_check_timeout)

    def reload(self, block) -> bool:
        """Reload keyed children: only keys re-spawned by `block` survive.

        Returns whether any child was stopped.
        """
        for keyed in self.keyed.values():
            keyed.clear()

        block()

        stopped = []
        for key, keyed in list(self.keyed.items()):
            if keyed.stop():
                logger.info(f"Stopping {keyed.value} for removed key {key!r}")
                del self.keyed[key]
                stopped.append(keyed.value)

        self._await_exit(stopped, self.group.graceful_timeout)

        return bool(stopped)

    def _await_exit(self, children, timeout: float):
        clock = Clock.start()

        while any(child in self.group for child in children):
            remaining = timeout - clock.total
            if remaining <= 0:
                break
            self.group.sleep(remaining)

        for child in children:
            if child in self.group:
                logger.warning(f"{child} did not stop within {timeout}s, killing it")
                child.kill()

    def mark(self, key) -> bool:
        """Mark the child for `key` as still in use, if there is one."""
        if self.key(key):
            self.keyed[key].mark()
            return True

        return False

    def key(self, key) -> bool:
        """Whether a running child is registered under `key`."""
        return key is not None and key in self.keyed

    def _insert(self, key, child):
        keyed = None
        if key is not None:
            keyed = self.keyed[key] = Keyed(key, child)

        state = {}
        self.state[child] = state

        return state, keyed

    def _delete(self, key, child):
        if key is not None:
            keyed = self.keyed.get(key)
            if keyed is not None and keyed.value is child:
                del self.keyed[key]

        self.state.pop(child, None)
