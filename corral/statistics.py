"""
Statistics about the children of a container.

`Statistics` keeps monotonic counters of spawns, restarts and failures, plus
sliding-window `Rate` trackers so a crash loop can be told apart from a
single historical failure.
"""

import time


class Rate:
    """Events per second over a sliding window, one slot per second."""

    def __init__(self, window: int = 60):
        if window < 1:
            raise ValueError("Window must be at least one second")

        self.window = window
        self._counts = [0] * window
        self._timestamps = [None] * window

    def _now(self, now: float | None) -> int:
        return int(time.monotonic() if now is None else now)

    def add(self, value: int = 1, now: float | None = None):
        """Count `value` events in the current second."""
        second = self._now(now)
        index = second % self.window

        # The slot was last written in an earlier lap around the buffer:
        if self._timestamps[index] != second:
            self._counts[index] = 0
            self._timestamps[index] = second

        self._counts[index] += value

    def total(self, now: float | None = None) -> int:
        """Sum of events in the last `window` seconds, including the current one."""
        second = self._now(now)
        horizon = second - self.window

        return sum(
            count
            for count, timestamp in zip(self._counts, self._timestamps)
            if timestamp is not None and horizon < timestamp <= second
        )

    def per_second(self, now: float | None = None) -> float:
        return self.total(now) / self.window

    def per_minute(self, now: float | None = None) -> float:
        return self.per_second(now) * 60

    def __repr__(self):
        return f"<Rate window={self.window} total={self.total()}>"


class Statistics:
    """Tracks spawns, restarts and failures of child instances."""

    def __init__(self, window: int = 60):
        self.spawns = 0
        self.restarts = 0
        self.failures = 0

        self.restart_rate = Rate(window)
        self.failure_rate = Rate(window)

    def spawn(self):
        self.spawns += 1

    def restart(self):
        self.restarts += 1
        self.restart_rate.add()

    def failure(self):
        self.failures += 1
        self.failure_rate.add()

    @property
    def failed(self) -> bool:
        """Whether any child has ever failed."""
        return self.failures > 0

    def append(self, other: "Statistics"):
        """Add the counters of another instance into this one."""
        self.spawns += other.spawns
        self.restarts += other.restarts
        self.failures += other.failures

    def to_dict(self) -> dict:
        return {
            "spawns": self.spawns,
            "restarts": self.restarts,
            "failures": self.failures,
            "restart_rate": self.restart_rate.per_minute(),
            "failure_rate": self.failure_rate.per_minute(),
        }

    def __repr__(self):
        return (
            f"<Statistics spawns={self.spawns} restarts={self.restarts} "
            f"failures={self.failures}>"
        )
