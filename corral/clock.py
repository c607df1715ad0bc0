"""Monotonic stopwatch used for child ages and deadlines."""

import time


class Clock:
    """Measures elapsed time since it was started or last reset."""

    def __init__(self, started: float | None = None):
        self._started = started

    @classmethod
    def start(cls) -> "Clock":
        return cls(time.monotonic())

    def reset(self):
        self._started = time.monotonic()

    @property
    def total(self) -> float:
        """Seconds elapsed, 0.0 if the clock was never started."""
        if self._started is None:
            return 0.0
        return time.monotonic() - self._started

    def __repr__(self):
        return f"<Clock total={self.total:.3f}>"
