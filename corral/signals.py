"""
Signal trap for the supervising process.

Signals are deferred while the scheduler is busy resuming waiters, so a
waiter table is never left half updated by an exception thrown from a
handler. Only while blocked in the multi-wait call are signals raised
immediately; anything that arrived in between is raised on entry to the
next blocking wait, so no signal is lost.
"""

import logging
import signal
from collections import deque
from contextlib import contextmanager

from .error import SIGNAL_EXCEPTIONS

logger = logging.getLogger(__name__)


class SignalTrap:
    """Converts process signals into control exceptions at safe points."""

    def __init__(self):
        self._pending: deque[int] = deque()
        self._immediate = False
        self._previous: dict[int, object] = {}

    @property
    def pending(self) -> list[int]:
        return list(self._pending)

    @property
    def installed(self) -> bool:
        return bool(self._previous)

    def install(self, signals):
        """Route the given signal numbers through this trap."""
        for signo in signals:
            if signo not in SIGNAL_EXCEPTIONS:
                raise ValueError(f"No control exception for signal {signo}")
            if signo not in self._previous:
                self._previous[signo] = signal.signal(signo, self._handle)

    def restore(self):
        """Reinstate the handlers that were active before `install`."""
        for signo, handler in self._previous.items():
            signal.signal(signo, handler)
        self._previous.clear()

    def reset(self):
        """Forget inherited state, e.g. in a freshly forked child."""
        self._pending.clear()
        self._immediate = False
        self._previous.clear()

    @contextmanager
    def trapped(self, signals):
        self.install(signals)
        try:
            yield self
        finally:
            self.restore()

    @contextmanager
    def interruptible(self):
        """Allow signals to be raised immediately within this block."""
        self._raise_pending()
        self._immediate = True
        try:
            yield
        finally:
            self._immediate = False

    def _handle(self, signo, frame):
        logger.debug(f"Received signal {signo}")
        self._pending.append(signo)
        if self._immediate:
            self._raise_pending()

    def _raise_pending(self):
        if self._pending:
            signo = self._pending.popleft()
            raise SIGNAL_EXCEPTIONS[signo]()


trap = SignalTrap()
