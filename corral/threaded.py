"""Container of child threads."""

from .generic import Generic
from .thread import Thread


class Threaded(Generic):
    """Runs each child in its own thread of the supervising process."""

    multiprocess = False

    def start(self, name: str, block) -> Thread:
        return Thread.fork(name, block)
