"""Container of forked child processes."""

from .generic import Generic
from .process import Process


class Forked(Generic):
    """Runs each child in its own forked process."""

    multiprocess = True

    def start(self, name: str, block) -> Process:
        return Process.fork(name, block)
