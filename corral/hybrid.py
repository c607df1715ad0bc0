"""
Container of forked processes that each run a threaded container.

Useful when the work is mostly I/O bound: processes give isolation and use
every core, threads within them keep the per-child overhead low.
"""

import math

from .error import Terminate
from .forked import Forked
from .generic import processor_count
from .threaded import Threaded


class Hybrid(Forked):
    """Forks `forks` processes, each running `threads` threads."""

    def run(
        self,
        block,
        count: int | None = None,
        forks: int | None = None,
        threads: int | None = None,
        health_check_timeout: float | None = None,
        **options,
    ) -> "Hybrid":
        processors = processor_count()

        count = count or processors ** 2
        forks = forks or min(processors, count)
        threads = threads or math.ceil(count / forks)

        def fork(instance):
            container = Threaded()
            try:
                container.run(block, count=threads, health_check_timeout=health_check_timeout, **options)
                container.wait_until_ready()
                instance.ready()
                container.wait()
            except Terminate:
                container.stop(False)
                raise
            finally:
                container.stop()

        for _ in range(forks):
            self.spawn(fork, **options)

        return self
