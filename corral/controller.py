"""
Controller: keeps a container running and reacts to process signals.

SIGINT stops gracefully, SIGTERM stops immediately, SIGHUP builds a new
container and swaps it in once it is ready (blue-green restart) and
SIGUSR1 reloads keyed children in place. Signals reach the run loop as
control exceptions raised by `corral.signals.trap`, so there is a single
code path for each of these actions whether it was triggered by a signal
or called directly.
"""

import logging
import signal

from . import notify
from .best import best_container_class
from .error import Interrupt, Reload, Restart, SetupError, Terminate
from .signals import trap

logger = logging.getLogger(__name__)

TRAPPED_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP, signal.SIGUSR1)


class Controller:
    """Manages the life cycle of one container at a time."""

    def __init__(self, setup=None, container_class=None, notify_client=None, graceful_stop=True):
        self._setup = setup
        self.container_class = container_class or best_container_class()
        self.notify = notify_client if notify_client is not None else notify.open()
        self.graceful_stop = graceful_stop

        self.container = None

    def __str__(self):
        return f"{type(self).__name__} {self.state_string}"

    @property
    def running(self) -> bool:
        return self.container is not None

    @property
    def state_string(self) -> str:
        return "running" if self.running else "stopped"

    def create_container(self):
        return self.container_class()

    def setup(self, container):
        """Spawn children into `container`. Override, or pass `setup=`."""
        if self._setup is None:
            raise NotImplementedError("Controller requires a setup function")
        self._setup(container)

    def start(self):
        if self.container is None:
            self.restart()

    def stop(self, graceful=None):
        if graceful is None:
            graceful = self.graceful_stop

        if self.container is not None:
            self.notify.stopping()
            self.container.stop(graceful)
            self.container = None

    def restart(self):
        """Start a new container and swap it in once all its children are ready."""
        if self.container is not None:
            self.notify.restarting()
            logger.info("Restarting container...")

        container = self.create_container()
        swapped = False

        try:
            try:
                self.setup(container)
            except SetupError:
                raise
            except Exception as error:
                self.notify.error(str(error))
                raise SetupError(container) from error

            logger.debug("Waiting for startup...")
            container.wait_until_ready()
            logger.debug("Finished startup.")

            if container.failed:
                self.notify.error("Container failed to start!")
                raise SetupError(container)

            # Swap in the new container before retiring the old one:
            container, self.container = self.container, container
            swapped = True
        finally:
            # Either the replaced container, or the new one if startup failed:
            if container is not None:
                container.stop(self.graceful_stop if swapped else False)

        self.notify.ready(size=self.container.size)

    def reload(self):
        """Re-run setup on the current container; children not re-spawned by key are stopped."""
        if self.container is None:
            return self.start()

        self.notify.reloading()
        logger.info("Reloading container...")

        try:
            self.container.reload(lambda: self.setup(self.container))
        except SetupError:
            raise
        except Exception as error:
            self.notify.error(str(error))
            raise SetupError(self.container) from error

        self.container.wait_until_ready()

        if self.container.failed:
            self.notify.error("Container failed to reload!")
            raise SetupError(self.container)

        self.notify.ready(size=self.container.size)

    def run(self):
        """Start the container and supervise it until stopped by a signal."""
        self.notify.status("Initializing controller...")

        with trap.trapped(TRAPPED_SIGNALS):
            try:
                self.start()

                while self.container is not None and self.container.running:
                    try:
                        self.container.wait()
                    except Restart:
                        self._recover(self.restart)
                    except Reload:
                        self._recover(self.reload)
            except Interrupt:
                logger.info("Interrupted, stopping gracefully...")
                self.stop(self.graceful_stop)
            except Terminate:
                logger.info("Terminated, stopping...")
                self.stop(False)
            finally:
                self.stop(False)

    def _recover(self, action):
        try:
            action()
        except SetupError as error:
            logger.error(f"{error}, keeping the current container")
