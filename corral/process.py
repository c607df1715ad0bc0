"""
Forked child processes.

`Process.fork(name, block)` forks the supervising process. The child starts
a new session so the whole process group can be signalled at once, runs
`block(instance)` and exits without returning into the parent's code.
The parent keeps the read end of the channel and tracks the pid.
"""

import logging
import os
import signal
import sys

import psutil

from .channel import Channel
from .error import Interrupt, Restart, Terminate
from .notify.pipe import Pipe
from .signals import trap
from .status import Status

logger = logging.getLogger(__name__)


def _raise(exception):
    def handler(signo, frame):
        raise exception()

    return handler


class Instance(Pipe):
    """The child's view of itself: a notification client plus helpers."""

    def __init__(self, channel: Channel, name: str):
        super().__init__(os.fdopen(channel.output, "w", encoding="utf-8", closefd=False))
        self.name = name

    def exec(self, *arguments, ready: bool = True, env: dict | None = None, cwd=None):
        """Replace this child with another program.

        The channel is kept open in the new program as descriptor 3, so the
        supervisor sees EOF only when the program exits. With `ready=False`
        the program is expected to report readiness itself via NOTIFY_PIPE.
        """
        env = dict(os.environ if env is None else env)

        if ready:
            self.ready(status="(exec)")

        self.before_exec(env)

        if cwd is not None:
            os.chdir(cwd)

        os.execvpe(arguments[0], list(arguments), env)


class Process:
    """A forked child, seen from the parent."""

    @classmethod
    def fork(cls, name: str, block) -> "Process":
        channel = Channel()

        pid = os.fork()
        if pid == 0:
            cls._run_child(channel, name, block)

        try:
            channel.close_write()
            return cls(name, pid, channel)
        except BaseException:
            os.kill(pid, signal.SIGKILL)
            os.waitpid(pid, 0)
            channel.close()
            raise

    @staticmethod
    def _run_child(channel: Channel, name: str, block):
        code = 1
        try:
            os.setsid()

            trap.reset()
            signal.signal(signal.SIGINT, _raise(Interrupt))
            signal.signal(signal.SIGTERM, _raise(Terminate))
            signal.signal(signal.SIGHUP, _raise(Restart))
            signal.signal(signal.SIGUSR1, signal.SIG_DFL)

            channel.close_read()

            block(Instance(channel, name))
            code = 0
        except (Interrupt, Terminate, Restart):
            # Graceful exit.
            code = 0
        except SystemExit as exit:
            if exit.code is None:
                code = 0
            elif isinstance(exit.code, int):
                code = exit.code
            else:
                code = 1
        except BaseException:
            logger.exception(f"Child {name} failed")
            code = 1
        finally:
            for stream in (sys.stdout, sys.stderr):
                try:
                    stream.flush()
                except (OSError, ValueError):
                    pass
            os._exit(code)

    def __init__(self, name: str, pid: int, channel: Channel):
        self.name = name
        self.pid = pid
        self.channel = channel
        self.status = None

        self._process = psutil.Process(pid)

    def __str__(self):
        if self.status is not None:
            return f"<Process {self.name} -> {self.status}>"
        return f"<Process {self.name} -> {self.pid}>"

    def _signal(self, signo: int):
        if self.status is not None:
            return

        try:
            os.killpg(self.pid, signo)
        except ProcessLookupError:
            # The child has not called setsid yet, or the group is gone:
            try:
                os.kill(self.pid, signo)
            except ProcessLookupError:
                pass

    def interrupt(self):
        self._signal(signal.SIGINT)

    def terminate(self):
        self._signal(signal.SIGTERM)

    def restart(self):
        self._signal(signal.SIGHUP)

    def kill(self):
        self._signal(signal.SIGKILL)

    def stop(self):
        """Ask the child to stop; the group reaps it."""
        self.terminate()

    def wait(self, timeout: float | None = None) -> Status | None:
        """Wait for the child to exit. Returns None if `timeout` elapses."""
        if self.status is None:
            try:
                code = self._process.wait(timeout)
            except psutil.TimeoutExpired:
                return None

            self.status = Status.from_exit_code(None if code is None else int(code))

        return self.status

    def close(self):
        self.channel.close()
