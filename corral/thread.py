"""
Threaded children.

Python threads cannot be signalled, so control exceptions are raised inside
the thread asynchronously; they take effect at the next bytecode boundary.
A thread blocked in C code can not be unwound at all, so `kill()` does not
wait for it: it points the channel's write end at /dev/null, which the
parent sees as EOF, reports SIGKILL and abandons the (daemon) thread.
"""

import ctypes
import logging
import os
import signal
import subprocess
import threading

from .channel import Channel
from .config import config
from .error import Interrupt, Kill, Restart, Terminate
from .notify.pipe import Pipe
from .status import Status

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1


def raise_in_thread(thread: threading.Thread, exception: type[BaseException]) -> bool:
    """Raise `exception` asynchronously in `thread`. Returns whether it was delivered."""
    ident = thread.ident
    if ident is None or not thread.is_alive():
        return False

    result = ctypes.pythonapi.PyThreadState_SetAsyncExc(
        ctypes.c_ulong(ident), ctypes.py_object(exception)
    )

    if result > 1:
        ctypes.pythonapi.PyThreadState_SetAsyncExc(ctypes.c_ulong(ident), None)
        raise SystemError(f"Raising {exception.__name__} affected {result} threads")

    return result == 1


class Instance(Pipe):
    """The child thread's view of itself."""

    def __init__(self, thread: "Thread"):
        super().__init__(os.fdopen(thread.channel.output, "w", encoding="utf-8", closefd=False))
        self._thread = thread

    @property
    def name(self) -> str:
        return self._thread.name

    def exec(self, *arguments, ready: bool = True, env: dict | None = None, cwd=None):
        """Run a program as a subprocess; the thread finishes with its exit status.

        Like `os.exec*` in a forked child, this does not return.
        """
        env = dict(os.environ if env is None else env)
        pass_fds = []

        if ready:
            self.ready(status="(spawn)")
        else:
            self.before_spawn(env, pass_fds)

        process = subprocess.Popen(
            list(arguments),
            env=env,
            cwd=cwd,
            pass_fds=pass_fds,
            start_new_session=True,
        )

        try:
            code = self._wait(process)
        except (Interrupt, Terminate) as exception:
            process.send_signal(exception.signo)
            try:
                process.wait(timeout=config.graceful_timeout)
            except subprocess.TimeoutExpired:
                pass
            raise
        finally:
            if process.poll() is None:
                process.kill()
                process.wait()

        raise SystemExit(code)

    @staticmethod
    def _wait(process: subprocess.Popen) -> int:
        # Short waits so exceptions raised into this thread are seen promptly:
        while True:
            try:
                return process.wait(timeout=POLL_INTERVAL)
            except subprocess.TimeoutExpired:
                continue


class Thread:
    """A child thread, seen from the supervising thread."""

    @classmethod
    def fork(cls, name: str, block) -> "Thread":
        return cls(name, block)

    def __init__(self, name: str, block):
        self.name = name
        self.channel = Channel()
        self.status = None

        self._lock = threading.Lock()
        self._finished = False
        self._killed = False

        # Write end redirected to /dev/null by `kill`, closed once the thread ends:
        self._abandoned = None

        self._thread = threading.Thread(target=self._run, args=(block,), name=name, daemon=True)
        self._thread.start()

    def __str__(self):
        if self.status is not None:
            return f"<Thread {self.name} -> {self.status}>"
        return f"<Thread {self.name}>"

    def _run(self, block):
        instance = Instance(self)
        status = Status(exit_code=0)

        try:
            block(instance)
        except (Interrupt, Terminate, Restart):
            # Graceful exit.
            pass
        except Kill:
            status = Status.killed()
        except SystemExit as exit:
            if isinstance(exit.code, int):
                status = Status.from_exit_code(exit.code)
            elif exit.code is not None:
                status = Status(exit_code=1)
        except BaseException as error:
            logger.exception(f"Child {self.name} failed")
            status = Status(exit_code=1, error=error)
        finally:
            self._finish(status, instance)

    def _finish(self, status: Status, instance: Instance):
        with self._lock:
            # Empty the buffer while the descriptor is still ours:
            try:
                instance.io.flush()
            except (OSError, ValueError):
                pass

            if self._finished:
                # Killed earlier; nothing writes to the redirected descriptor now.
                self._close_abandoned()
                return
            self._finished = True

            self.status = status
            self.channel.close_write()

    def _raise(self, exception):
        with self._lock:
            if not self._finished:
                raise_in_thread(self._thread, exception)

    def interrupt(self):
        self._raise(Interrupt)

    def terminate(self):
        self._raise(Terminate)

    def restart(self):
        self._raise(Restart)

    def kill(self):
        with self._lock:
            # Already closed by the thread itself:
            if self.channel.output is None:
                return
            self._killed = True

            if self.status is None:
                self.status = Status.killed()

            if not self._finished:
                self._finished = True
                raise_in_thread(self._thread, Kill)

            # The thread may still write to this descriptor, so it is
            # redirected rather than closed until the thread ends:
            devnull = os.open(os.devnull, os.O_WRONLY)
            try:
                os.dup2(devnull, self.channel.output, inheritable=False)
            finally:
                os.close(devnull)
            self._abandoned, self.channel.output = self.channel.output, None

    def _close_abandoned(self):
        if self._abandoned is not None:
            os.close(self._abandoned)
            self._abandoned = None

    def stop(self):
        """Ask the thread to stop; the group reaps it."""
        self.terminate()

    def wait(self, timeout: float | None = None) -> Status | None:
        """Wait for the thread to finish. Returns None if `timeout` elapses."""
        if not self._killed:
            self._thread.join(timeout)
            if self._thread.is_alive():
                return None

        return self.status

    def close(self):
        self.channel.close()

        with self._lock:
            if not self._thread.is_alive():
                self._close_abandoned()
