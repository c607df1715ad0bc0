"""
Readiness notifications over an inherited pipe.

Messages are JSON objects, one per line, the same framing `Channel` reads.
The descriptor number is passed to the child in the NOTIFY_PIPE
environment variable.
"""

import json
import logging
import os

from .client import Client

logger = logging.getLogger(__name__)

NOTIFY_PIPE = "NOTIFY_PIPE"


class Pipe(Client):
    """Notification client writing to a pipe inherited from the parent."""

    @classmethod
    def open(cls, environ=None):
        """Open the pipe named by NOTIFY_PIPE, if set. Consumes the variable."""
        environ = os.environ if environ is None else environ

        descriptor = environ.pop(NOTIFY_PIPE, None)
        if descriptor is None:
            return None

        try:
            io = os.fdopen(int(descriptor), "w", encoding="utf-8")
        except (OSError, ValueError) as error:
            logger.error(f"Invalid {NOTIFY_PIPE}={descriptor!r}: {error}")
            return None

        return cls(io)

    def __init__(self, io):
        self.io = io

    def before_spawn(self, env: dict, pass_fds: list):
        """Let a subprocess started with `subprocess.Popen` inherit the pipe."""
        descriptor = self.io.fileno()

        pass_fds.append(descriptor)
        env[NOTIFY_PIPE] = str(descriptor)

    def before_exec(self, env: dict, descriptor: int = 3):
        """Move the pipe to `descriptor` so it survives `os.exec*`."""
        self.io.flush()

        current = self.io.fileno()
        if current != descriptor:
            os.dup2(current, descriptor)
        os.set_inheritable(descriptor, True)

        env[NOTIFY_PIPE] = str(descriptor)

    def send(self, **message):
        self.io.write(json.dumps(message) + "\n")
        self.io.flush()
