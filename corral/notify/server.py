"""
Receiving side of the NOTIFY_SOCKET protocol.

Binds a UNIX datagram socket and parses each datagram into a dictionary
with lower case keys, `1`/`0` turned into booleans and `errno`/`pid` into
integers. Messages are attributed to their sender by the PID key they carry.
"""

import logging
import os
import secrets
import socket
import tempfile

from .socket import MAXIMUM_MESSAGE_SIZE, NOTIFY_SOCKET, socket_address

logger = logging.getLogger(__name__)

INTEGER_KEYS = ("errno", "pid", "mainpid")


class Server:
    """A notification socket at `path`."""

    NOTIFY_SOCKET = NOTIFY_SOCKET
    MAXIMUM_MESSAGE_SIZE = MAXIMUM_MESSAGE_SIZE

    @staticmethod
    def load(data) -> dict:
        """Parse one datagram."""
        if isinstance(data, bytes):
            data = data.decode("utf-8", errors="replace")

        message = {}

        for line in data.split("\n"):
            if not line:
                continue

            key, separator, value = line.partition("=")
            if not separator:
                logger.debug(f"Ignoring malformed notify line: {line!r}")
                continue

            key = key.lower()

            if key in INTEGER_KEYS:
                try:
                    value = int(value)
                except ValueError:
                    pass
            elif value == "1":
                value = True
            elif value == "0":
                value = False

            message[key] = value

        return message

    @staticmethod
    def generate_path() -> str:
        return os.path.join(
            tempfile.gettempdir(),
            f"corral-{os.getpid()}-{secrets.token_hex(8)}.ipc",
        )

    @classmethod
    def open(cls, path: str | None = None) -> "Server":
        return cls(path or cls.generate_path())

    def __init__(self, path: str):
        self.path = path

    def bind(self) -> "Context":
        return Context(self.path)

    def environment(self) -> dict:
        """Environment variables a child needs to notify this server."""
        return {NOTIFY_SOCKET: self.path}


class Context:
    """A bound notification socket."""

    def __init__(self, path: str):
        self.path = path
        self.socket = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
        self.socket.bind(socket_address(path))

        # PID -> latest merged message from that process:
        self.state: dict[int, dict] = {}

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def fileno(self) -> int:
        return self.socket.fileno()

    def close(self):
        if self.socket is None:
            return

        self.socket.close()
        self.socket = None

        if not self.path.startswith("@"):
            try:
                os.unlink(self.path)
            except FileNotFoundError:
                pass

    def receive_message(self, timeout: float | None = None) -> dict | None:
        """Receive one message, or None if `timeout` elapses first."""
        self.socket.settimeout(timeout)

        while True:
            try:
                data, _ancillary, flags, _address = self.socket.recvmsg(MAXIMUM_MESSAGE_SIZE)
            except TimeoutError:
                return None

            if flags & socket.MSG_TRUNC:
                logger.warning(f"Dropping notify message larger than {MAXIMUM_MESSAGE_SIZE} bytes")
                continue

            message = Server.load(data)

            pid = message.get("pid")
            if isinstance(pid, int):
                self.state.setdefault(pid, {}).update(message)

            return message

    def receive(self):
        """Yield messages as they arrive, until the context is closed."""
        while self.socket is not None:
            message = self.receive_message()
            if message is not None:
                yield message
