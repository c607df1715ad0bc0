"""
Readiness notifications over a UNIX datagram socket.

Compatible with systemd's `sd_notify`: each datagram holds `KEY=VALUE`
lines, keys upper case, booleans written as 1 and 0. The sending process
id is included as PID so a server can tell senders apart.
"""

import os
import socket

from .client import Client

NOTIFY_SOCKET = "NOTIFY_SOCKET"
MAXIMUM_MESSAGE_SIZE = 4096


def socket_address(path: str) -> str:
    # A leading "@" denotes the abstract namespace, as in systemd:
    if path.startswith("@"):
        return "\0" + path[1:]
    return path


class Socket(Client):
    """Notification client for NOTIFY_SOCKET."""

    @classmethod
    def open(cls, environ=None):
        """Open the socket named by NOTIFY_SOCKET, if set. Consumes the variable."""
        environ = os.environ if environ is None else environ

        path = environ.pop(NOTIFY_SOCKET, None)
        if path:
            return cls(path)

    def __init__(self, path: str, pid: int | None = None):
        self.path = path
        self.pid = os.getpid() if pid is None else pid

    @staticmethod
    def dump(message: dict) -> bytes:
        buffer = []

        for key, value in message.items():
            if value is True:
                value = 1
            elif value is False:
                value = 0

            buffer.append(f"{key.upper()}={value}\n")

        return "".join(buffer).encode("utf-8")

    def send(self, **message):
        if self.pid:
            message.setdefault("pid", self.pid)

        data = self.dump(message)

        if len(data) > MAXIMUM_MESSAGE_SIZE:
            raise ValueError(
                f"Message length {len(data)} exceeds {MAXIMUM_MESSAGE_SIZE}: {message!r}"
            )

        with socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM) as peer:
            peer.connect(socket_address(self.path))
            peer.send(data)

    def error(self, text: str, **message):
        # sd_notify expects an errno; -1 marks a generic error.
        message.setdefault("errno", -1)

        super().error(text, **message)
