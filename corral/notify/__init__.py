"""
Process readiness protocol.

A child reports "ready", "reloading", "stopping", free-form status and
errors to its supervisor. `open()` picks a transport by probing the
environment in order: an inherited pipe (NOTIFY_PIPE), a datagram socket
(NOTIFY_SOCKET), a log file (NOTIFY_LOG), and finally the local log.
"""

from .client import Client
from .console import Console
from .log import NOTIFY_LOG, Log
from .pipe import NOTIFY_PIPE, Pipe
from .server import Context, Server
from .socket import MAXIMUM_MESSAGE_SIZE, NOTIFY_SOCKET, Socket

_client = None


def open(environ=None) -> Client:
    """Open the best available notification client.

    Without `environ`, the client for the process environment is opened once
    and cached, since opening consumes the environment variable.
    """
    global _client

    if environ is not None:
        return Pipe.open(environ) or Socket.open(environ) or Log.open(environ) or Console.open()

    if _client is None:
        _client = Pipe.open() or Socket.open() or Log.open() or Console.open()

    return _client


__all__ = [
    "Client",
    "Console",
    "Context",
    "Log",
    "MAXIMUM_MESSAGE_SIZE",
    "NOTIFY_LOG",
    "NOTIFY_PIPE",
    "NOTIFY_SOCKET",
    "Pipe",
    "Server",
    "Socket",
    "open",
]
