"""Readiness notifications appended to a log file, one JSON object per line."""

import json
import os

from .client import Client

NOTIFY_LOG = "NOTIFY_LOG"


class Log(Client):
    """Notification client for NOTIFY_LOG."""

    @classmethod
    def open(cls, environ=None):
        """Open the file named by NOTIFY_LOG, if set. Consumes the variable."""
        environ = os.environ if environ is None else environ

        path = environ.pop(NOTIFY_LOG, None)
        if path:
            return cls(path)

    def __init__(self, path):
        self.path = path

    def send(self, **message):
        with open(self.path, "a", encoding="utf-8") as file:
            file.write(json.dumps(message) + "\n")

    def error(self, text: str, **message):
        message.setdefault("errno", -1)

        super().error(text, **message)
