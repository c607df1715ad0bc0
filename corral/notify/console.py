"""Readiness notifications written to the local log, when nothing supervises us."""

import logging

from .client import Client


class Console(Client):
    """Notification client that only logs."""

    @classmethod
    def open(cls, logger: logging.Logger | None = None):
        return cls(logger or logging.getLogger("corral.notify"))

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def send(self, level: str = "debug", **message):
        self.logger.log(logging.getLevelName(level.upper()), f"Notify: {message}")

    def error(self, text: str, **message):
        self.send(status=text, level="error", **message)
