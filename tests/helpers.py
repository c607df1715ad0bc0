"""Helpers shared by the corral tests."""

import time

from corral.notify.client import Client
from corral.policy import Policy


class RecordingClient(Client):
    """Notification client that keeps every message it is sent."""

    def __init__(self):
        self.messages = []

    def send(self, **message):
        self.messages.append(message)


class RecordingPolicy(Policy):
    """Default policy that also records every child exit status."""

    def __init__(self):
        self.spawned = []
        self.statuses = []

    def child_spawn(self, container, child, name, key=None, **options):
        self.spawned.append(name)

    def child_exit(self, container, child, status, name, key=None, **options):
        self.statuses.append(status)


def wait_until(container, predicate, timeout=5.0):
    """Run the container's scheduler until `predicate()` holds."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("Timed out waiting for condition")
        container.sleep(0.05)
