"""Shared fixtures for the corral test suite."""

import pytest

from tests.helpers import RecordingClient, RecordingPolicy


@pytest.fixture
def notify_client():
    return RecordingClient()


@pytest.fixture
def policy():
    return RecordingPolicy()
