"""Tests for the status API."""

import time
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from corral.api import create_app
from corral.threaded import Threaded


def worker(instance):
    instance.ready(status="serving")
    while True:
        time.sleep(0.01)


@pytest.fixture
def container():
    container = Threaded(health_check_interval=0.05, kill_interval=0.05)
    container.run(worker, count=2, name="worker")
    container.wait_until_ready()
    yield container
    container.stop(False)


def client_for(container):
    state_string = "stopped" if container is None else "running"
    controller = SimpleNamespace(container=container, state_string=state_string)
    return TestClient(create_app(controller))


class TestStatus:
    def test_stopped(self):
        response = client_for(None).get("/status")

        assert response.status_code == 200
        assert response.json()["state"] == "stopped"
        assert response.json()["children"] == []

    def test_running(self, container):
        response = client_for(container).get("/status")
        data = response.json()

        assert response.status_code == 200
        assert data["state"] == "running"
        assert data["size"] == 2
        assert data["statistics"]["spawns"] == 2
        assert [child["name"] for child in data["children"]] == ["worker", "worker"]
        assert data["children"][0]["state"] == {"ready": True, "status": "serving"}


class TestHealth:
    def test_stopped(self):
        response = client_for(None).get("/health")

        assert response.status_code == 503
        assert response.json() == {"healthy": False, "reason": "stopped"}

    def test_healthy(self, container):
        response = client_for(container).get("/health")

        assert response.status_code == 200
        assert response.json()["healthy"] is True

    def test_recent_failure(self, container):
        container.statistics.failure()

        response = client_for(container).get("/health")

        assert response.status_code == 503
        assert response.json()["reason"] == "failing"
