"""Tests for shared container helpers."""

import pytest

from corral import generic
from corral.best import best_container_class, fork_supported, new_container
from corral.forked import Forked
from corral.generic import Generic, processor_count
from corral.threaded import Threaded


class TestProcessorCount:
    def test_override(self):
        assert processor_count(3) == 3

    def test_invalid_override(self):
        with pytest.raises(ValueError):
            processor_count(0)

    def test_config(self, monkeypatch):
        monkeypatch.setattr(generic.config, "processor_count", 5)

        assert processor_count() == 5

    def test_unknown_cpu_count(self, monkeypatch):
        monkeypatch.setattr(generic.config, "processor_count", None)
        monkeypatch.setattr(generic.psutil, "cpu_count", lambda: None)

        assert processor_count() == 2


class TestGeneric:
    def test_start_is_abstract(self):
        with pytest.raises(NotImplementedError):
            Generic().start("child", lambda instance: None)

    def test_status_without_children(self):
        assert Generic().status("ready")

    def test_str(self):
        assert str(Generic()) == "Generic with 0 spawns and 0 failures"


class TestBest:
    def test_best_container_class(self):
        expected = Forked if fork_supported() else Threaded
        assert best_container_class() is expected

    def test_new_container_options(self):
        container = new_container(graceful_timeout=2.5)
        assert container.group.graceful_timeout == 2.5
