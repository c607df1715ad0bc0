"""Unit tests for the cooperative scheduler, driven with fake children."""

import os
import time

import pytest

from corral.channel import Channel
from corral.group import Group, Token
from corral.status import Status


class FakeChild:
    """Child whose lifetime is controlled by the test through its channel."""

    def __init__(self, name="fake", obeys_interrupt=True):
        self.name = name
        self.channel = Channel()
        self.status = None
        self.signals = []
        self.obeys_interrupt = obeys_interrupt

    def exit(self, status):
        self.status = status
        self.channel.close_write()

    def interrupt(self):
        self.signals.append("interrupt")
        if self.obeys_interrupt:
            self.exit(Status(exit_code=0))

    def terminate(self):
        self.signals.append("terminate")

    def kill(self):
        self.signals.append("kill")
        if self.channel.output is not None:
            self.exit(Status.killed())
        elif self.status is None:
            self.status = Status.killed()

    def wait(self, timeout=None):
        return self.status

    def close(self):
        self.channel.close()


def waiter(group, child, messages, results):
    status = yield from group.wait_for(child, messages.append)
    results.append(status)


@pytest.fixture
def group():
    group = Group(health_check_interval=0.05, graceful_timeout=0.1, reap_timeout=0.01, kill_interval=0.01)
    yield group
    group.close()


class TestWaitFor:
    def test_messages_and_exit(self, group):
        child = FakeChild()
        messages, results = [], []

        group.start(waiter(group, child, messages, results))
        assert child in group
        assert group.size == 1

        child.channel.send(ready=True)
        group.sleep(1)
        assert messages == [{"ready": True}]

        child.exit(Status(exit_code=3))
        group.sleep(1)

        assert results == [Status(exit_code=3)]
        assert child not in group
        assert not group.is_running

    def test_buffered_messages_are_all_delivered(self, group):
        child = FakeChild()
        messages, results = [], []
        group.start(waiter(group, child, messages, results))

        child.channel.send(index=1)
        child.channel.send(index=2)
        group.sleep(1)

        assert messages == [{"index": 1}, {"index": 2}]

    def test_outside_waiter(self, group):
        child = FakeChild()

        with pytest.raises(RuntimeError):
            next(group.wait_for(child, print))

    def test_partial_line_does_not_stall(self, group):
        """A child that writes half a line leaves the scheduler free to run."""
        child = FakeChild()
        messages, results = [], []
        group.start(waiter(group, child, messages, results))

        os.write(child.channel.output, b'{"status": ')
        group.sleep(1)
        group.health_check()

        assert messages == [Token.HEALTH_CHECK]

        os.write(child.channel.output, b'"up"}\n')
        group.sleep(1)

        assert messages == [Token.HEALTH_CHECK, {"status": "up"}]

    def test_lingering_child_is_killed(self, group):
        """A child that closes its channel but does not exit gets killed."""
        child = FakeChild()
        messages, results = [], []
        group.start(waiter(group, child, messages, results))

        child.channel.close_write()
        group.sleep(1)

        assert child.signals == ["kill"]
        assert results == [Status.killed()]


class TestBroadcast:
    def test_health_check_reaches_callback(self, group):
        child = FakeChild()
        messages, results = [], []
        group.start(waiter(group, child, messages, results))

        group.health_check()

        assert messages == [Token.HEALTH_CHECK]
        assert child.signals == []

    def test_tokens_become_signals(self, group):
        child = FakeChild(obeys_interrupt=False)
        group.start(waiter(group, child, [], []))

        group.interrupt()
        group.terminate()

        assert child.signals == ["interrupt", "terminate"]

    def test_waiter_started_during_broadcast_is_skipped(self, group):
        first, second = FakeChild("first"), FakeChild("second")
        second_messages = []

        def callback(message):
            if message is Token.HEALTH_CHECK and second not in group:
                group.start(waiter(group, second, second_messages, []))

        def first_waiter():
            yield from group.wait_for(first, callback)

        group.start(first_waiter())
        group.health_check()

        assert second in group
        assert second_messages == []

    def test_waiter_finished_during_broadcast_is_skipped(self, group):
        """A waiter finished by an earlier callback in the same pass is not resumed."""
        first, second = FakeChild("first"), FakeChild("second")
        second_messages, second_results = [], []
        second_waiter = waiter(group, second, second_messages, second_results)

        def callback(message):
            if message is Token.HEALTH_CHECK:
                second.exit(Status(exit_code=0))
                group.resume(second_waiter)

        def first_waiter():
            yield from group.wait_for(first, callback)

        group.start(first_waiter())
        group.start(second_waiter)

        group.health_check()

        assert second_results == [Status(exit_code=0)]
        assert second_messages == []
        assert second not in group
        assert first in group


class TestWaiting:
    def test_sleep_without_children(self, group):
        group.sleep(0)
        group.wait()

    def test_wait_runs_health_checks(self, group):
        child = FakeChild()
        messages, results = [], []

        def checking_waiter():
            def callback(message):
                messages.append(message)
                if message is Token.HEALTH_CHECK:
                    child.exit(Status(exit_code=0))

            results.append((yield from group.wait_for(child, callback)))

        group.start(checking_waiter())
        group.wait()

        assert Token.HEALTH_CHECK in messages
        assert results == [Status(exit_code=0)]

    def test_graceful_stop(self, group):
        child = FakeChild()
        results = []
        group.start(waiter(group, child, [], results))

        group.stop()

        assert child.signals == ["interrupt"]
        assert results == [Status(exit_code=0)]

    def test_stop_kills_stubborn_child(self, group):
        child = FakeChild(obeys_interrupt=False)
        results = []
        group.start(waiter(group, child, [], results))

        started = time.monotonic()
        group.stop()

        assert time.monotonic() - started < group.graceful_timeout + 1.0
        assert child.signals == ["interrupt", "kill"]
        assert results == [Status.killed()]
        assert not group.is_running

    def test_immediate_stop_skips_interrupt(self, group):
        child = FakeChild()
        results = []
        group.start(waiter(group, child, [], results))

        group.stop(False)

        assert child.signals == ["kill"]
        assert results == [Status.killed()]
