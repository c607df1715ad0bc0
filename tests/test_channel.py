"""Unit tests for the JSON line channel."""

import os

import pytest

from corral.channel import INCOMPLETE, Channel


@pytest.fixture
def channel():
    channel = Channel()
    yield channel
    channel.close()


class TestChannel:
    def test_send_and_receive(self, channel):
        channel.send(ready=True, status="ok")

        assert channel.receive() == {"ready": True, "status": "ok"}

    def test_eof(self, channel):
        channel.close_write()

        assert channel.receive() is None

    def test_pending_after_batched_write(self, channel):
        channel.send(index=1)
        channel.send(index=2)

        assert channel.receive() == {"index": 1}
        assert channel.pending
        assert channel.receive() == {"index": 2}
        assert not channel.pending

    def test_unparsable_line(self, channel):
        os.write(channel.output, b"hello world\n")

        assert channel.receive() == {"line": "hello world"}

    def test_non_object_json(self, channel):
        os.write(channel.output, b"[1, 2]\n")

        assert channel.receive() == {"line": "[1, 2]"}

    def test_partial_line_does_not_block(self, channel):
        os.write(channel.output, b'{"ready": ')

        assert channel.receive() is INCOMPLETE
        assert channel.receive() is INCOMPLETE

        os.write(channel.output, b"true}\n")

        assert channel.receive() == {"ready": True}

    def test_nothing_to_read(self, channel):
        assert channel.receive() is INCOMPLETE

    def test_trailing_output_at_eof(self, channel):
        os.write(channel.output, b"partial")
        channel.close_write()

        assert channel.receive() is INCOMPLETE
        assert channel.receive() == {"line": "partial"}
        assert channel.receive() is None

    def test_close_is_idempotent(self, channel):
        channel.close()
        channel.close()

        assert channel.closed
