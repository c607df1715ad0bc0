"""Tests for deferred signal delivery."""

import os
import signal

import pytest

from corral.error import Interrupt, Reload
from corral.signals import SignalTrap


@pytest.fixture
def trap():
    trap = SignalTrap()
    yield trap
    trap.restore()


class TestSignalTrap:
    def test_deferred_until_interruptible(self, trap):
        trap.install([signal.SIGUSR1])

        os.kill(os.getpid(), signal.SIGUSR1)
        assert trap.pending == [signal.SIGUSR1]

        with pytest.raises(Reload):
            with trap.interruptible():
                pass

        assert trap.pending == []

    def test_immediate_inside_interruptible(self, trap):
        trap.install([signal.SIGINT])

        with pytest.raises(Interrupt):
            with trap.interruptible():
                os.kill(os.getpid(), signal.SIGINT)

    def test_restore(self, trap):
        previous = signal.getsignal(signal.SIGUSR1)

        with trap.trapped([signal.SIGUSR1]):
            assert trap.installed

        assert not trap.installed
        assert signal.getsignal(signal.SIGUSR1) is previous

    def test_untrappable_signal(self, trap):
        with pytest.raises(ValueError):
            trap.install([signal.SIGKILL])

    def test_interrupt_is_keyboard_interrupt(self):
        assert issubclass(Interrupt, KeyboardInterrupt)
