"""Unit tests for keyed mark-and-sweep."""

from unittest.mock import MagicMock

from corral.keyed import Keyed


class TestKeyed:
    def test_new_entries_are_marked(self):
        keyed = Keyed("x", MagicMock())
        assert keyed.marked

    def test_marked_entry_is_not_stopped(self):
        child = MagicMock()
        keyed = Keyed("x", child)

        assert keyed.stop() is False
        child.stop.assert_not_called()

    def test_cleared_entry_is_stopped(self):
        child = MagicMock()
        keyed = Keyed("x", child)
        keyed.clear()

        assert keyed.stop() is True
        child.stop.assert_called_once_with()

    def test_mark_after_clear(self):
        child = MagicMock()
        keyed = Keyed("x", child)
        keyed.clear()
        keyed.mark()

        assert keyed.stop() is False
