"""
Mark-and-sweep bookkeeping for keyed children.

A container that runs one child per configuration file (or directory, or
tenant) spawns each with a stable key. On reload every entry is cleared,
the setup code re-spawns the keys that still exist, which marks them
again, and whatever is left unmarked is stopped.
"""


class Keyed:
    """A key/value pair that can be marked as still in use."""

    def __init__(self, key, value):
        self.key = key
        self.value = value
        self.marked = True

    def mark(self):
        self.marked = True

    def clear(self):
        self.marked = False

    def stop(self) -> bool:
        """Stop the value if it was not marked. Returns whether it was stopped."""
        if self.marked:
            return False

        self.value.stop()
        return True

    def __repr__(self):
        return f"<Keyed {self.key!r} marked={self.marked}>"
