"""
Pipe carrying newline-delimited JSON messages from a child to its parent.

The parent keeps the read end and the child keeps the write end. Each side
must close the end it does not use, otherwise the parent never sees EOF
when the child goes away.

The read end is non-blocking: each readiness event performs at most one
read, and a partial line stays buffered until the rest of it arrives.
"""

import json
import logging
import os

logger = logging.getLogger(__name__)

READ_SIZE = 4096

# Returned by `receive` when the data read so far does not complete a line:
INCOMPLETE = object()


class Channel:
    """One OS pipe, framed as JSON lines."""

    def __init__(self):
        self.input, self.output = os.pipe()
        os.set_blocking(self.input, False)
        self._buffer = bytearray()

    def fileno(self) -> int:
        """The read end, used as the wait key by `Group`."""
        return self.input

    @property
    def pending(self) -> bool:
        """Whether a complete line is already buffered."""
        return b"\n" in self._buffer

    def close_read(self):
        if self.input is not None:
            os.close(self.input)
            self.input = None

    def close_write(self):
        if self.output is not None:
            os.close(self.output)
            self.output = None

    def close(self):
        self.close_read()
        self.close_write()

    @property
    def closed(self) -> bool:
        return self.input is None and self.output is None

    def send(self, **message):
        """Write one message. Used from the child side."""
        data = json.dumps(message).encode("utf-8") + b"\n"
        view = memoryview(data)
        while view:
            written = os.write(self.output, view)
            view = view[written:]

    def read_line(self):
        """Read one raw line.

        Returns None on EOF with nothing buffered, and `INCOMPLETE` when no
        complete line is available yet. Never blocks.
        """
        if b"\n" not in self._buffer:
            try:
                data = os.read(self.input, READ_SIZE)
            except BlockingIOError:
                return INCOMPLETE

            if not data:
                if self._buffer:
                    # Trailing output without a newline before the child exited:
                    line = bytes(self._buffer)
                    self._buffer.clear()
                    return line
                return None

            self._buffer += data
            if b"\n" not in self._buffer:
                return INCOMPLETE

        index = self._buffer.index(b"\n") + 1
        line = bytes(self._buffer[:index])
        del self._buffer[:index]
        return line

    def receive(self):
        """Read the next message, None on EOF, or `INCOMPLETE`.

        A line that is not a JSON object comes back as `{"line": text}`.
        """
        line = self.read_line()
        if line is None or line is INCOMPLETE:
            return line

        text = line.decode("utf-8", errors="replace")
        try:
            message = json.loads(text)
        except ValueError:
            logger.debug(f"Received unparsable line: {text!r}")
            return {"line": text.rstrip("\n")}

        if not isinstance(message, dict):
            return {"line": text.rstrip("\n")}

        return message

    def __repr__(self):
        return f"<Channel input={self.input} output={self.output}>"
