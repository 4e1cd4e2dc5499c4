from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from typing import IO

logger = logging.getLogger(__name__)

PAGE_SIZE = 4096

_TOKEN_RE = re.compile(rb"[^ \t\r\n\v\f]+")
_TERMINATORS = (b"\n", b"\r\n", b"\r")


class LineBuffer:
    """Reusable reader of arbitrarily long lines from a byte stream.

    The buffer starts at ``capacity`` bytes and doubles whenever a read fills
    it before reaching the end of the line, keeping what was already read.
    The content of the current line is ``self.data[:len(self)]``, terminator
    included.
    """

    def __init__(self, capacity: int = PAGE_SIZE) -> None:
        if capacity <= 0:
            raise ValueError(f"LineBuffer capacity should be positive: {capacity}")
        self._initial = capacity
        self.data = bytearray(capacity)
        self._length = 0
        self.error: OSError | None = None

    @property
    def capacity(self) -> int:
        return len(self.data)

    def __len__(self) -> int:
        return self._length

    def _grow(self) -> None:
        self.data.extend(bytes(len(self.data)))

    def readline(self, stream: IO[bytes]) -> bool:
        """Read the next line into the buffer.

        Returns False once the stream is exhausted or a read fails; the error,
        if any, is kept in ``self.error``.
        """
        self._length = 0
        self.error = None
        while True:
            room = len(self.data) - self._length
            try:
                chunk = stream.readline(room)
            except OSError as e:
                self.error = e
                logger.error("Line reading failed: %s", e)
                self._length = 0
                return False
            if not chunk:
                return self._length > 0
            self.data[self._length : self._length + len(chunk)] = chunk
            self._length += len(chunk)
            if chunk.endswith(b"\n") or len(chunk) < room:
                return True
            self._grow()

    def empty(self) -> bool:
        """True for a zero-length or terminator-only line."""
        return self._length == 0 or self.line() in _TERMINATORS

    def line(self) -> bytes:
        return bytes(self.data[: self._length])

    def tokens(self) -> Iterator[bytes]:
        """Whitespace separated tokens of the current line."""
        for match in _TOKEN_RE.finditer(self.data, 0, self._length):
            yield match.group()

    def clear(self) -> None:
        self._length = 0

    def reset(self) -> None:
        """Drop the content and shrink back to the initial capacity."""
        self.data = bytearray(self._initial)
        self._length = 0
        self.error = None

    def __repr__(self) -> str:
        return f"LineBuffer(length={self._length}, capacity={self.capacity})"
