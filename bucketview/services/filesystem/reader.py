"""Seekable byte stream over a range-fetch function."""

from __future__ import annotations

import io
from typing import Callable

RangeFetch = Callable[[int, memoryview], int]


class SeekableRangeReader(io.RawIOBase):
    """Expose a ranged remote object as a standard seek + read stream.

    ``fetch(offset, buffer)`` fills ``buffer`` starting at ``offset`` and
    returns the number of bytes written. Nothing is buffered locally beyond
    the caller's buffer. Seeks are not clamped: a negative or past-the-end
    offset only surfaces on the next read (past the end reads as EOF).

    Not safe for concurrent use; hand one reader to one caller.
    """

    def __init__(self, fetch: RangeFetch, size: int, offset: int = 0):
        super().__init__()
        self._fetch = fetch
        self._size = size
        self._offset = offset

    @property
    def size(self) -> int:
        return self._size

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def writable(self) -> bool:
        return False

    def readinto(self, b) -> int:
        if self._offset >= self._size:
            return 0
        view = memoryview(b).cast('B')
        if not len(view):
            return 0
        n = self._fetch(self._offset, view)
        if n > 0:
            self._offset += n
        return n

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            self._offset = offset
        elif whence == io.SEEK_CUR:
            self._offset += offset
        elif whence == io.SEEK_END:
            self._offset = self._size + offset
        else:
            raise ValueError(f"invalid whence ({whence!r})")
        return self._offset

    def tell(self) -> int:
        return self._offset
