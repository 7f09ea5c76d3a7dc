"""Deferred objects: sliceable binary handles read asynchronously.

WHY: Large payloads (files, remote objects) should not be loaded into
memory just to be re-encoded. A DeferredObject knows its size up front
and hands out byte ranges on request, so converters can walk it one
window at a time.

HOW: DeferredObject is an ABC with two requirements, ``size`` and
``read_range(start, end)``. Slicing never reads; it returns a view
(SlicedBlob) that offsets later reads into the parent. Concrete kinds:

  MemoryBlob:    bytes already in memory
  SlicedBlob:    a byte range of another deferred object
  CompositeBlob: several deferred objects back to back (merge result)
  FileBlob:      a file on disk, read in a worker thread

RULES:
- ``slice`` clamps its bounds and never performs I/O
- A read of an empty range returns b"" without touching the source
- Errors from the underlying read propagate unmodified
"""

from __future__ import annotations

import asyncio
import bisect
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, AsyncIterator, List, Optional, Sequence, Tuple, Union


def clamp_range(size: int, start: int = 0, end: Optional[int] = None) -> Tuple[int, int]:
    """Clamp [start, end) into [0, size]; end defaults to size."""
    start = min(max(start, 0), size)
    end = size if end is None else min(max(end, start), size)
    return start, end


async def read_windows(
    source: Any, chunk_size: int, start: int = 0, end: Optional[int] = None
) -> AsyncIterator[bytes]:
    """Read ``source[start:end]`` in windows of at most ``chunk_size`` bytes.

    Works for any object with ``size`` and an async ``read_range``.
    """
    pos, end = clamp_range(source.size, start, end)
    while pos < end:
        stop = min(pos + chunk_size, end)
        yield bytes(await source.read_range(pos, stop))
        pos = stop


class DeferredObject(ABC):
    """Abstract base for asynchronously readable binary handles."""

    @property
    @abstractmethod
    def size(self) -> int:
        """Total size in bytes."""

    @abstractmethod
    async def read_range(self, start: int, end: int) -> bytes:
        """Read bytes [start, end). Callers pass bounds within [0, size]."""

    def slice(self, start: int = 0, end: Optional[int] = None) -> DeferredObject:
        start, end = clamp_range(self.size, start, end)
        if start == 0 and end == self.size:
            return self
        return SlicedBlob(self, start, end)

    async def read(self) -> bytes:
        if self.size == 0:
            return b""
        return await self.read_range(0, self.size)

    def iter_windows(self, chunk_size: int) -> AsyncIterator[bytes]:
        return read_windows(self, chunk_size)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(size={self.size})"


class MemoryBlob(DeferredObject):
    def __init__(self, data: Union[bytes, bytearray, memoryview] = b"") -> None:
        self._data = bytes(data)

    @property
    def size(self) -> int:
        return len(self._data)

    async def read_range(self, start: int, end: int) -> bytes:
        return self._data[start:end]


class SlicedBlob(DeferredObject):
    """A byte range of a parent deferred object.

    The parent may be any object with ``size`` and ``read_range``;
    slicing a SlicedBlob re-slices its parent instead of nesting.
    """

    def __init__(self, parent: Any, start: int, end: int) -> None:
        if isinstance(parent, SlicedBlob):
            start += parent.start
            end += parent.start
            parent = parent.parent
        self.parent = parent
        self.start = start
        self.end = end

    @property
    def size(self) -> int:
        return self.end - self.start

    async def read_range(self, start: int, end: int) -> bytes:
        if start >= end:
            return b""
        return await self.parent.read_range(self.start + start, self.start + end)


class CompositeBlob(DeferredObject):
    """Several deferred objects presented as one contiguous range."""

    def __init__(self, parts: Sequence[Any]) -> None:
        self.parts: List[Any] = [part for part in parts if part.size]
        self._offsets: List[int] = []
        total = 0
        for part in self.parts:
            self._offsets.append(total)
            total += part.size
        self._size = total

    @property
    def size(self) -> int:
        return self._size

    async def read_range(self, start: int, end: int) -> bytes:
        if start >= end:
            return b""
        out = bytearray()
        index = bisect.bisect_right(self._offsets, start) - 1
        while start < end and index < len(self.parts):
            part = self.parts[index]
            offset = self._offsets[index]
            stop = min(end, offset + part.size)
            out += await part.read_range(start - offset, stop - offset)
            start = stop
            index += 1
        return bytes(out)


class FileBlob(DeferredObject):
    """A file on disk. The size is taken when the blob is created."""

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self.path = Path(path)
        self._size = self.path.stat().st_size

    @property
    def size(self) -> int:
        return self._size

    def _read_sync(self, start: int, end: int) -> bytes:
        with open(self.path, "rb") as fh:
            fh.seek(start)
            return fh.read(end - start)

    async def read_range(self, start: int, end: int) -> bytes:
        if start >= end:
            return b""
        return await asyncio.to_thread(self._read_sync, start, end)

    def __repr__(self) -> str:
        return f"FileBlob({str(self.path)!r}, size={self._size})"
