"""Byte sinks: destinations for ConversionEngine.pipe().

WHY: Piping drives a source's bytes into a destination and must be able
to tell that destination either "no more data" or "abort, something
failed". A small sink interface gives every destination those two
endings.

HOW: ByteSink is an ABC with async ``write``, ``close`` and ``abort``.
as_sink() wraps what callers usually have at hand: a path becomes a
FileSink, anything with a ``write`` method becomes a FileObjectSink.

RULES:
- close() is the success signal; pipe() resolves only after it returns
- abort() discards what it can (FileSink removes the partial file)
- Writes happen in source order, one window at a time
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, BinaryIO, Optional, Union

from payload_converter.core.errors import UnrecognizedInputError

logger = logging.getLogger(__name__)


class ByteSink(ABC):
    """Abstract destination for piped bytes."""

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """Accept the next window of bytes."""

    async def close(self) -> None:
        """Signal that no more data will be written."""

    async def abort(self, error: Optional[BaseException] = None) -> None:
        """Release the destination after a failure."""


class BufferSink(ByteSink):
    """Collects piped bytes in memory."""

    def __init__(self) -> None:
        self._buffer = bytearray()
        self.closed = False
        self.aborted = False

    async def write(self, data: bytes) -> None:
        self._buffer += data

    async def close(self) -> None:
        self.closed = True

    async def abort(self, error: Optional[BaseException] = None) -> None:
        self.aborted = True

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


class FileSink(ByteSink):
    """Writes to a file path; the file is created on the first write."""

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self.path = Path(path)
        self._fh: Optional[BinaryIO] = None

    def _open(self) -> BinaryIO:
        if self._fh is None:
            self._fh = open(self.path, "wb")
        return self._fh

    async def write(self, data: bytes) -> None:
        fh = self._open()
        await asyncio.to_thread(fh.write, data)

    async def close(self) -> None:
        # An empty payload still produces an (empty) file
        fh = self._open()
        await asyncio.to_thread(fh.close)

    async def abort(self, error: Optional[BaseException] = None) -> None:
        if self._fh is None:
            return
        self._fh.close()
        logger.debug("Removing partial output %s", self.path)
        self.path.unlink(missing_ok=True)


class FileObjectSink(ByteSink):
    """Writes to any object with ``write`` (sync or async).

    The object is flushed on close but not closed; it belongs to the caller.
    """

    def __init__(self, fileobj: Any) -> None:
        self.fileobj = fileobj

    async def write(self, data: bytes) -> None:
        result = self.fileobj.write(data)
        if inspect.isawaitable(result):
            await result

    async def close(self) -> None:
        flush = getattr(self.fileobj, "flush", None)
        if flush is not None:
            result = flush()
            if inspect.isawaitable(result):
                await result


def as_sink(destination: Any) -> ByteSink:
    """Return ``destination`` as a ByteSink.

    Raises:
        UnrecognizedInputError: If the destination is not a sink, a
            path, or a writable object.
    """
    if isinstance(destination, ByteSink):
        return destination
    if isinstance(destination, (str, os.PathLike)):
        return FileSink(destination)
    if callable(getattr(destination, "write", None)):
        return FileObjectSink(destination)
    raise UnrecognizedInputError(type(destination).__name__)
