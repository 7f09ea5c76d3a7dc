"""Bytes-family converters: bytes, bytearray, memoryview.

WHY: Materialized bytes are the pivot every other kind passes through.
Python offers three flavours; callers get back the one they asked for.

HOW: A shared _BufferConverter slices the source through a memoryview
(no copy until a window is taken), applies start/length by slicing, and
uses the source's direct ``to_bytes`` edge as a target. The subclasses
differ only in how the final value is built.

RULES:
- bytes merge is one join; bytearray/memoryview merge fills one
  pre-sized buffer
- A memoryview result views a fresh bytearray, never caller memory
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, AsyncIterator, List

from payload_converter.converters.base import BaseConverter
from payload_converter.core.kinds import Kind
from payload_converter.core.options import ConvertOptions
from payload_converter.streams import bridge


def _presized(chunks: List[Any]) -> bytearray:
    total = sum(memoryview(chunk).nbytes for chunk in chunks)
    out = bytearray(total)
    pos = 0
    for chunk in chunks:
        view = memoryview(chunk).cast("B")
        out[pos : pos + len(view)] = view
        pos += len(view)
    return out


class _BufferConverter(BaseConverter):
    native_range = True

    def _view(self, value: Any, options: ConvertOptions) -> memoryview:
        view = memoryview(value)
        if view.format != "B" or view.ndim != 1:
            view = view.cast("B")
        if options.has_range:
            start, end = options.resolve_range(len(view))
            view = view[start:end]
        return view

    def is_empty(self, value: Any) -> bool:
        return memoryview(value).nbytes == 0

    def size_of(self, value: Any, options: ConvertOptions) -> int:
        return memoryview(value).nbytes

    async def _iter_windows(self, value: Any, options: ConvertOptions) -> AsyncIterator[bytes]:
        view = self._view(value, options)
        step = options.chunk_size
        for pos in range(0, len(view), step):
            yield bytes(view[pos : pos + step])

    async def _to_bytes(self, value: Any, options: ConvertOptions) -> bytes:
        if type(value) is bytes and not options.has_range:
            return value
        return bytes(self._view(value, options))

    async def _convert(self, source: BaseConverter, value: Any, options: ConvertOptions) -> Any:
        return self._wrap(await source.to_bytes(value, options))

    async def _from_windows(self, windows: AsyncIterator[bytes], options: ConvertOptions) -> Any:
        return self._wrap(await bridge.collect(windows))

    @abstractmethod
    def _wrap(self, data: bytes) -> Any:
        """Build this flavour of buffer from pivot bytes."""


class BytesConverter(_BufferConverter):
    kind = Kind.BYTES

    @property
    def name(self) -> str:
        return "Bytes"

    def empty(self) -> bytes:
        return b""

    def _wrap(self, data: bytes) -> bytes:
        return data

    def _merge(self, chunks: List[bytes]) -> bytes:
        return b"".join(chunks)


class BytearrayConverter(_BufferConverter):
    kind = Kind.BYTEARRAY

    @property
    def name(self) -> str:
        return "Bytearray"

    def empty(self) -> bytearray:
        return bytearray()

    def _wrap(self, data: bytes) -> bytearray:
        return bytearray(data)

    def _merge(self, chunks: List[bytearray]) -> bytearray:
        return _presized(chunks)


class MemoryviewConverter(_BufferConverter):
    kind = Kind.MEMORYVIEW

    @property
    def name(self) -> str:
        return "Memoryview"

    def empty(self) -> memoryview:
        return memoryview(bytearray())

    def _wrap(self, data: bytes) -> memoryview:
        return memoryview(bytearray(data))

    def _merge(self, chunks: List[memoryview]) -> memoryview:
        return memoryview(_presized(chunks))
