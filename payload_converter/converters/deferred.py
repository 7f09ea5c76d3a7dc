"""Deferred-object converter.

Reads a deferred object one window at a time through ``read_range``,
touching only the windows inside the requested byte range. Converting
into this kind wraps the pivot bytes in a MemoryBlob; a deferred
source with a range is sliced without reading anything.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, List

from payload_converter.converters.base import BaseConverter
from payload_converter.core.kinds import Kind
from payload_converter.core.options import ConvertOptions
from payload_converter.streams import bridge
from payload_converter.streams.deferred import (
    CompositeBlob,
    DeferredObject,
    MemoryBlob,
    SlicedBlob,
    read_windows,
)


def _bounds(value: Any, options: ConvertOptions):
    if not options.has_range:
        return 0, value.size
    return options.resolve_range(value.size)


class DeferredConverter(BaseConverter):
    kind = Kind.DEFERRED
    native_range = True

    @property
    def name(self) -> str:
        return "Deferred object"

    def empty(self) -> MemoryBlob:
        return MemoryBlob(b"")

    def is_empty(self, value: Any) -> bool:
        return value.size == 0

    def size_of(self, value: Any, options: ConvertOptions) -> int:
        return value.size

    def _iter_windows(self, value: Any, options: ConvertOptions) -> AsyncIterator[bytes]:
        start, end = _bounds(value, options)
        return read_windows(value, options.chunk_size, start, end)

    async def _convert(self, source: BaseConverter, value: Any, options: ConvertOptions) -> DeferredObject:
        if source.kind is Kind.DEFERRED:
            start, end = _bounds(value, options)
            if isinstance(value, DeferredObject):
                return value.slice(start, end)
            return SlicedBlob(value, start, end)
        return MemoryBlob(await source.to_bytes(value, options))

    async def _from_windows(self, windows: AsyncIterator[bytes], options: ConvertOptions) -> DeferredObject:
        return MemoryBlob(await bridge.collect(windows))

    def _merge(self, chunks: List[DeferredObject]) -> DeferredObject:
        return CompositeBlob(chunks)
