"""Bridging between streams and the chunked-window model.

WHY: Every conversion is a walk over byte windows. Block kinds produce
windows by slicing; stream kinds produce them by pulling or by
subscribing. This module turns streams into window iterators, window
iterators back into streams, and reshapes windows (range clipping,
exact-size rechunking) on the way.

HOW: Window iterators are async generators. Each adapter owns the one
it wraps and closes it in ``finally``, so abandoning the outermost
iterator (``aclose()``) walks down the chain and releases the stream at
the bottom: a PullStream is released, a PushStream subscription is
cancelled.

RULES:
- Nothing is read ahead of demand except the push queue's high-water mark
- Chunk order is preserved end to end
- A chunk may be bytes-like or a deferred object; deferred chunks are
  read window by window
- Merged streams drain their inputs one after another and release the
  undrained ones on error or early exit
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, List, Optional, Sequence

from payload_converter.streams.deferred import read_windows
from payload_converter.streams.pull import PullStream
from payload_converter.streams.push import Emit, PushStream

logger = logging.getLogger(__name__)

Windows = AsyncIterator[bytes]


async def aclose(iterator: Any) -> None:
    """Close an async generator (no-op for iterators without ``aclose``)."""
    close = getattr(iterator, "aclose", None)
    if close is not None:
        await close()


# ---------------------------------------------------------------------------
# Chunks → windows
# ---------------------------------------------------------------------------


async def chunk_windows(chunk: Any, chunk_size: int) -> Windows:
    """Yield the bytes of one stream chunk, reading deferred chunks lazily."""
    if hasattr(chunk, "read_range"):
        async for window in read_windows(chunk, chunk_size):
            yield window
        return
    data = bytes(chunk) if not isinstance(chunk, bytes) else chunk
    if data:
        yield data


async def pull_windows(stream: PullStream, chunk_size: int) -> Windows:
    """Drain a PullStream as byte windows; the stream is released on exit."""
    try:
        while True:
            chunk = await stream.pull()
            if chunk is None:
                return
            async for window in chunk_windows(chunk, chunk_size):
                yield window
    finally:
        await stream.release()


async def push_windows(stream: PushStream, chunk_size: int) -> Windows:
    """Subscribe to a PushStream and yield its bytes; unsubscribes on exit."""
    async with stream.subscribe() as subscription:
        async for chunk in subscription:
            async for window in chunk_windows(chunk, chunk_size):
                yield window


# ---------------------------------------------------------------------------
# Window shaping
# ---------------------------------------------------------------------------


async def clip(windows: Windows, start: int = 0, end: Optional[int] = None) -> Windows:
    """Keep only bytes [start, end) of the window sequence.

    The upstream is closed as soon as ``end`` is reached, so a stream
    source is released without being drained.
    """
    pos = 0
    try:
        if end is not None and end <= start:
            return
        async for window in windows:
            size = len(window)
            lo = max(start - pos, 0)
            hi = size if end is None else min(end - pos, size)
            pos += size
            if lo < hi:
                yield window if (lo == 0 and hi == size) else window[lo:hi]
            if end is not None and pos >= end:
                return
    finally:
        await aclose(windows)


async def rechunk(windows: Windows, chunk_size: int) -> Windows:
    """Re-slice windows so every window but the last is exactly ``chunk_size``."""
    buffer = bytearray()
    try:
        async for window in windows:
            if not buffer and len(window) == chunk_size:
                yield window
                continue
            buffer += window
            while len(buffer) >= chunk_size:
                yield bytes(buffer[:chunk_size])
                del buffer[:chunk_size]
        if buffer:
            yield bytes(buffer)
    finally:
        await aclose(windows)


async def collect(windows: Windows) -> bytes:
    """Concatenate a window sequence into one bytes object."""
    parts: List[bytes] = []
    try:
        async for window in windows:
            parts.append(window)
    finally:
        await aclose(windows)
    return b"".join(parts)


# ---------------------------------------------------------------------------
# Windows → streams
# ---------------------------------------------------------------------------


def pull_from_windows(windows: Windows) -> PullStream:
    """A PullStream that computes one window per pull, on demand."""
    return PullStream.from_async_iterable(windows)


def push_from_windows(windows: Windows) -> PushStream:
    """A PushStream whose producer emits windows as fast as back-pressure allows."""

    async def produce(emit: Emit) -> None:
        try:
            async for window in windows:
                await emit(window)
        finally:
            await aclose(windows)

    return PushStream(produce)


# ---------------------------------------------------------------------------
# Stream merge
# ---------------------------------------------------------------------------


def merge_pull(streams: Sequence[PullStream]) -> PullStream:
    """Concatenate pull streams: each is drained before the next is pulled."""
    pending = list(streams)

    async def drain() -> AsyncIterator[Any]:
        try:
            while pending:
                async for chunk in pending[0]:
                    yield chunk
                pending.pop(0)
        finally:
            for stream in pending:
                await stream.release()

    return PullStream.from_async_iterable(drain())


def merge_push(streams: Sequence[PushStream]) -> PushStream:
    """Concatenate push streams by subscribing to each in turn.

    Streams after a failing one are never subscribed, so their
    producers never start.
    """
    pending = list(streams)

    async def produce(emit: Emit) -> None:
        for stream in pending:
            async with stream.subscribe() as subscription:
                async for chunk in subscription:
                    await emit(chunk)

    return PushStream(produce)
