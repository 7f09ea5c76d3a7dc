"""Shared test fixtures for the payload_converter test suite.

WHY: Most test modules need the same engine, deterministic payloads, a
small chunk size, and instrumented sources that record how they were
used (reads, releases). Centralizing them keeps the tests short.

HOW: Plain pytest fixtures plus a few helper classes. Async code is
driven with asyncio.run() inside synchronous tests.

RULES:
- CHUNK is a small multiple of 6 so window boundaries are hit cheaply
- payload(n) is deterministic and covers all 256 byte values
- Instrumented sources never touch disk or network
"""

from __future__ import annotations

from typing import Any, List, Optional

import pytest

from payload_converter.core.capabilities import Capabilities
from payload_converter.engine import ConversionEngine
from payload_converter.streams.deferred import DeferredObject
from payload_converter.streams.pull import PullStream
from payload_converter.streams.push import PushStream

CHUNK = 96


def payload(size: int) -> bytes:
    """Deterministic bytes of the given size."""
    return bytes((i * 7 + 3) % 256 for i in range(size))


class CountingBlob(DeferredObject):
    """In-memory deferred object that records every read_range call."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.reads: List[tuple] = []

    @property
    def size(self) -> int:
        return len(self.data)

    async def read_range(self, start: int, end: int) -> bytes:
        self.reads.append((start, end))
        return self.data[start:end]


class FailingBlob(CountingBlob):
    """Deferred object whose reads at or past ``fail_at`` raise OSError."""

    def __init__(self, data: bytes, fail_at: int) -> None:
        super().__init__(data)
        self.fail_at = fail_at

    async def read_range(self, start: int, end: int) -> bytes:
        if end > self.fail_at:
            raise OSError("disk went away")
        return await super().read_range(start, end)


class TrackedPull:
    """Builds a PullStream over chunks and records pulls and releases."""

    def __init__(self, chunks: List[Any], error: Optional[BaseException] = None) -> None:
        self.chunks = list(chunks)
        self.error = error
        self.pulls = 0
        self.releases = 0

    def stream(self) -> PullStream:
        async def pull() -> Any:
            self.pulls += 1
            if self.chunks:
                return self.chunks.pop(0)
            if self.error is not None:
                raise self.error
            return None

        async def cancel() -> None:
            self.releases += 1

        return PullStream(pull, cancel)


def split(data: bytes, size: int) -> List[bytes]:
    return [data[i : i + size] for i in range(0, len(data), size)]


def push_of(chunks: List[Any], error: Optional[BaseException] = None) -> PushStream:
    async def produce(emit) -> None:
        for chunk in chunks:
            await emit(chunk)
        if error is not None:
            raise error

    return PushStream(produce)


async def drain(stream: Any) -> bytes:
    """Collect every byte of a PullStream or PushStream."""
    out = bytearray()
    if isinstance(stream, PushStream):
        async with stream.subscribe() as subscription:
            async for chunk in subscription:
                out += chunk
    else:
        async for chunk in stream:
            out += chunk
    return bytes(out)


@pytest.fixture
def engine() -> ConversionEngine:
    """An engine with every capability enabled."""
    return ConversionEngine(Capabilities())


@pytest.fixture
def blocks_only_engine() -> ConversionEngine:
    """An engine without deferred objects or streams."""
    return ConversionEngine(
        Capabilities(deferred_object=False, push_stream=False, pull_stream=False)
    )
