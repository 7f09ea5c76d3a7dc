"""Push- and pull-stream converters.

WHY: Streams are the only kinds that never hold the whole payload.
Converting into a stream must stay lazy: the returned stream computes
one window per request (pull) or per delivery (push), and owns the
source until it is drained or released.

HOW: As sources, streams become window iterators through the bridge
(pull_windows, push_windows). As targets, the source's window iterator
is handed to pull_from_windows/push_from_windows unopened; no byte is
read until the consumer asks.

RULES:
- Stream sizes are unknown (size_of returns None)
- Releasing the returned stream releases the source it wraps
- merge drains inputs in order and releases the rest on error
"""

from __future__ import annotations

from typing import Any, AsyncIterator, List

from payload_converter.converters.base import BaseConverter
from payload_converter.core.kinds import Kind
from payload_converter.core.options import ConvertOptions
from payload_converter.streams import bridge
from payload_converter.streams.pull import PullStream
from payload_converter.streams.push import PushStream


class PullStreamConverter(BaseConverter):
    kind = Kind.PULL

    @property
    def name(self) -> str:
        return "Pull stream"

    def empty(self) -> PullStream:
        return PullStream.empty()

    def _iter_windows(self, value: PullStream, options: ConvertOptions) -> AsyncIterator[bytes]:
        return bridge.pull_windows(value, options.chunk_size)

    async def _convert(self, source: BaseConverter, value: Any, options: ConvertOptions) -> PullStream:
        return bridge.pull_from_windows(source.iter_windows(value, options))

    async def _from_windows(self, windows: AsyncIterator[bytes], options: ConvertOptions) -> PullStream:
        return bridge.pull_from_windows(windows)

    def _merge(self, chunks: List[PullStream]) -> PullStream:
        return bridge.merge_pull(chunks)


class PushStreamConverter(BaseConverter):
    kind = Kind.PUSH

    @property
    def name(self) -> str:
        return "Push stream"

    def empty(self) -> PushStream:
        return PushStream.empty()

    def _iter_windows(self, value: PushStream, options: ConvertOptions) -> AsyncIterator[bytes]:
        return bridge.push_windows(value, options.chunk_size)

    async def _convert(self, source: BaseConverter, value: Any, options: ConvertOptions) -> PushStream:
        return bridge.push_from_windows(source.iter_windows(value, options))

    async def _from_windows(self, windows: AsyncIterator[bytes], options: ConvertOptions) -> PushStream:
        return bridge.push_from_windows(windows)

    def _merge(self, chunks: List[PushStream]) -> PushStream:
        return bridge.merge_push(chunks)
