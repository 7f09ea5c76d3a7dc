"""Push streams: producer-driven chunk sources.

WHY: Some sources deliver data on their own schedule (a socket reader,
an encoder loop). The consumer cannot ask for the next chunk; it can
only subscribe, signal back-pressure, and unsubscribe.

HOW: PushStream holds an async producer ``producer(emit)`` that awaits
``emit(chunk)`` for each chunk and returns at end-of-data. subscribe()
starts the producer in its own task and connects it to the subscriber
through a bounded asyncio.Queue. The subscription scope owns the task:
leaving the ``async with`` block cancels the producer and waits for it,
on success, on error, and on early exit alike.

RULES:
- One subscription per stream; a second subscribe() raises
  StreamConsumedError
- A full queue or a paused subscription suspends ``emit`` (back-pressure)
- A producer error is delivered to the subscriber after the chunks
  emitted before it, then iteration stops
- Chunk order is preserved
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterable, AsyncIterator, Awaitable, Callable, Iterable, Optional

from payload_converter import config
from payload_converter.core.errors import StreamConsumedError

logger = logging.getLogger(__name__)

Emit = Callable[[Any], Awaitable[None]]
Producer = Callable[[Emit], Awaitable[None]]

_END = object()


class _Failure:
    def __init__(self, error: BaseException) -> None:
        self.error = error


class Subscription:
    """The consumer side of a PushStream.

    Iterate it with ``async for``; call pause()/resume() to throttle the
    producer and cancel() to unsubscribe early.
    """

    def __init__(self, high_water_mark: int) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=high_water_mark)
        self._flowing = asyncio.Event()
        self._flowing.set()
        self._task: Optional[asyncio.Task] = None
        self._finished = False

    @property
    def paused(self) -> bool:
        return not self._flowing.is_set()

    def pause(self) -> None:
        self._flowing.clear()

    def resume(self) -> None:
        self._flowing.set()

    async def _emit(self, chunk: Any) -> None:
        await self._flowing.wait()
        await self._queue.put(chunk)

    async def _run(self, producer: Producer) -> None:
        try:
            await producer(self._emit)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            await self._queue.put(_Failure(exc))
            return
        await self._queue.put(_END)

    def _start(self, producer: Producer) -> None:
        self._task = asyncio.ensure_future(self._run(producer))

    async def cancel(self) -> None:
        """Stop the producer (if still running) and wait for it to finish."""
        self._finished = True
        task = self._task
        if task is None or task.done():
            return
        logger.debug("Cancelling push stream producer")
        task.cancel()
        await asyncio.wait([task])

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Any:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            self._finished = True
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self._finished = True
            raise item.error
        return item


class PushStream:
    """A single-subscription, producer-driven sequence of byte chunks."""

    def __init__(self, producer: Producer, high_water_mark: Optional[int] = None) -> None:
        self._producer = producer
        self.high_water_mark = high_water_mark or config.PUSH_HIGH_WATER_MARK
        self._subscribed = False

    @classmethod
    def empty(cls) -> PushStream:
        async def produce(emit: Emit) -> None:
            return None

        return cls(produce)

    @classmethod
    def from_iterable(cls, chunks: Iterable[Any]) -> PushStream:
        async def produce(emit: Emit) -> None:
            for chunk in chunks:
                await emit(chunk)

        return cls(produce)

    @classmethod
    def from_async_iterable(cls, chunks: AsyncIterable[Any]) -> PushStream:
        async def produce(emit: Emit) -> None:
            async for chunk in chunks:
                await emit(chunk)

        return cls(produce)

    @property
    def subscribed(self) -> bool:
        return self._subscribed

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[Subscription]:
        """Start the producer and yield its Subscription.

        Raises:
            StreamConsumedError: If the stream already had a subscriber.
        """
        if self._subscribed:
            raise StreamConsumedError("PushStream already has a subscriber")
        self._subscribed = True

        subscription = Subscription(self.high_water_mark)
        subscription._start(self._producer)
        try:
            yield subscription
        finally:
            await subscription.cancel()
