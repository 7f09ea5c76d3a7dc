"""Pull streams: consumer-driven chunk sources.

WHY: Many byte sources (upload bodies, async generators, paged reads)
only produce the next chunk when asked. The engine needs one shape for
them that also guarantees the underlying resource is released exactly
once, whether the stream ends, fails, or is abandoned halfway.

HOW: PullStream wraps two callables: ``pull()`` returns the next chunk
or None at end-of-data, and an optional ``cancel()`` hook frees the
source. The in-flight read is kept as a future so release() can cancel
it and wait for it before running the hook.

RULES:
- release()/cancel() runs the hook at most once, on end-of-data, on a
  failed pull, or when called explicitly
- A pull after release returns None (end-of-data)
- Errors raised by ``pull()`` propagate unmodified after the release
- Single pass: a drained stream cannot be restarted
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, AsyncIterable, Awaitable, Callable, Iterable, Optional

logger = logging.getLogger(__name__)

PullFn = Callable[[], Awaitable[Any]]
CancelFn = Callable[[], Any]


async def _end_of_data() -> None:
    return None


class PullStream:
    """A single-pass, consumer-driven sequence of byte chunks.

    Chunks may be bytes-like objects or deferred objects. Use it as an
    async iterator, or call ``pull()`` directly; ``async with`` releases
    the source on exit.
    """

    def __init__(self, pull: PullFn, cancel: Optional[CancelFn] = None) -> None:
        self._pull = pull
        self._cancel = cancel
        self._read: Optional[asyncio.Future] = None
        self._released = False

    # -- construction helpers ------------------------------------------------

    @classmethod
    def empty(cls) -> PullStream:
        return cls(_end_of_data)

    @classmethod
    def from_async_iterable(cls, iterable: AsyncIterable[Any]) -> PullStream:
        """Wrap an async iterable; its ``aclose()`` (if any) is the cancel hook."""
        iterator = iterable.__aiter__()

        async def pull() -> Any:
            try:
                return await iterator.__anext__()
            except StopAsyncIteration:
                return None

        async def cancel() -> None:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

        return cls(pull, cancel)

    @classmethod
    def from_iterable(cls, chunks: Iterable[Any]) -> PullStream:
        iterator = iter(chunks)

        async def pull() -> Any:
            return next(iterator, None)

        def cancel() -> None:
            close = getattr(iterator, "close", None)
            if close is not None:
                close()

        return cls(pull, cancel)

    # -- consumption ---------------------------------------------------------

    @property
    def released(self) -> bool:
        return self._released

    async def pull(self) -> Any:
        """Return the next chunk, or None once the source is exhausted."""
        if self._released:
            return None

        read = asyncio.ensure_future(self._pull())
        self._read = read
        try:
            chunk = await read
        except asyncio.CancelledError:
            if self._released and read.cancelled():
                # The read was cut short by release()
                return None
            await self.release()
            raise
        except Exception:
            await self.release()
            raise
        finally:
            self._read = None

        if chunk is None:
            await self.release()
        return chunk

    async def release(self) -> None:
        """Release the source exactly once, cancelling any in-flight read."""
        if self._released:
            return
        self._released = True

        read = self._read
        if read is not None and not read.done():
            read.cancel()
            await asyncio.wait([read])

        if self._cancel is not None:
            logger.debug("Releasing pull stream source")
            result = self._cancel()
            if inspect.isawaitable(result):
                await result

    cancel = release

    def __aiter__(self) -> PullStream:
        return self

    async def __anext__(self) -> Any:
        chunk = await self.pull()
        if chunk is None:
            raise StopAsyncIteration
        return chunk

    async def __aenter__(self) -> PullStream:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.release()
