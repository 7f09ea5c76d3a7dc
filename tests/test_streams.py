"""Tests for pull streams, push streams and the window bridge.

WHY: Streams own external resources. The contract that matters is that
a source is released exactly once (on end, on error, on early exit) and
that a push producer never runs further ahead than back-pressure allows.

HOW: TrackedPull and push_of from conftest record pulls and releases.
_settle() lets the event loop run a few rounds so background producers
reach their next suspension point before assertions.
"""

from __future__ import annotations

import asyncio

import pytest

from payload_converter.core.errors import StreamConsumedError
from payload_converter.core.kinds import Kind
from payload_converter.streams import bridge
from payload_converter.streams.deferred import MemoryBlob
from payload_converter.streams.pull import PullStream
from payload_converter.streams.push import PushStream

from tests.conftest import CHUNK, TrackedPull, drain, payload, push_of, split


async def _settle(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


async def _gen(items, log):
    try:
        for item in items:
            yield item
    finally:
        log.append("closed")


# ---------------------------------------------------------------------------
# PullStream
# ---------------------------------------------------------------------------


class TestPullStream:
    def test_release_once_at_end(self):
        tracked = TrackedPull([b"a", b"b"])
        stream = tracked.stream()

        async def _run():
            data = await drain(stream)
            return data, await stream.pull()

        data, after = asyncio.run(_run())
        assert data == b"ab"
        assert after is None
        assert tracked.releases == 1
        assert stream.released

    def test_pull_error_releases_then_propagates(self):
        tracked = TrackedPull([b"a"], error=OSError("boom"))
        stream = tracked.stream()

        with pytest.raises(OSError, match="boom"):
            asyncio.run(drain(stream))
        assert tracked.releases == 1

    def test_explicit_release_is_idempotent(self):
        tracked = TrackedPull([b"a"])
        stream = tracked.stream()

        async def _run():
            await stream.release()
            await stream.cancel()
            return await stream.pull()

        assert asyncio.run(_run()) is None
        assert tracked.releases == 1
        assert tracked.pulls == 0

    def test_release_cancels_pending_read(self):
        hooks = []

        async def _run():
            started = asyncio.Event()

            async def pull():
                started.set()
                await asyncio.Event().wait()

            stream = PullStream(pull, lambda: hooks.append("released"))
            pending = asyncio.ensure_future(stream.pull())
            await started.wait()
            await stream.release()
            return await pending

        assert asyncio.run(_run()) is None
        assert hooks == ["released"]

    def test_async_iterable_is_closed_on_release(self):
        log = []

        async def _run():
            stream = PullStream.from_async_iterable(_gen([b"a", b"b", b"c"], log))
            first = await stream.pull()
            await stream.release()
            return first

        assert asyncio.run(_run()) == b"a"
        assert log == ["closed"]

    def test_async_with_releases(self):
        tracked = TrackedPull([b"a", b"b"])

        async def _run():
            async with tracked.stream() as stream:
                return await stream.pull()

        assert asyncio.run(_run()) == b"a"
        assert tracked.releases == 1

    def test_from_iterable(self):
        stream = PullStream.from_iterable([b"ab", b"cd"])
        assert asyncio.run(drain(stream)) == b"abcd"


# ---------------------------------------------------------------------------
# PushStream
# ---------------------------------------------------------------------------


class TestPushStream:
    def test_chunks_arrive_in_order(self):
        assert asyncio.run(drain(push_of([b"a", b"b", b"c"]))) == b"abc"

    def test_second_subscription_is_rejected(self):
        stream = PushStream.from_iterable([b"a"])

        async def _run():
            async with stream.subscribe():
                with pytest.raises(StreamConsumedError):
                    async with stream.subscribe():
                        pass

        asyncio.run(_run())
        assert stream.subscribed

    def test_producer_error_after_emitted_chunks(self):
        stream = push_of([b"a", b"b"], error=OSError("producer died"))
        received = []

        async def _run():
            async with stream.subscribe() as subscription:
                async for chunk in subscription:
                    received.append(chunk)

        with pytest.raises(OSError, match="producer died"):
            asyncio.run(_run())
        assert received == [b"a", b"b"]

    def test_full_queue_suspends_producer(self):
        emitted = []

        async def produce(emit):
            for i in range(20):
                await emit(bytes([i]))
                emitted.append(i)

        async def _run():
            stream = PushStream(produce, high_water_mark=2)
            async with stream.subscribe() as subscription:
                await _settle()
                ahead = len(emitted)
                chunks = [chunk async for chunk in subscription]
            return ahead, chunks

        ahead, chunks = asyncio.run(_run())
        assert ahead == 2
        assert len(chunks) == 20

    def test_pause_and_resume(self):
        emitted = []

        async def produce(emit):
            for i in range(5):
                await emit(bytes([i]))
                emitted.append(i)

        async def _run():
            stream = PushStream(produce, high_water_mark=10)
            async with stream.subscribe() as subscription:
                subscription.pause()
                await _settle()
                while_paused = len(emitted)
                subscription.resume()
                chunks = [chunk async for chunk in subscription]
            return while_paused, subscription.paused, chunks

        while_paused, paused, chunks = asyncio.run(_run())
        assert while_paused == 0
        assert not paused
        assert b"".join(chunks) == bytes(range(5))

    def test_leaving_scope_stops_producer(self):
        state = {}

        async def produce(emit):
            try:
                while True:
                    await emit(b"x")
            finally:
                state["stopped"] = True

        async def _run():
            async with PushStream(produce).subscribe() as subscription:
                return await subscription.__anext__()

        assert asyncio.run(_run()) == b"x"
        assert state == {"stopped": True}

    def test_empty(self):
        assert asyncio.run(drain(PushStream.empty())) == b""


# ---------------------------------------------------------------------------
# Bridge
# ---------------------------------------------------------------------------


class TestBridge:
    def test_rechunk_gives_exact_windows(self):
        async def windows():
            for part in (b"a" * 5, b"b" * 200, b"c"):
                yield part

        async def _run():
            return [w async for w in bridge.rechunk(windows(), CHUNK)]

        result = asyncio.run(_run())
        assert [len(w) for w in result] == [CHUNK, CHUNK, 14]
        assert b"".join(result) == b"a" * 5 + b"b" * 200 + b"c"

    def test_clip_releases_pull_stream_early(self):
        tracked = TrackedPull(split(payload(500), 50))

        async def _run():
            windows = bridge.pull_windows(tracked.stream(), CHUNK)
            return await bridge.collect(bridge.clip(windows, 10, 60))

        assert asyncio.run(_run()) == payload(500)[10:60]
        assert tracked.pulls == 2
        assert tracked.releases == 1

    def test_deferred_chunks_inside_a_stream(self, engine):
        stream = PullStream.from_iterable([MemoryBlob(b"ab"), b"cd", bytearray(b"ef")])
        assert asyncio.run(engine.convert(stream, Kind.BYTES)) == b"abcdef"

    def test_pull_to_push_releases_source(self, engine):
        tracked = TrackedPull(split(payload(300), 70))

        async def _run():
            push = await engine.convert(tracked.stream(), Kind.PUSH, chunk_size=CHUNK)
            assert tracked.pulls == 0
            return await drain(push)

        assert asyncio.run(_run()) == payload(300)
        assert tracked.releases == 1

    def test_push_to_pull_release_stops_producer(self, engine):
        state = {}

        async def produce(emit):
            try:
                while True:
                    await emit(b"y" * 10)
            finally:
                state["stopped"] = True

        async def _run():
            pull = await engine.convert(PushStream(produce), Kind.PULL, chunk_size=CHUNK)
            first = await pull.pull()
            await pull.release()
            return first

        assert asyncio.run(_run()) == b"y" * CHUNK
        assert state == {"stopped": True}

    def test_pull_error_during_conversion_releases_source(self, engine):
        tracked = TrackedPull([b"abc"], error=OSError("read failed"))

        with pytest.raises(OSError, match="read failed"):
            asyncio.run(engine.convert(tracked.stream(), Kind.BASE64))
        assert tracked.releases == 1
