"""Tests for per-kind conversion through the engine.

WHY: The conversion table is where byte-exactness lives. These tests
check round trips across window boundaries for every kind, the base64
alignment rule, the identity fast path, empty inputs, and byte ranges.

HOW: A small chunk size (96 bytes) makes window boundaries cheap to
hit. Every async call runs through asyncio.run() inside a sync test.
"""

from __future__ import annotations

import asyncio
import base64

import pytest

from payload_converter.converters.binary import _BufferConverter
from payload_converter.converters.encoded import _EncodedStringConverter
from payload_converter.core.errors import MalformedInputError
from payload_converter.core.kinds import EncodedText, Kind
from payload_converter.core.options import normalize_options
from payload_converter.primitives.encoding import DATA_URL_PREFIX, encode_base64
from payload_converter.streams.deferred import DeferredObject, MemoryBlob
from payload_converter.streams.pull import PullStream
from payload_converter.streams.push import PushStream

from tests.conftest import CHUNK, CountingBlob, TrackedPull, drain, payload

SIZES = [0, 1, CHUNK - 1, CHUNK, CHUNK + 1, 3 * CHUNK]

# Text is excluded: arbitrary bytes are not valid UTF-8 (lossy narrowing)
BYTE_EXACT_KINDS = [kind for kind in Kind if kind is not Kind.TEXT]


def _tagged(value, kind):
    return EncodedText(value, kind.value) if kind.is_string else value


async def _back_to_bytes(engine, value, kind):
    if kind.is_string:
        value = EncodedText(value, kind.value)
    return await engine.convert(value, Kind.BYTES, chunk_size=CHUNK)


class TestRoundTrip:
    @pytest.mark.parametrize("size", SIZES)
    @pytest.mark.parametrize("kind", BYTE_EXACT_KINDS, ids=lambda k: k.value)
    def test_bytes_through_kind_and_back(self, engine, kind, size):
        data = payload(size)

        async def _run():
            converted = await engine.convert(data, kind, chunk_size=CHUNK)
            return await _back_to_bytes(engine, converted, kind)

        assert asyncio.run(_run()) == data

    @pytest.mark.parametrize("size", SIZES)
    def test_utf8_text_round_trip(self, engine, size):
        text = ("añ日😀" * size)[:size]

        async def _run():
            data = await engine.convert(text, Kind.BYTES, chunk_size=CHUNK)
            return data, await engine.convert(data, Kind.TEXT, chunk_size=CHUNK)

        data, back = asyncio.run(_run())
        assert data == text.encode("utf-8")
        assert back == text

    @pytest.mark.parametrize("size", SIZES)
    @pytest.mark.parametrize("target", BYTE_EXACT_KINDS, ids=lambda k: k.value)
    @pytest.mark.parametrize("source", BYTE_EXACT_KINDS, ids=lambda k: k.value)
    def test_every_pair_there_and_back(self, engine, source, target, size):
        data = payload(size)

        async def _run():
            original = await engine.convert(data, source, chunk_size=CHUNK)
            there = await engine.convert(_tagged(original, source), target, chunk_size=CHUNK)
            back = await engine.convert(_tagged(there, target), source, chunk_size=CHUNK)
            return original, back, await _back_to_bytes(engine, back, source)

        original, back, back_bytes = asyncio.run(_run())
        assert back_bytes == data
        # Streams are consumed and deferred objects compare by identity
        if not source.is_stream and source is not Kind.DEFERRED:
            assert back == original

    def test_hex_to_deferred_pivots_through_bytes(self, engine):
        async def _run():
            blob = await engine.convert(EncodedText("00ff10", "hex"), Kind.DEFERRED)
            return blob, await blob.read()

        blob, data = asyncio.run(_run())
        assert isinstance(blob, DeferredObject)
        assert data == b"\x00\xff\x10"


class TestConcreteScenarios:
    def test_ab_to_base64_and_back(self, engine):
        async def _run():
            encoded = await engine.convert("ab", Kind.BASE64)
            decoded = await engine.convert(EncodedText(encoded, "base64"), Kind.TEXT)
            return encoded, decoded

        assert asyncio.run(_run()) == ("YWI=", "ab")

    def test_base64_across_chunk_boundary(self, engine):
        data = payload(CHUNK + 10)

        async def _run():
            encoded = await engine.convert(data, Kind.BASE64, chunk_size=CHUNK)
            decoded = await engine.convert(encoded, Kind.BYTES, chunk_size=CHUNK, input_encoding="base64")
            return encoded, decoded

        encoded, decoded = asyncio.run(_run())
        # Only the final fragment is padded, so the result is standard base64
        assert encoded == base64.b64encode(data).decode("ascii")
        assert decoded == data

    def test_base64_fragments_concatenate(self, engine):
        first, second = payload(CHUNK), payload(CHUNK + 4)

        async def _run():
            a = await engine.convert(first, Kind.BASE64, chunk_size=CHUNK)
            b = await engine.convert(second, Kind.BASE64, chunk_size=CHUNK)
            return await engine.convert(EncodedText(a + b, "base64"), Kind.BYTES)

        assert asyncio.run(_run()) == first + second

    def test_streaming_round_trip(self, engine):
        data = payload(2 * CHUNK + 1)

        async def _run():
            push = PushStream.from_iterable([data[:50], data[50:]])
            as_bytes = await engine.convert(push, Kind.BYTES, chunk_size=CHUNK)
            pull = await engine.convert(as_bytes, Kind.PULL, chunk_size=CHUNK)
            sizes = []
            out = bytearray()
            async for chunk in pull:
                sizes.append(len(chunk))
                out += chunk
            return bytes(out), sizes

        out, sizes = asyncio.run(_run())
        assert out == data
        assert sizes == [CHUNK, CHUNK, 1]

    def test_pull_streaming_round_trip_releases_source(self, engine):
        data = payload(2 * CHUNK + 1)
        tracked = TrackedPull([data[:50], data[50:]])

        async def _run():
            as_bytes = await engine.convert(tracked.stream(), Kind.BYTES, chunk_size=CHUNK)
            push = await engine.convert(as_bytes, Kind.PUSH, chunk_size=CHUNK)
            return await drain(push)

        assert asyncio.run(_run()) == data
        assert tracked.releases == 1

    def test_empty_deferred_never_reads(self, engine):
        blob = CountingBlob(b"")

        async def _run():
            return {kind: await engine.convert(blob, kind) for kind in Kind if kind is not Kind.DEFERRED}

        results = asyncio.run(_run())
        assert blob.reads == []
        assert results[Kind.BYTES] == b""
        assert results[Kind.BYTEARRAY] == bytearray()
        assert bytes(results[Kind.MEMORYVIEW]) == b""
        for kind in (Kind.TEXT, Kind.BASE64, Kind.BINARY, Kind.HEX):
            assert results[kind] == ""
        assert results[Kind.DATA_URL] == DATA_URL_PREFIX
        assert asyncio.run(drain(results[Kind.PULL])) == b""
        assert asyncio.run(drain(results[Kind.PUSH])) == b""


class TestIdentityAndEmpty:
    def test_same_kind_returns_same_object(self, engine):
        data = bytearray(b"abc")
        blob = MemoryBlob(b"abc")

        async def _run():
            return (
                await engine.convert(data, Kind.BYTEARRAY),
                await engine.convert(blob, Kind.DEFERRED),
            )

        same_data, same_blob = asyncio.run(_run())
        assert same_data is data
        assert same_blob is blob

    def test_encoded_text_identity_unwraps(self, engine):
        result = asyncio.run(engine.convert(EncodedText("YWI=", "base64"), Kind.BASE64))
        assert result == "YWI="

    @pytest.mark.parametrize("value", [None, False, b"", "", bytearray(), memoryview(b"")])
    def test_absent_input_gives_empty(self, engine, value):
        assert asyncio.run(engine.convert(value, Kind.HEX)) == ""
        assert asyncio.run(engine.convert(value, Kind.BYTES)) == b""

    def test_empty_stream_to_bytes(self, engine):
        assert asyncio.run(engine.convert(PullStream.empty(), Kind.BYTES)) == b""

    def test_to_bytes_of_bytes_is_not_copied(self, engine):
        data = b"abc"
        converter = engine.converter_for(Kind.BYTES)
        assert asyncio.run(converter.to_bytes(data, normalize_options())) is data


class TestRanges:
    def test_bytes_range(self, engine):
        data = payload(300)
        result = asyncio.run(engine.convert(data, Kind.HEX, start=10, length=5))
        assert result == data[10:15].hex()

    def test_range_clamps_to_size(self, engine):
        result = asyncio.run(engine.convert(b"abcdef", Kind.BYTES, start=4, length=100))
        assert result == b"ef"

    def test_deferred_range_reads_only_overlapping_windows(self, engine):
        data = payload(10 * CHUNK)
        blob = CountingBlob(data)
        start = 4 * CHUNK + 3

        result = asyncio.run(engine.convert(blob, Kind.BYTES, chunk_size=CHUNK, start=start, length=10))
        assert result == data[start : start + 10]
        assert blob.reads == [(start, start + 10)]

    def test_deferred_to_deferred_range_slices_without_reading(self, engine):
        blob = CountingBlob(payload(100))

        async def _run():
            sliced = await engine.convert(blob, Kind.DEFERRED, start=10, length=20)
            return sliced, blob.reads[:], await sliced.read()

        sliced, reads_before, data = asyncio.run(_run())
        assert sliced.size == 20
        assert reads_before == []
        assert data == payload(100)[10:30]

    def test_base64_range(self, engine):
        data = payload(50)
        encoded = encode_base64(data)
        result = asyncio.run(
            engine.convert(encoded, Kind.BYTES, input_encoding="base64", start=7, length=9)
        )
        assert result == data[7:16]

    def test_stream_range_stops_pulling(self, engine):
        pulls = []

        async def pull():
            pulls.append(1)
            return b"x" * 10

        async def _run():
            stream = PullStream(pull)
            return await engine.convert(stream, Kind.BYTES, start=5, length=10), stream

        result, stream = asyncio.run(_run())
        assert result == b"x" * 10
        assert len(pulls) == 2
        assert stream.released


class TestCharsets:
    def test_output_charset(self, engine):
        data = "日本".encode("shift_jis")
        result = asyncio.run(engine.convert(data, Kind.TEXT, output_charset="sjis"))
        assert result == "日本"

    def test_input_charset(self, engine):
        result = asyncio.run(engine.convert("日本", Kind.BYTES, input_charset="utf16be"))
        assert result == "日本".encode("utf-16-be")

    def test_split_multibyte_sequence_decodes(self, engine):
        text = "😀" * 10
        # 4-byte characters straddle every 6-byte window
        assert asyncio.run(engine.convert(text.encode("utf-8"), Kind.TEXT, chunk_size=6)) == text

    def test_invalid_utf8_is_replaced(self, engine):
        assert asyncio.run(engine.convert(b"a\xffb", Kind.TEXT)) == "a\ufffdb"


class TestMalformed:
    def test_bad_hex(self, engine):
        with pytest.raises(MalformedInputError):
            asyncio.run(engine.convert(EncodedText("abc", "hex"), Kind.BYTES))

    def test_bad_base64(self, engine):
        with pytest.raises(MalformedInputError):
            asyncio.run(engine.convert(EncodedText("YW!I", "base64"), Kind.BYTES))

    def test_binary_string_out_of_range(self, engine):
        with pytest.raises(MalformedInputError):
            asyncio.run(engine.convert(EncodedText("\u0100b", "binary"), Kind.BYTES))


class TestDataUrl:
    def test_bytes_to_data_url(self, engine):
        assert asyncio.run(engine.convert(b"ab", Kind.DATA_URL)) == DATA_URL_PREFIX + "YWI="

    @pytest.mark.parametrize("url,expected", [
        ("data:application/octet-stream;base64,YWI=", b"ab"),
        ("data:text/plain;charset=utf-8;base64,YW Jj", b"abc"),
        ("DATA:;BASE64,YQ==", b"a"),
        ("data:text/plain,a%20b%FF", b"a b\xff"),
        ("data:,", b""),
    ])
    def test_data_url_to_bytes(self, engine, url, expected):
        result = asyncio.run(engine.convert(EncodedText(url, "data_url"), Kind.BYTES))
        assert result == expected

    def test_data_url_across_windows(self, engine):
        data = payload(3 * CHUNK + 5)
        url = DATA_URL_PREFIX + encode_base64(data)
        result = asyncio.run(engine.convert(url, Kind.BYTES, input_encoding="data_url", chunk_size=CHUNK))
        assert result == data

    def test_base64_payload_passes_through(self, engine):
        url = "data:image/png;base64,YWJj"
        assert asyncio.run(engine.convert(EncodedText(url, "data_url"), Kind.BASE64)) == "YWJj"

    def test_range(self, engine):
        url = EncodedText(DATA_URL_PREFIX + encode_base64(b"abcdef"), "data_url")
        assert asyncio.run(engine.convert(url, Kind.BYTES, start=2, length=3)) == b"cde"
        assert asyncio.run(engine.convert(url, Kind.DATA_URL, start=4)) == DATA_URL_PREFIX + "ZWY="

    @pytest.mark.parametrize("url", ["YWI=", "data:text/plain;base64"])
    def test_malformed(self, engine, url):
        with pytest.raises(MalformedInputError):
            asyncio.run(engine.convert(EncodedText(url, "data_url"), Kind.BYTES))


class TestConverterHooks:
    def test_buffer_flavour_must_define_wrap(self, engine):
        class Unwrapped(_BufferConverter):
            kind = Kind.BYTES
            name = "Unwrapped"

            def empty(self):
                return b""

            def _merge(self, chunks):
                return b"".join(chunks)

        with pytest.raises(TypeError):
            Unwrapped(engine)

    def test_encoded_string_kind_must_define_step(self, engine):
        class Stepless(_EncodedStringConverter):
            kind = Kind.HEX
            name = "Stepless"

        with pytest.raises(TypeError):
            Stepless(engine)
