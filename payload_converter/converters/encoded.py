"""Byte-exact string converters: base64, binary string, hex, data URL.

WHY: These encodings map bytes to characters without a charset,
so their conversions are exact in both directions and their sizes can
be computed from the string alone.

HOW: Each source slices its (whitespace-free) string into windows of
characters that decode to whole bytes: ``chunk_size * 4 // 3``
characters for base64, ``chunk_size`` for binary strings,
``2 * chunk_size`` for hex. A base64 data URL reuses the base64
windowing on its payload. As targets they encode each byte window and
join the fragments. The Base64 target uses the source's direct
``to_base64`` edge.

RULES:
- Base64 output is the concatenation of per-window fragments; windows
  are multiples of 6 bytes so only the last fragment is padded
- Decoding failures raise MalformedInputError
- merge is plain string concatenation, except for data URLs, which
  are re-encoded as one URL
- Data URL targets are always "data:application/octet-stream;base64,"
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, AsyncIterator, Callable, List

from payload_converter.converters.base import BaseConverter, encode_windows
from payload_converter.core.errors import MalformedInputError
from payload_converter.core.kinds import Kind
from payload_converter.core.options import ConvertOptions
from payload_converter.primitives.encoding import (
    DATA_URL_PREFIX,
    base64_size,
    compact,
    data_url_size,
    decode_base64,
    decode_binary,
    decode_data_url,
    decode_hex,
    encode_binary,
    encode_data_url,
    encode_hex,
    parse_data_url,
)


class _EncodedStringConverter(BaseConverter):
    """Shared windowing for the byte-exact string kinds."""

    decode: Callable[[str], bytes]
    encode: Callable[[Any], str]

    def empty(self) -> str:
        return ""

    def is_empty(self, value: str) -> bool:
        return not value or value.isspace()

    def _prepare(self, value: str) -> str:
        return compact(value)

    @abstractmethod
    def _step(self, chunk_size: int) -> int:
        """Characters per source window of ``chunk_size`` bytes."""

    async def _iter_windows(self, value: str, options: ConvertOptions) -> AsyncIterator[bytes]:
        text = self._prepare(value)
        step = self._step(options.chunk_size)
        for pos in range(0, len(text), step):
            yield self.decode(text[pos : pos + step])

    async def _from_windows(self, windows: AsyncIterator[bytes], options: ConvertOptions) -> str:
        return "".join([self.encode(window) async for window in windows])

    def _merge(self, chunks: List[str]) -> str:
        return "".join(chunks)


class Base64Converter(_EncodedStringConverter):
    kind = Kind.BASE64
    decode = staticmethod(decode_base64)

    @property
    def name(self) -> str:
        return "Base64"

    def _step(self, chunk_size: int) -> int:
        return chunk_size // 3 * 4

    def size_of(self, value: str, options: ConvertOptions) -> int:
        return base64_size(value)

    async def _convert(self, source: BaseConverter, value: Any, options: ConvertOptions) -> str:
        return await source.to_base64(value, options)

    async def _from_windows(self, windows: AsyncIterator[bytes], options: ConvertOptions) -> str:
        return await encode_windows(windows)


class BinaryStringConverter(_EncodedStringConverter):
    kind = Kind.BINARY
    decode = staticmethod(decode_binary)
    encode = staticmethod(encode_binary)

    @property
    def name(self) -> str:
        return "Binary string"

    def is_empty(self, value: str) -> bool:
        return not value

    def _prepare(self, value: str) -> str:
        # Whitespace characters are data here
        return value

    def _step(self, chunk_size: int) -> int:
        return chunk_size

    def size_of(self, value: str, options: ConvertOptions) -> int:
        return len(value)


class HexConverter(_EncodedStringConverter):
    kind = Kind.HEX
    decode = staticmethod(decode_hex)
    encode = staticmethod(encode_hex)

    @property
    def name(self) -> str:
        return "Hex"

    def _prepare(self, value: str) -> str:
        text = compact(value)
        if len(text) % 2:
            raise MalformedInputError(f"Hex input has odd length {len(text)}")
        return text

    def _step(self, chunk_size: int) -> int:
        return chunk_size * 2

    def size_of(self, value: str, options: ConvertOptions) -> int:
        return len(compact(value)) // 2


class DataUrlConverter(Base64Converter):
    """``data:`` URLs, read and written through the base64 windowing."""

    kind = Kind.DATA_URL

    @property
    def name(self) -> str:
        return "Data URL"

    def empty(self) -> str:
        return DATA_URL_PREFIX

    def is_empty(self, value: str) -> bool:
        return data_url_size(value) == 0

    def size_of(self, value: str, options: ConvertOptions) -> int:
        return data_url_size(value)

    async def _iter_windows(self, value: str, options: ConvertOptions) -> AsyncIterator[bytes]:
        is_base64, data = parse_data_url(value)
        if is_base64:
            async for window in super()._iter_windows(data, options):
                yield window
            return
        raw = decode_data_url(value)
        for pos in range(0, len(raw), options.chunk_size):
            yield raw[pos : pos + options.chunk_size]

    async def _to_base64(self, value: str, options: ConvertOptions) -> str:
        is_base64, data = parse_data_url(value)
        if is_base64 and not options.has_range:
            return compact(data)
        return await super()._to_base64(value, options)

    async def _convert(self, source: BaseConverter, value: Any, options: ConvertOptions) -> str:
        return DATA_URL_PREFIX + await source.to_base64(value, options)

    async def _from_windows(self, windows: AsyncIterator[bytes], options: ConvertOptions) -> str:
        return DATA_URL_PREFIX + await encode_windows(windows)

    def _merge(self, chunks: List[str]) -> str:
        return encode_data_url(b"".join(decode_data_url(chunk) for chunk in chunks))
