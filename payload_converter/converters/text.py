"""UTF-8 (and other charset) text converter.

WHY: Text is the one EncodedText kind whose bytes depend on a charset.
Source text is encoded with ``input_charset``; target text is decoded
with ``output_charset``.

HOW: Both directions are incremental: the source is encoded a slice of
characters at a time, and target windows go through an incremental
decoder, so a multi-byte character split across windows survives.

RULES:
- Invalid bytes decode to U+FFFD; they never raise
- A character the input charset cannot represent raises MalformedInputError
- Text → text with the same charset and no range returns the input
"""

from __future__ import annotations

from typing import AsyncIterator, List

from payload_converter.converters.base import BaseConverter, decode_windows
from payload_converter.core.kinds import Kind
from payload_converter.core.options import ConvertOptions
from payload_converter.primitives.charset import TextEncoder, encode_text


class TextConverter(BaseConverter):
    kind = Kind.TEXT

    @property
    def name(self) -> str:
        return "Text"

    def empty(self) -> str:
        return ""

    def is_empty(self, value: str) -> bool:
        return not value

    def size_of(self, value: str, options: ConvertOptions) -> int:
        return len(encode_text(value, options.input_charset))

    async def _iter_windows(self, value: str, options: ConvertOptions) -> AsyncIterator[bytes]:
        encoder = TextEncoder(options.input_charset)
        # Characters per slice; rechunking downstream restores exact window sizes
        step = options.chunk_size
        for pos in range(0, len(value), step):
            data = encoder.encode(value[pos : pos + step])
            if data:
                yield data
        tail = encoder.encode("", final=True)
        if tail:
            yield tail

    async def _to_text(self, value: str, options: ConvertOptions) -> str:
        if options.input_charset is options.output_charset and not options.has_range:
            return value
        return await decode_windows(self.iter_windows(value, options), options)

    async def _convert(self, source: BaseConverter, value, options: ConvertOptions) -> str:
        return await source.to_text(value, options)

    async def _from_windows(self, windows: AsyncIterator[bytes], options: ConvertOptions) -> str:
        return await decode_windows(windows, options)

    def _merge(self, chunks: List[str]) -> str:
        return "".join(chunks)
