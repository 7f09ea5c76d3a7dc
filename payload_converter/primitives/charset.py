"""Charset transcoding at the text/byte boundary.

WHY: EncodedText with the ``text`` tag is Unicode; turning it into bytes
(and back) needs a charset. UTF-8 is the default, but UTF-16 and the
Japanese legacy charsets are supported too.

HOW: Python codecs do the work. Windowed conversions use the incremental
encoder/decoder so a multi-byte sequence (or an ISO-2022-JP escape
state) that straddles a window boundary still transcodes correctly.

RULES:
- Decoding never fails: invalid byte sequences become U+FFFD
- Encoding fails with MalformedInputError when a character has no
  representation in the target charset
"""

from __future__ import annotations

import codecs

from payload_converter.core.errors import MalformedInputError
from payload_converter.core.kinds import Charset


def encode_text(text: str, charset: Charset = Charset.UTF8) -> bytes:
    try:
        return text.encode(charset.codec)
    except UnicodeEncodeError as exc:
        raise MalformedInputError(
            f"Cannot encode text as {charset.value}: {exc.reason} at position {exc.start}"
        ) from exc


def decode_bytes(data: bytes, charset: Charset = Charset.UTF8) -> str:
    return bytes(data).decode(charset.codec, errors="replace")


class TextEncoder:
    """Incremental text → bytes encoder that reports MalformedInputError."""

    def __init__(self, charset: Charset) -> None:
        self.charset = charset
        self._encoder = codecs.getincrementalencoder(charset.codec)(errors="strict")

    def encode(self, text: str, final: bool = False) -> bytes:
        try:
            return self._encoder.encode(text, final)
        except UnicodeEncodeError as exc:
            raise MalformedInputError(
                f"Cannot encode text as {self.charset.value}: {exc.reason}"
            ) from exc


def text_decoder(charset: Charset) -> codecs.IncrementalDecoder:
    """Incremental bytes → text decoder with replacement on bad input."""
    return codecs.getincrementaldecoder(charset.codec)(errors="replace")
