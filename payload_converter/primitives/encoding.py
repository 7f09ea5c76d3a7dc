"""Base64, hex, and binary-string codecs.

WHY: Converters move between bytes and the three byte-exact string
encodings many times per call, once per window. Keeping the codecs as
small pure functions lets every converter share one definition of
"valid input" and one error type.

HOW: Thin wrappers over the standard library (base64, binascii,
bytes.hex/fromhex, latin-1) that normalize whitespace and turn codec
failures into MalformedInputError.

RULES:
- Whitespace is ignored when decoding base64 and hex
- Base64 decoding accepts missing padding and concatenated padded
  fragments ("YQ==YQ==" decodes to b"aa")
- Hex decoding is case-insensitive; odd length or a non-hex digit fails
- Binary strings hold one character per byte (code points 0-255)
- Data URLs carry a base64 payload when their header ends in ";base64",
  otherwise a percent-encoded one
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import Iterator, Tuple, Union
from urllib.parse import unquote_to_bytes

from payload_converter.core.errors import MalformedInputError

BytesLike = Union[bytes, bytearray, memoryview]

_WHITESPACE = re.compile(r"\s+")
# A run of alphabet characters closed by its padding (or by end of input)
_B64_FRAGMENT = re.compile(r"[^=]+=*|=+")


def compact(text: str) -> str:
    """Strip all whitespace from an encoded string."""
    return _WHITESPACE.sub("", text)


# ---------------------------------------------------------------------------
# Base64
# ---------------------------------------------------------------------------


def encode_base64(data: BytesLike) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64_fragments(text: str) -> Iterator[str]:
    if "=" not in text.rstrip("="):
        yield text
        return
    yield from _B64_FRAGMENT.findall(text)


def decode_base64(text: str) -> bytes:
    """Decode standard-alphabet base64, tolerating whitespace and padding.

    Raises:
        MalformedInputError: On characters outside the alphabet or a
            fragment whose length cannot be a base64 quantum.
    """
    text = compact(text)
    if not text:
        return b""

    parts = []
    for fragment in _b64_fragments(text):
        body = fragment.rstrip("=")
        if not body:
            raise MalformedInputError("Base64 padding without data")
        if len(body) % 4 == 1:
            raise MalformedInputError(
                f"Base64 fragment of {len(body)} characters is not a valid quantum"
            )
        try:
            parts.append(base64.b64decode(body + "=" * (-len(body) % 4), validate=True))
        except binascii.Error as exc:
            raise MalformedInputError(f"Invalid base64 input: {exc}") from exc
    return b"".join(parts)


def base64_size(text: str) -> int:
    """Number of bytes ``text`` decodes to, without decoding it."""
    text = compact(text)
    return sum(len(f.rstrip("=")) * 3 // 4 for f in _b64_fragments(text)) if text else 0


# ---------------------------------------------------------------------------
# Hex
# ---------------------------------------------------------------------------


def encode_hex(data: BytesLike) -> str:
    return bytes(data).hex()


def decode_hex(text: str) -> bytes:
    """Decode two hex digits per byte (case-insensitive)."""
    text = compact(text)
    if len(text) % 2:
        raise MalformedInputError(f"Hex input has odd length {len(text)}")
    try:
        return bytes.fromhex(text)
    except ValueError as exc:
        raise MalformedInputError(f"Invalid hex input: {exc}") from exc


# ---------------------------------------------------------------------------
# Binary string
# ---------------------------------------------------------------------------


def encode_binary(data: BytesLike) -> str:
    return bytes(data).decode("latin-1")


def decode_binary(text: str) -> bytes:
    try:
        return text.encode("latin-1")
    except UnicodeEncodeError as exc:
        raise MalformedInputError(
            f"Binary string holds code point U+{ord(exc.object[exc.start]):04X} "
            f"at position {exc.start}; only 0-255 are allowed"
        ) from exc


# ---------------------------------------------------------------------------
# Data URL
# ---------------------------------------------------------------------------

DATA_URL_PREFIX = "data:application/octet-stream;base64,"


def parse_data_url(url: str) -> Tuple[bool, str]:
    """Split a ``data:`` URL into (payload is base64, payload).

    Raises:
        MalformedInputError: Not a data URL, or no "," before the payload.
    """
    text = url.lstrip()
    if text[:5].lower() != "data:":
        raise MalformedInputError("Data URL must start with 'data:'")
    header, sep, data = text[5:].partition(",")
    if not sep:
        raise MalformedInputError("Data URL has no ',' before its payload")
    return header.split(";")[-1].strip().lower() == "base64", data


def decode_data_url(url: str) -> bytes:
    is_base64, data = parse_data_url(url)
    if is_base64:
        return decode_base64(data)
    return unquote_to_bytes(data)


def data_url_size(url: str) -> int:
    """Number of payload bytes in a data URL (base64 payloads are not decoded)."""
    is_base64, data = parse_data_url(url)
    if is_base64:
        return base64_size(data)
    return len(unquote_to_bytes(data))


def encode_data_url(data: BytesLike) -> str:
    return DATA_URL_PREFIX + encode_base64(data)
