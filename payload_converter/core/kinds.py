"""Representation kinds, encoding tags, charsets, and the EncodedText value.

WHY: The engine understands a closed set of binary/text shapes. Naming
them as enums keeps the conversion table exhaustive and lets callers,
the CLI, and the HTTP service refer to kinds by stable string keys.

HOW: Two levels of naming:
  RepresentationKind: the five families (bytes, deferred object,
                      encoded text, push stream, pull stream)
  Kind:               the concrete conversion targets; each belongs to
                      exactly one family. EncodedText kinds are the
                      five encoding tags, Bytes kinds are the Python
                      buffer flavours.

RULES:
- Kind values are the registry keys used everywhere (CLI flags, HTTP fields)
- EncodedText is only ever built from an explicit tag, never guessed
- Charset values map onto Python codec names via Charset.codec
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from payload_converter.core.errors import InvalidOptionsError, UnsupportedKindError


class RepresentationKind(str, Enum):
    """The closed set of representation families."""

    BYTES = "bytes"
    DEFERRED_OBJECT = "deferred_object"
    ENCODED_TEXT = "encoded_text"
    PUSH_STREAM = "push_stream"
    PULL_STREAM = "pull_stream"


class EncodingTag(str, Enum):
    """Encoding of an EncodedText value.

    RULES:
    - text: the string is Unicode text; its bytes come from a charset
    - base64: standard alphabet, "=" padding
    - binary: one character per byte, code points 0-255
    - hex: two hex digits per byte, case-insensitive on input
    - data_url: an RFC 2397 ``data:`` URL (base64 or percent-encoded payload)
    """

    TEXT = "text"
    BASE64 = "base64"
    BINARY = "binary"
    HEX = "hex"
    DATA_URL = "data_url"

    @classmethod
    def parse(cls, value: str | EncodingTag) -> EncodingTag:
        if isinstance(value, EncodingTag):
            return value
        key = str(value).strip().lower()
        if key in ("utf8", "utf-8", "utf8-text"):
            key = "text"
        elif key == "binary-string":
            key = "binary"
        elif key in ("dataurl", "data-url"):
            key = "data_url"
        try:
            return cls(key)
        except ValueError:
            raise InvalidOptionsError(f"Unknown encoding tag: {value!r}") from None


class Kind(str, Enum):
    """Concrete conversion kinds, keyed by their registry name."""

    BYTES = "bytes"
    BYTEARRAY = "bytearray"
    MEMORYVIEW = "memoryview"
    DEFERRED = "deferred"
    TEXT = "text"
    BASE64 = "base64"
    BINARY = "binary"
    HEX = "hex"
    DATA_URL = "data_url"
    PUSH = "push"
    PULL = "pull"

    @property
    def representation(self) -> RepresentationKind:
        return _REPRESENTATIONS[self]

    @property
    def is_string(self) -> bool:
        return self.representation is RepresentationKind.ENCODED_TEXT

    @property
    def is_stream(self) -> bool:
        return self.representation in (
            RepresentationKind.PUSH_STREAM,
            RepresentationKind.PULL_STREAM,
        )

    @classmethod
    def for_encoding(cls, tag: EncodingTag) -> Kind:
        """Return the EncodedText kind for an encoding tag."""
        return cls(EncodingTag.parse(tag).value)

    @classmethod
    def parse(cls, value: str | Kind) -> Kind:
        """Resolve a kind name (case-insensitive) or raise UnsupportedKindError."""
        if isinstance(value, Kind):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedKindError(str(value), reason="unknown") from None


_REPRESENTATIONS = {
    Kind.BYTES: RepresentationKind.BYTES,
    Kind.BYTEARRAY: RepresentationKind.BYTES,
    Kind.MEMORYVIEW: RepresentationKind.BYTES,
    Kind.DEFERRED: RepresentationKind.DEFERRED_OBJECT,
    Kind.TEXT: RepresentationKind.ENCODED_TEXT,
    Kind.BASE64: RepresentationKind.ENCODED_TEXT,
    Kind.BINARY: RepresentationKind.ENCODED_TEXT,
    Kind.HEX: RepresentationKind.ENCODED_TEXT,
    Kind.DATA_URL: RepresentationKind.ENCODED_TEXT,
    Kind.PUSH: RepresentationKind.PUSH_STREAM,
    Kind.PULL: RepresentationKind.PULL_STREAM,
}


class Charset(str, Enum):
    """Charsets used when text crosses the byte boundary."""

    UTF8 = "utf8"
    UTF16LE = "utf16le"
    UTF16BE = "utf16be"
    JIS = "jis"
    EUCJP = "eucjp"
    SJIS = "sjis"

    @property
    def codec(self) -> str:
        """Python codec name for this charset."""
        return _CODECS[self]

    @classmethod
    def parse(cls, value: str | Charset) -> Charset:
        if isinstance(value, Charset):
            return value
        key = str(value).strip().lower().replace("-", "").replace("_", "")
        key = _CHARSET_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise InvalidOptionsError(f"Unknown charset: {value!r}") from None


_CODECS = {
    Charset.UTF8: "utf-8",
    Charset.UTF16LE: "utf-16-le",
    Charset.UTF16BE: "utf-16-be",
    Charset.JIS: "iso2022_jp",
    Charset.EUCJP: "euc_jp",
    Charset.SJIS: "shift_jis",
}

_CHARSET_ALIASES = {
    "iso2022jp": "jis",
    "shiftjis": "sjis",
    "cp932": "sjis",
    "ms932": "sjis",
}


@dataclass(frozen=True)
class EncodedText:
    """A string tagged with how its characters map to bytes.

    Attributes:
        value: The encoded string.
        encoding: The tag that says how to read ``value``.
    """

    value: str
    encoding: EncodingTag = EncodingTag.TEXT

    def __post_init__(self) -> None:
        object.__setattr__(self, "encoding", EncodingTag.parse(self.encoding))

    @property
    def kind(self) -> Kind:
        return Kind.for_encoding(self.encoding)
