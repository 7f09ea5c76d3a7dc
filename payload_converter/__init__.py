"""Payload Converter: universal binary payload conversion engine.

WHY: Binary data shows up in many shapes: bytes, buffers, blobs on disk
or behind a URL, base64/hex/binary strings, text in some charset, push
and pull streams. Code that needs "this value, as that shape" should not
care which shape it was handed.

HOW: Every value is classified into a Kind, turned into fixed-size byte
windows by its kind's converter, and rebuilt as the target kind by the
target's converter. Streams stay lazy end to end; block kinds are
processed one window at a time.

RULES:
- One entry point: ``await convert(value, kind)`` (or ``to_<kind>``)
- Window sizes are multiples of 6 so base64 fragments concatenate
- Same kind in, same object out (no copy)
"""

__version__ = "0.1.0"

from payload_converter.core.errors import (  # noqa: E402
    ConversionError,
    InvalidOptionsError,
    MalformedInputError,
    StreamConsumedError,
    UnderlyingIOError,
    UnrecognizedInputError,
    UnsupportedConversionError,
    UnsupportedKindError,
)
from payload_converter.core.kinds import Charset, EncodedText, EncodingTag, Kind  # noqa: E402
from payload_converter.core.options import ConvertOptions  # noqa: E402
from payload_converter.engine import (  # noqa: E402
    ConversionEngine,
    convert,
    get_engine,
    get_size,
    identify,
    merge,
    pipe,
    to_base64,
    to_binary,
    to_bytearray,
    to_bytes,
    to_data_url,
    to_deferred,
    to_hex,
    to_memoryview,
    to_pull,
    to_push,
    to_text,
)
from payload_converter.streams.urls import open_url  # noqa: E402
