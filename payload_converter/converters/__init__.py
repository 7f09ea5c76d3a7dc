"""Converter registry: one converter class per kind.

WHY: The engine needs a single lookup from a Kind to the class that
converts values into (and out of) that kind. A central dict makes the
conversion table exhaustive at a glance.

HOW: CONVERTERS maps Kind to converter *classes* (not instances). The
ConversionEngine instantiates the ones its capabilities allow:
``converter = CONVERTERS[Kind.BASE64](engine)``.

RULES:
- Every Kind has exactly one entry
- Values are BaseConverter subclasses (not instances)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from payload_converter.converters.binary import (
    BytearrayConverter,
    BytesConverter,
    MemoryviewConverter,
)
from payload_converter.converters.deferred import DeferredConverter
from payload_converter.converters.encoded import (
    Base64Converter,
    BinaryStringConverter,
    DataUrlConverter,
    HexConverter,
)
from payload_converter.converters.streams import PullStreamConverter, PushStreamConverter
from payload_converter.converters.text import TextConverter
from payload_converter.core.kinds import Kind

if TYPE_CHECKING:
    from payload_converter.converters.base import BaseConverter

CONVERTERS: dict[Kind, type[BaseConverter]] = {
    Kind.BYTES: BytesConverter,
    Kind.BYTEARRAY: BytearrayConverter,
    Kind.MEMORYVIEW: MemoryviewConverter,
    Kind.DEFERRED: DeferredConverter,
    Kind.TEXT: TextConverter,
    Kind.BASE64: Base64Converter,
    Kind.BINARY: BinaryStringConverter,
    Kind.HEX: HexConverter,
    Kind.DATA_URL: DataUrlConverter,
    Kind.PUSH: PushStreamConverter,
    Kind.PULL: PullStreamConverter,
}
