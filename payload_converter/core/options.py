"""Conversion options and their normalization.

WHY: Every conversion is parameterized by a window size, the encoding
of string inputs, the charsets used at the text/byte boundary, and an
optional byte range. Normalizing once per call means converters can
trust the values they receive.

HOW: ConvertOptions is a frozen dataclass. normalize_options() builds
one from None, a mapping, or an existing instance plus keyword
overrides, then fixes up the chunk size.

RULES:
- chunk_size defaults to 98304 (96 KiB) when unset or 0
- chunk_size must be a multiple of 6: other values are rounded DOWN
  and an INFO notice is logged (3 bytes per base64 quantum, doubled so
  concatenated encoded fragments stay aligned)
- A chunk size that rounds to <= 0 is an InvalidOptionsError
- start/length are optional, non-negative byte offsets into the source
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any, Optional, Tuple, Union

from payload_converter.core.errors import InvalidOptionsError
from payload_converter.core.kinds import Charset, EncodingTag

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 96 * 1024
"""Default window size in bytes (a multiple of 6)."""

_ALIGNMENT = 6


@dataclass(frozen=True)
class ConvertOptions:
    """Immutable per-call conversion options.

    Attributes:
        chunk_size: Window size in bytes, always a positive multiple of 6
                    once normalized.
        input_encoding: How a bare ``str`` input is interpreted.
        input_charset: Charset used to turn source text into bytes.
        output_charset: Charset used to turn bytes into target text.
        start: First source byte to convert, or None for 0.
        length: Number of source bytes to convert, or None for "to the end".
    """

    chunk_size: int = DEFAULT_CHUNK_SIZE
    input_encoding: EncodingTag = EncodingTag.TEXT
    input_charset: Charset = Charset.UTF8
    output_charset: Charset = Charset.UTF8
    start: Optional[int] = None
    length: Optional[int] = None

    @property
    def has_range(self) -> bool:
        return self.start is not None or self.length is not None

    def resolve_range(self, size: int) -> Tuple[int, int]:
        """Clamp start/length against a known size and return (start, end)."""
        start = min(self.start or 0, size)
        end = size if self.length is None else min(start + self.length, size)
        return start, end


OptionsLike = Union[ConvertOptions, Mapping, None]

_FIELD_NAMES = {f.name for f in fields(ConvertOptions)}


def normalize_chunk_size(chunk_size: Optional[int]) -> int:
    """Apply the default and the multiple-of-6 rule to a chunk size.

    RULES:
    - None or 0 → DEFAULT_CHUNK_SIZE
    - Not a multiple of 6 → rounded down, INFO notice logged
    - Result <= 0 → InvalidOptionsError
    """
    if chunk_size is None or chunk_size == 0:
        return DEFAULT_CHUNK_SIZE
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int):
        raise InvalidOptionsError(f"chunk_size must be an integer, got {chunk_size!r}")
    if chunk_size < 0:
        raise InvalidOptionsError(f"chunk_size must be positive, got {chunk_size}")

    rem = chunk_size % _ALIGNMENT
    if rem:
        adjusted = chunk_size - rem
        if adjusted <= 0:
            raise InvalidOptionsError(
                f"chunk_size {chunk_size} rounds down to {adjusted}; "
                f"it must be at least {_ALIGNMENT}"
            )
        logger.info(
            "chunk_size was modified to %d (chunk_size must be divisible by %d)",
            adjusted,
            _ALIGNMENT,
        )
        return adjusted
    return chunk_size


def _check_offset(name: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidOptionsError(f"{name} must be a non-negative integer, got {value!r}")
    return value


def normalize_options(options: OptionsLike = None, **overrides: Any) -> ConvertOptions:
    """Build a normalized ConvertOptions from loose input.

    Args:
        options: An existing ConvertOptions, a mapping of field names to
                 values, or None for defaults.
        **overrides: Field values that win over ``options``. A value of
                     None means "not given" and is ignored.

    Returns:
        A ConvertOptions with validated enums, offsets, and chunk size.
    """
    values: dict = {}
    if isinstance(options, ConvertOptions):
        values.update({name: getattr(options, name) for name in _FIELD_NAMES})
    elif isinstance(options, Mapping):
        values.update(options)
    elif options is not None:
        raise InvalidOptionsError(f"Unsupported options object: {type(options).__name__}")

    values.update({k: v for k, v in overrides.items() if v is not None})

    unknown = set(values) - _FIELD_NAMES
    if unknown:
        raise InvalidOptionsError(f"Unknown option(s): {', '.join(sorted(unknown))}")

    return ConvertOptions(
        chunk_size=normalize_chunk_size(values.get("chunk_size")),
        input_encoding=EncodingTag.parse(values.get("input_encoding", EncodingTag.TEXT)),
        input_charset=Charset.parse(values.get("input_charset", Charset.UTF8)),
        output_charset=Charset.parse(values.get("output_charset", Charset.UTF8)),
        start=_check_offset("start", values.get("start")),
        length=_check_offset("length", values.get("length")),
    )
