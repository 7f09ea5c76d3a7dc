"""Abstract base converter: the per-kind conversion contract.

WHY: The engine must convert between every pair of kinds without one
hand-written routine per pair. Each kind therefore knows only two
things: how to turn one of its values into byte windows, and how to
build one of its values from byte windows. Any pair of kinds composes
through those two halves, with bytes as the pivot.

HOW: BaseConverter is an ABC. Subclasses set ``kind`` and implement:
  - ``name`` and ``empty()``
  - ``_iter_windows(value, options)``: the value's bytes as an async
    iterator of windows (source side)
  - ``_from_windows(windows, options)``: a new value from windows
    (target side)
  - ``_merge(chunks)``: concatenate two or more values of this kind
convert() handles absence, classification, the identity fast path and
empty deferred objects, then calls ``_convert()``. The Bytes, Base64
and Text targets override ``_convert()`` to use the source's direct
``to_bytes``/``to_base64``/``to_text`` edge instead of the pivot.

RULES:
- Windows reaching ``_from_windows`` are exactly ``chunk_size`` bytes
  (except the last), so base64 fragments concatenate without re-padding
- Falsy input (None, False, empty str/bytes) → ``empty()``, kind not inspected
- Same kind, no byte range, original object → returned unchanged
- merge([]) → ``empty()``; merge([x]) → x itself
- Block targets close the window iterator when done or on error; stream
  targets hand it to the stream they return
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, AsyncIterator, ClassVar, Generic, List, Optional, Sequence, TypeVar

from payload_converter.core.classifier import classify
from payload_converter.core.kinds import EncodedText, Kind
from payload_converter.core.options import ConvertOptions, OptionsLike, normalize_options
from payload_converter.primitives.charset import text_decoder
from payload_converter.primitives.encoding import encode_base64
from payload_converter.streams import bridge

if TYPE_CHECKING:
    from payload_converter.engine import ConversionEngine

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_absent(value: Any) -> bool:
    """True for None, False, and zero-length strings, buffers and EncodedText."""
    if value is None or value is False:
        return True
    if isinstance(value, (str, bytes, bytearray)):
        return len(value) == 0
    if isinstance(value, memoryview):
        return value.nbytes == 0
    if isinstance(value, EncodedText):
        return not value.value
    return False


class BaseConverter(ABC, Generic[T]):
    """Abstract base for all per-kind converters.

    To add a new kind:
    1. Add it to ``Kind`` in core/kinds.py
    2. Subclass BaseConverter in converters/
    3. Implement name, empty, _iter_windows, _from_windows, _merge
    4. Register it in CONVERTERS in converters/__init__.py
    """

    kind: ClassVar[Kind]
    native_range: ClassVar[bool] = False
    """True when ``_iter_windows`` applies start/length itself."""

    def __init__(self, engine: ConversionEngine) -> None:
        self.engine = engine

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable kind name, e.g. 'Base64 text'."""

    @abstractmethod
    def empty(self) -> T:
        """A fresh empty value of this kind."""

    def is_empty(self, value: Any) -> bool:
        """True when ``value`` (already classified as this kind) holds no bytes."""
        return False

    def size_of(self, value: Any, options: ConvertOptions) -> Optional[int]:
        """Byte size of ``value`` before any range is applied, or None if unknown."""
        return None

    # ------------------------------------------------------------------
    # Target side
    # ------------------------------------------------------------------

    async def convert(self, value: Any, options: OptionsLike = None) -> T:
        """Convert any recognized value into this kind.

        Raises:
            UnrecognizedInputError: ``value`` has no recognizable kind.
            UnsupportedConversionError: The source kind is unavailable here.
        """
        options = normalize_options(options)
        if is_absent(value):
            return self.empty()

        classified = classify(value, options.input_encoding)
        if classified.kind is self.kind and not options.has_range:
            if self.kind.is_string:
                return classified.value
            if not classified.normalized:
                return value

        source = self.engine.source_converter(classified.kind, self.kind)
        payload = classified.value
        if source.is_empty(payload):
            return self.empty()

        logger.debug("Converting %s -> %s", source.kind.value, self.kind.value)
        return await self._convert(source, payload, options)

    async def _convert(self, source: BaseConverter, value: Any, options: ConvertOptions) -> T:
        windows = source.iter_windows(value, options)
        try:
            return await self._from_windows(windows, options)
        finally:
            await bridge.aclose(windows)

    @abstractmethod
    async def _from_windows(self, windows: AsyncIterator[bytes], options: ConvertOptions) -> T:
        """Build a value of this kind from byte windows."""

    # ------------------------------------------------------------------
    # Source side
    # ------------------------------------------------------------------

    def iter_windows(self, value: Any, options: ConvertOptions) -> AsyncIterator[bytes]:
        """The bytes of ``value`` as windows of exactly ``chunk_size`` (last may be short)."""
        windows = self._iter_windows(value, options)
        if options.has_range and not self.native_range:
            start = options.start or 0
            end = None if options.length is None else start + options.length
            windows = bridge.clip(windows, start, end)
        return bridge.rechunk(windows, options.chunk_size)

    @abstractmethod
    def _iter_windows(self, value: Any, options: ConvertOptions) -> AsyncIterator[bytes]:
        """Yield the bytes of ``value`` in source order."""

    async def to_bytes(self, value: Any, options: ConvertOptions) -> bytes:
        if self.is_empty(value):
            return b""
        return await self._to_bytes(value, options)

    async def to_base64(self, value: Any, options: ConvertOptions) -> str:
        if self.is_empty(value):
            return ""
        return await self._to_base64(value, options)

    async def to_text(self, value: Any, options: ConvertOptions) -> str:
        if self.is_empty(value):
            return ""
        return await self._to_text(value, options)

    async def _to_bytes(self, value: Any, options: ConvertOptions) -> bytes:
        return await bridge.collect(self.iter_windows(value, options))

    async def _to_base64(self, value: Any, options: ConvertOptions) -> str:
        return await encode_windows(self.iter_windows(value, options))

    async def _to_text(self, value: Any, options: ConvertOptions) -> str:
        return await decode_windows(self.iter_windows(value, options), options)

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def merge(self, chunks: Sequence[T]) -> T:
        """Concatenate values of this kind, in order."""
        if not chunks:
            return self.empty()
        if len(chunks) == 1:
            return chunks[0]
        return self._merge(list(chunks))

    @abstractmethod
    def _merge(self, chunks: List[T]) -> T:
        """Concatenate two or more values of this kind."""


# ---------------------------------------------------------------------------
# Shared window consumers
# ---------------------------------------------------------------------------


async def encode_windows(windows: AsyncIterator[bytes]) -> str:
    """Base64-encode each window and concatenate the fragments.

    Only the final window may carry padding because every earlier window
    is a multiple of 6 bytes long.
    """
    parts: List[str] = []
    try:
        async for window in windows:
            parts.append(encode_base64(window))
    finally:
        await bridge.aclose(windows)
    return "".join(parts)


async def decode_windows(windows: AsyncIterator[bytes], options: ConvertOptions) -> str:
    """Decode windows with ``output_charset``, carrying partial sequences across windows."""
    decoder = text_decoder(options.output_charset)
    parts: List[str] = []
    try:
        async for window in windows:
            parts.append(decoder.decode(window))
    finally:
        await bridge.aclose(windows)
    parts.append(decoder.decode(b"", True))
    return "".join(parts)
