"""Conversion engine and module-level facade.

WHY: Callers want one entry point: "give me this value as kind X". The
engine resolves options, checks that kind X exists in this environment,
and dispatches to the right converter. It also merges sequences of
chunks and pipes a source into a sink.

HOW: ConversionEngine takes an explicit Capabilities value and builds
one converter instance per supported kind from the CONVERTERS registry.
It holds no other state, so one engine can serve any number of
concurrent calls. The module-level helpers (convert, to_bytes, ...)
use a process-wide engine built from probe_capabilities().

RULES:
- Asking for a kind that is unknown or disabled raises
  UnsupportedKindError before the input is looked at
- A source kind that is disabled raises UnsupportedConversionError
- A ``list`` passed to a to_* helper is converted element by element
  and merged
- merge() into a string kind reads bare ``str`` chunks in that kind's
  own encoding unless input_encoding is given
- pipe() releases the source and aborts the sink on error, and resolves
  only after the sink's close() on success
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Union

from payload_converter.converters import CONVERTERS
from payload_converter.converters.base import BaseConverter, is_absent
from payload_converter.core.capabilities import Capabilities, probe_capabilities
from payload_converter.core.classifier import classify
from payload_converter.core.errors import UnsupportedConversionError, UnsupportedKindError
from payload_converter.core.kinds import EncodingTag, Kind
from payload_converter.core.options import ConvertOptions, OptionsLike, normalize_options
from payload_converter.streams import bridge
from payload_converter.streams.sinks import ByteSink, as_sink

logger = logging.getLogger(__name__)

KindLike = Union[Kind, str]


class ConversionEngine:
    """Stateless dispatcher over the per-kind converters.

    Usage::

        engine = ConversionEngine()
        encoded = await engine.convert(b"ab", "base64")        # "YWI="
        data = await engine.convert(encoded, Kind.BYTES, input_encoding="base64")
    """

    def __init__(self, capabilities: Optional[Capabilities] = None) -> None:
        self.capabilities = capabilities if capabilities is not None else probe_capabilities()
        self._converters: Dict[Kind, BaseConverter] = {
            kind: cls(self) for kind, cls in CONVERTERS.items() if self.capabilities.supports(kind)
        }

    @property
    def kinds(self) -> List[Kind]:
        """Kinds available in this engine, in declaration order."""
        return [kind for kind in Kind if kind in self._converters]

    def converter_for(self, kind: KindLike) -> BaseConverter:
        """Return the converter for a target kind.

        Raises:
            UnsupportedKindError: Unknown kind, or its capability is off.
        """
        kind = Kind.parse(kind)
        converter = self._converters.get(kind)
        if converter is None:
            raise UnsupportedKindError(kind.value)
        return converter

    def source_converter(self, kind: Kind, target: Kind) -> BaseConverter:
        """Return the converter that reads values of ``kind`` on the way to ``target``."""
        converter = self._converters.get(kind)
        if converter is None:
            raise UnsupportedConversionError(kind.value, target.value)
        return converter

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    async def convert(self, value: Any, to: KindLike, options: OptionsLike = None, **overrides: Any) -> Any:
        converter = self.converter_for(to)
        return await converter.convert(value, normalize_options(options, **overrides))

    async def merge(
        self, chunks: Sequence[Any], to: KindLike, options: OptionsLike = None, **overrides: Any
    ) -> Any:
        """Convert each chunk to ``to`` (in order) and concatenate the results."""
        converter = self.converter_for(to)
        opts = normalize_options(options, **overrides)
        if converter.kind.is_string and not _encoding_given(options, overrides):
            opts = replace(opts, input_encoding=EncodingTag(converter.kind.value))
        converted = []
        for chunk in chunks:
            converted.append(await converter.convert(chunk, opts))
        return converter.merge(converted)

    def identify(self, value: Any, input_encoding: Union[EncodingTag, str] = EncodingTag.TEXT) -> Kind:
        return classify(value, EncodingTag.parse(input_encoding)).kind

    def get_size(self, value: Any, options: OptionsLike = None, **overrides: Any) -> Optional[int]:
        """Byte size of ``value`` (after start/length), or None for streams."""
        opts = normalize_options(options, **overrides)
        if is_absent(value):
            return 0
        classified = classify(value, opts.input_encoding)
        converter = self.source_converter(classified.kind, Kind.BYTES)
        size = converter.size_of(classified.value, opts)
        if size is None or not opts.has_range:
            return size
        start, end = opts.resolve_range(size)
        return end - start

    # ------------------------------------------------------------------
    # Windows and piping
    # ------------------------------------------------------------------

    def iter_windows(self, value: Any, options: OptionsLike = None, **overrides: Any) -> AsyncIterator[bytes]:
        """The bytes of any recognized value as ``chunk_size`` windows, read lazily.

        Close the iterator (``aclose()``) when abandoning it early so a
        stream source is released.
        """
        opts = normalize_options(options, **overrides)
        if is_absent(value):
            return _no_windows()
        classified = classify(value, opts.input_encoding)
        converter = self.source_converter(classified.kind, Kind.BYTES)
        return converter.iter_windows(classified.value, opts)

    async def pipe(
        self, source: Any, destination: Any, options: OptionsLike = None, **overrides: Any
    ) -> int:
        """Drive the bytes of ``source`` into ``destination``.

        Args:
            source: Any recognized value (block or stream).
            destination: A ByteSink, a file path, or an object with ``write``.

        Returns:
            The number of bytes written.
        """
        opts = normalize_options(options, **overrides)
        sink: ByteSink = as_sink(destination)

        windows = self.iter_windows(source, opts)
        written = 0
        try:
            async for window in windows:
                await sink.write(window)
                written += len(window)
        except BaseException as exc:
            logger.debug("Pipe failed after %d bytes: %r", written, exc)
            try:
                await bridge.aclose(windows)
            finally:
                await sink.abort(exc)
            raise

        await sink.close()
        return written


async def _no_windows() -> AsyncIterator[bytes]:
    return
    yield


def _encoding_given(options: OptionsLike, overrides: Dict[str, Any]) -> bool:
    if overrides.get("input_encoding") is not None:
        return True
    if isinstance(options, Mapping):
        return options.get("input_encoding") is not None
    return isinstance(options, ConvertOptions) and options.input_encoding is not EncodingTag.TEXT


@functools.lru_cache(maxsize=None)
def get_engine() -> ConversionEngine:
    """The process-wide engine, built once from probe_capabilities()."""
    return ConversionEngine(probe_capabilities())


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------


async def convert(value: Any, to: KindLike, options: OptionsLike = None, **overrides: Any) -> Any:
    if isinstance(value, list):
        return await get_engine().merge(value, to, options, **overrides)
    return await get_engine().convert(value, to, options, **overrides)


async def merge(chunks: Sequence[Any], to: KindLike, options: OptionsLike = None, **overrides: Any) -> Any:
    return await get_engine().merge(chunks, to, options, **overrides)


async def pipe(source: Any, destination: Any, options: OptionsLike = None, **overrides: Any) -> int:
    return await get_engine().pipe(source, destination, options, **overrides)


def identify(value: Any, input_encoding: Union[EncodingTag, str] = EncodingTag.TEXT) -> Kind:
    return get_engine().identify(value, input_encoding)


def get_size(value: Any, options: OptionsLike = None, **overrides: Any) -> Optional[int]:
    return get_engine().get_size(value, options, **overrides)


async def to_bytes(value: Any, options: OptionsLike = None, **overrides: Any) -> bytes:
    return await convert(value, Kind.BYTES, options, **overrides)


async def to_bytearray(value: Any, options: OptionsLike = None, **overrides: Any) -> bytearray:
    return await convert(value, Kind.BYTEARRAY, options, **overrides)


async def to_memoryview(value: Any, options: OptionsLike = None, **overrides: Any) -> memoryview:
    return await convert(value, Kind.MEMORYVIEW, options, **overrides)


async def to_deferred(value: Any, options: OptionsLike = None, **overrides: Any) -> Any:
    return await convert(value, Kind.DEFERRED, options, **overrides)


async def to_text(value: Any, options: OptionsLike = None, **overrides: Any) -> str:
    return await convert(value, Kind.TEXT, options, **overrides)


async def to_base64(value: Any, options: OptionsLike = None, **overrides: Any) -> str:
    return await convert(value, Kind.BASE64, options, **overrides)


async def to_binary(value: Any, options: OptionsLike = None, **overrides: Any) -> str:
    return await convert(value, Kind.BINARY, options, **overrides)


async def to_hex(value: Any, options: OptionsLike = None, **overrides: Any) -> str:
    return await convert(value, Kind.HEX, options, **overrides)


async def to_data_url(value: Any, options: OptionsLike = None, **overrides: Any) -> str:
    return await convert(value, Kind.DATA_URL, options, **overrides)


async def to_push(value: Any, options: OptionsLike = None, **overrides: Any) -> Any:
    return await convert(value, Kind.PUSH, options, **overrides)


async def to_pull(value: Any, options: OptionsLike = None, **overrides: Any) -> Any:
    return await convert(value, Kind.PULL, options, **overrides)
