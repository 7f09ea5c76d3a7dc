"""Runtime classification of input values into representation kinds.

WHY: A conversion starts by asking "what is this value?". Some values
satisfy several structural checks at once (a bytes subclass is also a
buffer, a memoryview is also a buffer), so the order of the checks is
part of the contract.

HOW: classify() walks a fixed precedence list and returns the kind
together with the payload normalized for that kind's converter
(EncodedText unwrapped to its string, foreign buffers viewed as
unsigned bytes, async iterables wrapped as PullStream).

RULES:
- Nominal matches before structural (duck-typed) matches
- Narrower buffer flavours (bytearray, memoryview) before generic Bytes
- EncodedText comes only from an explicit tag: an EncodedText instance,
  a {"value", "encoding"} mapping, or a bare str read with the caller's
  input_encoding (which defaults to utf8 text)
- No match → UnrecognizedInputError (fatal, not retryable)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from payload_converter.core.errors import InvalidOptionsError, UnrecognizedInputError
from payload_converter.core.kinds import EncodedText, EncodingTag, Kind
from payload_converter.streams.deferred import DeferredObject
from payload_converter.streams.pull import PullStream
from payload_converter.streams.push import PushStream


@dataclass(frozen=True)
class Classified:
    """A classified input: its kind and the payload its converter consumes."""

    kind: Kind
    value: Any
    normalized: bool = False
    """True when ``value`` is not the caller's original object."""


def _byte_view(value: Any) -> memoryview:
    view = value if isinstance(value, memoryview) else memoryview(value)
    if view.format != "B" or view.ndim != 1:
        view = view.cast("B")
    return view


def _tagged_mapping(value: Mapping) -> EncodedText | None:
    text = value.get("value")
    tag = value.get("encoding")
    if not isinstance(text, str) or tag is None:
        return None
    try:
        return EncodedText(text, EncodingTag.parse(tag))
    except InvalidOptionsError:
        return None


def _looks_deferred(value: Any) -> bool:
    return isinstance(getattr(value, "size", None), int) and callable(
        getattr(value, "read_range", None)
    )


def classify(value: Any, input_encoding: EncodingTag = EncodingTag.TEXT) -> Classified:
    """Classify ``value`` and normalize it for its kind's converter.

    Args:
        value: Any candidate input.
        input_encoding: How to read a bare ``str``.

    Returns:
        Classified(kind, value, normalized).

    Raises:
        UnrecognizedInputError: When no check matches.
    """
    # Nominal matches
    if isinstance(value, EncodedText):
        return Classified(value.kind, value.value, normalized=True)
    if isinstance(value, str):
        return Classified(Kind.for_encoding(input_encoding), value)
    if type(value) is bytes:
        return Classified(Kind.BYTES, value)
    if isinstance(value, bytearray):
        return Classified(Kind.BYTEARRAY, value)
    if isinstance(value, memoryview):
        view = _byte_view(value)
        return Classified(Kind.MEMORYVIEW, view, normalized=view is not value)
    if isinstance(value, bytes):
        return Classified(Kind.BYTES, value)
    if isinstance(value, DeferredObject):
        return Classified(Kind.DEFERRED, value)
    if isinstance(value, PullStream):
        return Classified(Kind.PULL, value)
    if isinstance(value, PushStream):
        return Classified(Kind.PUSH, value)

    # Structural matches
    if isinstance(value, Mapping):
        tagged = _tagged_mapping(value)
        if tagged is not None:
            return Classified(tagged.kind, tagged.value, normalized=True)
    else:
        try:
            view = _byte_view(value)
        except TypeError:
            pass
        else:
            return Classified(Kind.BYTES, view, normalized=True)
    if _looks_deferred(value):
        return Classified(Kind.DEFERRED, value)
    if hasattr(value, "__aiter__"):
        return Classified(Kind.PULL, PullStream.from_async_iterable(value), normalized=True)

    raise UnrecognizedInputError(type(value).__name__)


def identify(value: Any, input_encoding: EncodingTag = EncodingTag.TEXT) -> Kind:
    """Return the kind of ``value`` (see classify for the precedence rules)."""
    return classify(value, input_encoding).kind
