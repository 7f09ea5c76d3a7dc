"""Environment capability flags, resolved once per process.

WHY: Some representation kinds may be unavailable in a given
deployment (an operator may switch off stream kinds, for instance).
Conversions that ask for an absent kind must fail fast with
UnsupportedKindError instead of half-working.

HOW: Capabilities is a frozen dataclass handed explicitly to the
ConversionEngine. probe_capabilities() builds it from config once and
caches the result; tests construct their own instances.

RULES:
- Bytes and EncodedText kinds are always available
- Capabilities never change after construction
"""

from __future__ import annotations

import functools
from dataclasses import dataclass

from payload_converter import config
from payload_converter.core.kinds import Kind, RepresentationKind


@dataclass(frozen=True)
class Capabilities:
    """Which optional representation families this environment offers."""

    deferred_object: bool = True
    push_stream: bool = True
    pull_stream: bool = True

    def supports(self, kind: Kind) -> bool:
        family = kind.representation
        if family is RepresentationKind.DEFERRED_OBJECT:
            return self.deferred_object
        if family is RepresentationKind.PUSH_STREAM:
            return self.push_stream
        if family is RepresentationKind.PULL_STREAM:
            return self.pull_stream
        return True

    @property
    def kinds(self) -> list[Kind]:
        """Supported kinds, in declaration order."""
        return [kind for kind in Kind if self.supports(kind)]


@functools.lru_cache(maxsize=None)
def probe_capabilities() -> Capabilities:
    """Resolve the process-wide capability set from configuration."""
    return Capabilities(
        deferred_object=config.ENABLE_DEFERRED,
        push_stream=config.ENABLE_PUSH_STREAM,
        pull_stream=config.ENABLE_PULL_STREAM,
    )
