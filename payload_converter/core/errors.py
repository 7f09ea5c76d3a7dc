"""Exception taxonomy for the conversion engine.

WHY: Callers need to tell apart "this value is not something we know",
"we know both kinds but cannot get from one to the other", "this
environment does not offer that kind", and failures coming from the
underlying I/O. Typed exceptions make each case catchable on its own.

HOW: Every engine error derives from ConversionError. Subclasses also
derive from the closest builtin (TypeError, ValueError, OSError,
RuntimeError) so generic handlers keep working.

RULES:
- All errors are fatal for the call that raised them; the engine never retries
- Errors from read/pull/push/write primitives are NOT wrapped; they
  propagate unmodified. UnderlyingIOError is raised only by the engine's
  own I/O collaborators (e.g. HttpBlob) for protocol-level failures
"""

from __future__ import annotations


class ConversionError(Exception):
    """Base class for every error raised by the conversion engine."""


class UnrecognizedInputError(ConversionError, TypeError):
    """Raised when the classifier finds no kind for a value.

    RULES:
    - type_name is the runtime type name of the offending value
    - Not retryable: the same value will never classify differently
    """

    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(f"Unrecognized input type: {type_name}")


class UnsupportedConversionError(ConversionError):
    """Raised when no direct edge and no pivot path exists between two kinds."""

    def __init__(self, source: str, target: str) -> None:
        self.source = source
        self.target = target
        super().__init__(f"Unsupported conversion: {source} -> {target}")


class UnsupportedKindError(ConversionError):
    """Raised when a kind is unknown or its capability is absent here.

    RULES:
    - Raised before any input is inspected (fail fast)
    - reason explains which case applied
    """

    def __init__(self, kind: str, reason: str = "not supported in this environment") -> None:
        self.kind = kind
        self.reason = reason
        super().__init__(f"Kind '{kind}' is {reason}")


class UnderlyingIOError(ConversionError, OSError):
    """Raised when a remote or file collaborator reports a failed read.

    HOW: Wraps the status code and response body, the same way an API
    client wraps non-2xx responses.
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"I/O error {status_code}: {message}")


class InvalidOptionsError(ConversionError, ValueError):
    """Raised when conversion options cannot be normalized."""


class MalformedInputError(ConversionError, ValueError):
    """Raised when an encoded payload cannot be decoded (bad base64/hex/charset)."""


class StreamConsumedError(ConversionError, RuntimeError):
    """Raised when a one-shot stream is subscribed to a second time."""
