"""Pydantic request/response models for the HTTP conversion service.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and the generated OpenAPI docs.

HOW: One request model for JSON conversions, one response model for
string results, plus listing, health and error models. Enums are the
engine's own Kind/EncodingTag/Charset so the schema lists exactly the
values the engine accepts.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Binary results are not modelled; they are streamed as octet-stream
- Python 3.9+ compatible (Optional from typing, no PEP 604 unions)
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from payload_converter.core.kinds import Charset, EncodingTag, Kind

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class ConversionSettings(BaseModel):
    """Conversion options shared by both conversion endpoints.

    RULES:
    - chunk_size is rounded down to a multiple of 6; 0 or omitted means the default
    - start/length select a byte range of the decoded input
    """

    to: Kind = Field(description="Target kind.")
    chunk_size: Optional[int] = Field(
        default=None,
        description="Window size in bytes (rounded down to a multiple of 6).",
    )
    input_charset: Charset = Field(
        default=Charset.UTF8,
        description="Charset used to encode text input to bytes.",
    )
    output_charset: Charset = Field(
        default=Charset.UTF8,
        description="Charset used to decode bytes to text output.",
    )
    start: Optional[int] = Field(default=None, ge=0, description="First byte to convert.")
    length: Optional[int] = Field(default=None, ge=0, description="Number of bytes to convert.")


class TextConversionRequest(ConversionSettings):
    """JSON body for POST /conversions/text."""

    value: str = Field(description="The encoded input string.")
    encoding: EncodingTag = Field(
        default=EncodingTag.TEXT,
        description="How to read `value`: text, base64, binary, hex or data_url.",
    )

    model_config = {"json_schema_extra": {
        "examples": [
            {"value": "ab", "encoding": "text", "to": "base64"},
            {"value": "YWI=", "encoding": "base64", "to": "hex"},
        ]
    }}


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class ConversionResponse(BaseModel):
    """A string-kind conversion result (text, base64, binary, hex, data URL)."""

    kind: Kind = Field(description="Kind of `value`.")
    value: str = Field(description="The converted string.")

    model_config = {"json_schema_extra": {
        "examples": [{"kind": "base64", "value": "YWI="}]
    }}


class KindInfo(BaseModel):
    """Description of a kind offered by this service."""

    key: str = Field(description="Kind identifier used in requests.")
    representation: str = Field(description="Representation family of the kind.")
    name: str = Field(description="Human-readable kind name.")


class KindListResponse(BaseModel):
    kinds: List[KindInfo] = Field(description="Kinds available in this environment.")


class ErrorResponse(BaseModel):
    """Standard error response body.

    RULES:
    - detail is always a human-readable error message
    """

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
