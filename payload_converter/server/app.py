"""FastAPI application exposing the conversion engine over HTTP.

WHY: Services that cannot embed the Python library (shell scripts, n8n,
other languages) still need to re-encode payloads. A small HTTP surface
over the same engine gives them every kind the library has, with
OpenAPI docs for free.

HOW: Four endpoints. POST /conversions takes a multipart upload and
feeds it to the engine as a PullStream, one chunk_size read at a time.
POST /conversions/text takes a JSON EncodedText. String results come
back as JSON; binary results (bytes, deferred, streams) are collected
inside the request and streamed back in chunk_size windows. GET /kinds
lists the kinds this environment offers; GET /health is the liveness
probe.

RULES:
- Conversion errors map to the ErrorResponse schema:
  400 bad options or unknown/disabled kind, 415 unrecognized or
  unsupported source, 422 malformed payload, 502 remote read failure
- The engine comes from a dependency so tests can swap capabilities
- The upload is fully consumed before the response starts
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Optional

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse

from payload_converter import __version__, config
from payload_converter.core.errors import (
    ConversionError,
    InvalidOptionsError,
    MalformedInputError,
    UnderlyingIOError,
    UnrecognizedInputError,
    UnsupportedConversionError,
    UnsupportedKindError,
)
from payload_converter.core.kinds import EncodedText, EncodingTag, Kind
from payload_converter.core.options import ConvertOptions, normalize_options
from payload_converter.engine import ConversionEngine, get_engine
from payload_converter.server.models import (
    ConversionResponse,
    ErrorResponse,
    HealthResponse,
    KindInfo,
    KindListResponse,
    TextConversionRequest,
)
from payload_converter.streams.pull import PullStream

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Payload Converter API",
    description=(
        "Convert binary payloads between bytes, deferred objects, text "
        "encodings (UTF-8 text, base64, binary string, hex, data URL) and streams. "
        "Upload a file or post an encoded string and name the target kind."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

_ERRORS = {
    400: {"model": ErrorResponse, "description": "Invalid options or unknown/disabled target kind"},
    415: {"model": ErrorResponse, "description": "Input kind not recognized or not supported"},
    422: {"model": ErrorResponse, "description": "Malformed encoded input"},
    502: {"model": ErrorResponse, "description": "Remote object could not be read"},
}

_STATUS_CODES = (
    (InvalidOptionsError, 400),
    (UnsupportedKindError, 400),
    (UnrecognizedInputError, 415),
    (UnsupportedConversionError, 415),
    (MalformedInputError, 422),
    (UnderlyingIOError, 502),
)


def get_conversion_engine() -> ConversionEngine:
    """Dependency returning the process-wide engine."""
    return get_engine()


EngineDep = Annotated[ConversionEngine, Depends(get_conversion_engine)]


@app.exception_handler(ConversionError)
async def conversion_error_handler(request: Request, exc: ConversionError) -> JSONResponse:
    status_code = 400
    for error_type, code in _STATUS_CODES:
        if isinstance(exc, error_type):
            status_code = code
            break
    logger.info("Conversion request failed (%d): %s", status_code, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unexpected error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _upload_stream(upload: UploadFile, chunk_size: int) -> PullStream:
    """A PullStream reading ``upload`` one chunk_size block per pull."""

    async def pull() -> Optional[bytes]:
        data = await upload.read(chunk_size)
        return data or None

    return PullStream(pull, upload.close)


async def _render(engine: ConversionEngine, value: Any, target: Kind, options: ConvertOptions) -> Any:
    """Convert ``value`` to ``target`` and build the HTTP response."""
    result = await engine.convert(value, target, options)
    if isinstance(result, str):
        return ConversionResponse(kind=target, value=result)

    data = await engine.convert(result, Kind.BYTES, chunk_size=options.chunk_size)
    windows = engine.iter_windows(data, chunk_size=options.chunk_size)
    return StreamingResponse(
        windows,
        media_type="application/octet-stream",
        headers={"X-Payload-Kind": target.value, "Content-Length": str(len(data))},
    )


# ---------------------------------------------------------------------------
# Endpoints: Conversions
# ---------------------------------------------------------------------------


@app.post(
    "/conversions",
    response_model=ConversionResponse,
    tags=["conversions"],
    summary="Convert an uploaded payload",
    description=(
        "Upload a file and name the target kind. String kinds (text, base64, "
        "binary, hex) return JSON; all other kinds return the converted "
        "bytes as application/octet-stream."
    ),
    responses=_ERRORS,
)
async def convert_upload(
    engine: EngineDep,
    file: Annotated[UploadFile, File(description="Payload to convert.")],
    to: Annotated[str, Form(description="Target kind, e.g. 'base64' or 'bytes'.")],
    encoding: Annotated[
        Optional[str],
        Form(description="Read the upload as UTF-8 text with this encoding tag instead of raw bytes."),
    ] = None,
    chunk_size: Annotated[
        Optional[int],
        Form(description="Window size in bytes (rounded down to a multiple of 6)."),
    ] = None,
    input_charset: Annotated[str, Form(description="Charset for text input.")] = config.INPUT_CHARSET,
    output_charset: Annotated[str, Form(description="Charset for text output.")] = config.OUTPUT_CHARSET,
    start: Annotated[Optional[int], Form(description="First byte to convert.")] = None,
    length: Annotated[Optional[int], Form(description="Number of bytes to convert.")] = None,
) -> Any:
    target = engine.converter_for(to).kind
    options = normalize_options(
        chunk_size=chunk_size or config.CHUNK_SIZE,
        input_charset=input_charset,
        output_charset=output_charset,
        start=start,
        length=length,
    )

    if encoding:
        tag = EncodingTag.parse(encoding)
        raw = await file.read()
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedInputError(f"Upload is not UTF-8 text: {exc}") from exc
        value: Any = EncodedText(text, tag)
    else:
        value = _upload_stream(file, options.chunk_size)

    logger.debug("Upload %s -> %s", file.filename, target.value)
    return await _render(engine, value, target, options)


@app.post(
    "/conversions/text",
    response_model=ConversionResponse,
    tags=["conversions"],
    summary="Convert an encoded string",
    description=(
        "Post a string with its encoding tag and name the target kind. "
        "String kinds return JSON; all other kinds return octet-stream."
    ),
    responses=_ERRORS,
)
async def convert_text(engine: EngineDep, body: TextConversionRequest) -> Any:
    target = engine.converter_for(body.to).kind
    options = normalize_options(
        chunk_size=body.chunk_size or config.CHUNK_SIZE,
        input_charset=body.input_charset,
        output_charset=body.output_charset,
        start=body.start,
        length=body.length,
    )
    return await _render(engine, EncodedText(body.value, body.encoding), target, options)


# ---------------------------------------------------------------------------
# Endpoints: Kinds and health
# ---------------------------------------------------------------------------


@app.get(
    "/kinds",
    response_model=KindListResponse,
    tags=["kinds"],
    summary="List available kinds",
    description="Kinds this environment can convert to and from.",
)
async def list_kinds(engine: EngineDep) -> KindListResponse:
    kinds = []
    for kind in engine.kinds:
        kinds.append(KindInfo(
            key=kind.value,
            representation=kind.representation.value,
            name=engine.converter_for(kind).name,
        ))
    return KindListResponse(kinds=kinds)


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness and readiness check for load balancers and orchestrators.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api() -> None:
    """Run the service with uvicorn (``python -m payload_converter --serve``)."""
    import uvicorn

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    logger.info("Starting conversion service on %s:%d", config.SERVER_HOST, config.SERVER_PORT)
    uvicorn.run(app, host=config.SERVER_HOST, port=config.SERVER_PORT)
