"""Command-line interface for the payload converter.

WHY: Operators need to re-encode files, URLs and pasted strings from the
terminal (hex dump of a blob, base64 of a file, a byte range of a remote
object) without writing Python. The CLI wires argument parsing to the
ConversionEngine and also starts the HTTP service.

HOW: argparse builds the options; the async pipeline opens the input as
the cheapest kind available (FileBlob for paths, open_url() for URLs,
raw bytes for stdin, EncodedText for --text or --from-encoding),
converts it to --to, and writes the result. String results are written as UTF-8
text; everything else is piped window by window. Status messages go to
stderr so stdout can be piped.

RULES:
- Positional INPUT: a path, ``-`` for stdin, or an http(s), file: or
  data: URL
- --text takes the payload literally instead of INPUT
- --from-encoding reads INPUT as text with that encoding tag
- --output defaults to stdout
- Conversion errors exit with status 1 and a one-line message
- Python 3.9 compatible
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

import httpx

from payload_converter import config
from payload_converter.core.errors import ConversionError
from payload_converter.core.kinds import Charset, EncodedText, EncodingTag, Kind
from payload_converter.core.options import ConvertOptions, normalize_options
from payload_converter.engine import ConversionEngine
from payload_converter.streams.deferred import FileBlob
from payload_converter.streams.sinks import FileObjectSink, FileSink
from payload_converter.streams.urls import is_url, open_url, url_scheme

logger = logging.getLogger(__name__)


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


async def _open_input(args: argparse.Namespace, engine: ConversionEngine) -> Any:
    """Turn the INPUT argument (or --text) into a convertible value.

    RULES:
    - --text wins over INPUT
    - --from-encoding tags the text read from INPUT (decoded as UTF-8)
    - Without --from-encoding: URL → open_url(), path → FileBlob,
      ``-`` → stdin bytes
    """
    tag = EncodingTag.parse(args.from_encoding) if args.from_encoding else None

    if args.text is not None:
        return EncodedText(args.text, tag or EncodingTag.TEXT)

    source = args.input
    if source is None:
        raise ConversionError("No input given (pass INPUT or --text)")

    if tag is not None:
        if source == "-":
            raw = sys.stdin.buffer.read()
        elif url_scheme(source) in ("http", "https"):
            async with httpx.AsyncClient(timeout=config.HTTP_TIMEOUT_S, follow_redirects=True) as client:
                resp = await client.get(source)
                resp.raise_for_status()
                raw = resp.content
        elif is_url(source):
            raw = await engine.convert(await open_url(source), Kind.BYTES)
        else:
            raw = Path(source).read_bytes()
        return EncodedText(raw.decode("utf-8"), tag)

    if source == "-":
        return sys.stdin.buffer.read()
    if is_url(source):
        return await open_url(source)
    return FileBlob(source)


async def _write_result(engine: ConversionEngine, result: Any, output: Optional[str]) -> int:
    if isinstance(result, str):
        data = result.encode("utf-8")
        if output is None:
            sys.stdout.write(result)
            sys.stdout.write("\n")
            sys.stdout.flush()
        else:
            Path(output).write_bytes(data)
        return len(data)

    sink = FileSink(output) if output else FileObjectSink(sys.stdout.buffer)
    return await engine.pipe(result, sink)


def _options_from_args(args: argparse.Namespace) -> ConvertOptions:
    return normalize_options(
        chunk_size=args.chunk_size,
        input_charset=args.input_charset,
        output_charset=args.output_charset,
        start=args.start,
        length=args.length,
    )


async def _run(args: argparse.Namespace) -> None:
    engine = ConversionEngine()
    options = _options_from_args(args)
    value = await _open_input(args, engine)
    source_kind = engine.identify(value)
    _status("Converting {} -> {}...".format(source_kind.value, args.to))

    result = await engine.convert(value, args.to, options)
    written = await _write_result(engine, result, args.output)
    if args.output:
        _status("Saved {} bytes to {}".format(written, args.output))


def _list_kinds() -> None:
    engine = ConversionEngine()
    for kind in engine.kinds:
        converter = engine.converter_for(kind)
        print("{:<12} {:<16} {}".format(kind.value, kind.representation.value, converter.name))


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="payload_converter",
        description="Convert binary payloads between bytes, deferred objects, "
                    "text encodings (text, base64, binary, hex) and streams.",
    )

    parser.add_argument(
        "input",
        nargs="?",
        default=None,
        help="Input file path, '-' for stdin, or an http(s), file: or data: URL.",
    )

    parser.add_argument(
        "--to",
        default=Kind.BYTES.value,
        choices=[kind.value for kind in Kind],
        help="Target kind (default: %(default)s).",
    )

    parser.add_argument(
        "--text",
        default=None,
        help="Convert this literal string instead of INPUT.",
    )

    parser.add_argument(
        "--from-encoding",
        default=None,
        choices=[tag.value for tag in EncodingTag],
        help="Read the input as text in this encoding instead of raw bytes.",
    )

    parser.add_argument(
        "--input-charset",
        default=config.INPUT_CHARSET,
        choices=[charset.value for charset in Charset],
        help="Charset for encoding input text to bytes (default: %(default)s).",
    )

    parser.add_argument(
        "--output-charset",
        default=config.OUTPUT_CHARSET,
        choices=[charset.value for charset in Charset],
        help="Charset for decoding bytes to output text (default: %(default)s).",
    )

    parser.add_argument(
        "--chunk-size",
        type=int,
        default=config.CHUNK_SIZE,
        help="Window size in bytes, rounded down to a multiple of 6 (default: %(default)s).",
    )

    parser.add_argument("--start", type=int, default=None, help="First byte of the input to convert.")
    parser.add_argument("--length", type=int, default=None, help="Number of bytes to convert.")

    parser.add_argument(
        "--output",
        "-o",
        default=None,
        help="Write the result to this file (default: stdout).",
    )

    parser.add_argument(
        "--list-kinds",
        action="store_true",
        help="List the kinds available in this environment and exit.",
    )

    parser.add_argument(
        "--serve",
        action="store_true",
        help="Run the HTTP conversion service instead of converting.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m payload_converter``.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if args.serve:
        from payload_converter.server.app import run_api
        run_api()
        return

    if args.list_kinds:
        _list_kinds()
        return

    if args.input is None and args.text is None:
        parser.error("INPUT or --text is required")

    try:
        asyncio.run(_run(args))
    except (ConversionError, OSError, httpx.HTTPError) as exc:
        print("Error: {}".format(exc), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
