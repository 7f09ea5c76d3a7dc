"""Open a URL as the cheapest convertible value.

WHY: Payloads are often named by URL rather than handed over as
values: a remote object, a file on this machine, or bytes inlined in a
``data:`` URL. Each scheme maps onto a kind the engine already reads.

HOW: The scheme picks the value:
  http(s):  HttpBlob (size from HEAD, bytes by range request)
  file:     FileBlob on the local path
  data:     EncodedText tagged data_url (decoded window by window)

RULES:
- Scheme matching is case-insensitive
- file: URLs must name this host (empty netloc or "localhost")
- Any other scheme raises MalformedInputError
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse
from urllib.request import url2pathname

import httpx

from payload_converter.core.errors import MalformedInputError
from payload_converter.core.kinds import EncodedText, EncodingTag
from payload_converter.streams.deferred import FileBlob
from payload_converter.streams.http import HttpBlob

URL_SCHEMES = ("http", "https", "file", "data")


def url_scheme(value: str) -> str:
    """Lower-cased scheme of ``value``, or "" when it has none."""
    head, sep, _ = value.partition(":")
    return head.lower() if sep and head.isalpha() else ""


def is_url(value: str) -> bool:
    return url_scheme(value) in URL_SCHEMES


def file_url_path(url: str) -> str:
    parsed = urlparse(url)
    if parsed.netloc not in ("", "localhost"):
        raise MalformedInputError(f"file URL names a remote host: {parsed.netloc}")
    return url2pathname(parsed.path)


async def open_url(
    url: str,
    client: httpx.AsyncClient | None = None,
    timeout: float | None = None,
) -> Any:
    """Return a convertible value for ``url``.

    Raises:
        MalformedInputError: Unsupported scheme or a remote file URL.
        UnderlyingIOError: The HTTP object could not be opened.
        OSError: The local file does not exist.
    """
    scheme = url_scheme(url)
    if scheme == "data":
        return EncodedText(url, EncodingTag.DATA_URL)
    if scheme == "file":
        return FileBlob(file_url_path(url))
    if scheme in ("http", "https"):
        return await HttpBlob.open(url, client=client, timeout=timeout)
    raise MalformedInputError(f"Unsupported URL scheme: {url!r}")
