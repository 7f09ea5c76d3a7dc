"""Remote deferred objects backed by HTTP range requests.

WHY: A payload behind a URL is a deferred object like any other: its
size is known from the headers and its bytes can be fetched a range at
a time. Converting a remote object window by window keeps memory
bounded no matter how large the object is.

HOW: HttpBlob.open() sends a HEAD request and reads Content-Length.
read_range() sends ``GET`` with a ``Range: bytes=start-(end-1)`` header
through httpx.AsyncClient. A caller-supplied client is reused; without
one, each request uses a short-lived client.

RULES:
- 206 responses are used as-is; a 200 (server ignored Range) is sliced
- Any other status raises UnderlyingIOError(status_code, message)
- A short read raises UnderlyingIOError
- Transport errors (httpx.TransportError) propagate unmodified
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

import httpx

from payload_converter import config
from payload_converter.core.errors import UnderlyingIOError
from payload_converter.streams.deferred import DeferredObject

logger = logging.getLogger(__name__)


class HttpBlob(DeferredObject):
    """A remote object read with HTTP range requests.

    Use ``await HttpBlob.open(url)`` to discover the size; construct it
    directly when the size is already known.
    """

    def __init__(
        self,
        url: str,
        size: int,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self.url = url
        self._size = size
        self._client = client
        self._timeout = timeout if timeout is not None else config.HTTP_TIMEOUT_S

    @classmethod
    async def open(
        cls,
        url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> HttpBlob:
        blob = cls(url, 0, client=client, timeout=timeout)
        resp = await blob._request("HEAD")
        if not resp.is_success:
            raise UnderlyingIOError(resp.status_code, resp.reason_phrase or "HEAD failed")

        length = resp.headers.get("content-length")
        if length is None or not length.isdigit():
            raise UnderlyingIOError(resp.status_code, f"No usable Content-Length for {url}")
        blob._size = int(length)
        logger.debug("Opened %s (%d bytes)", url, blob._size)
        return blob

    @property
    def size(self) -> int:
        return self._size

    async def _request(self, method: str, headers: Optional[Dict[str, str]] = None) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(method, self.url, headers=headers)
        async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
            return await client.request(method, self.url, headers=headers)

    async def read_range(self, start: int, end: int) -> bytes:
        if start >= end:
            return b""

        resp = await self._request("GET", headers={"Range": f"bytes={start}-{end - 1}"})
        if resp.status_code == 206:
            data = resp.content
        elif resp.status_code == 200:
            data = resp.content[start:end]
        else:
            raise UnderlyingIOError(resp.status_code, resp.text)

        if len(data) != end - start:
            raise UnderlyingIOError(
                resp.status_code,
                f"Expected {end - start} bytes from {self.url}, got {len(data)}",
            )
        return data

    def __repr__(self) -> str:
        return f"HttpBlob({self.url!r}, size={self._size})"
