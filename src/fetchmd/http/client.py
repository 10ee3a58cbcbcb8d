"""Async HTTP transport with per-request timeouts and bounded body sniffing."""

from __future__ import annotations

import asyncio
import codecs
import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from functools import partial
from types import TracebackType
from typing import Optional

import aiohttp
from charset_normalizer import from_bytes as detect_encoding

from ..exceptions import FetchNetworkError, FetchTimeoutError, HttpStatusError
from .protocols import BodyLoader, FetchAttempt, HttpResponse, ResponseEnvelope

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "fetchmd/1.0"
SNIFF_MAX_BYTES = 8192
CHUNK_SIZE = 8192


def _charset_from_content_type(content_type: Optional[str]) -> Optional[str]:
    """Return the charset parameter of a Content-Type header, if any."""
    if not content_type:
        return None
    for part in content_type.split(";"):
        part = part.strip()
        if part.lower().startswith("charset="):
            return part.split("=", 1)[1].strip().strip("\"'") or None
    return None


def _incremental_decoder(content_type: Optional[str]) -> codecs.IncrementalDecoder:
    """Build an incremental decoder for the declared charset (UTF-8 by default)."""
    encoding = _charset_from_content_type(content_type) or "utf-8"
    try:
        return codecs.getincrementaldecoder(encoding)(errors="replace")
    except LookupError:
        logger.debug(f"Unknown charset {encoding!r}, decoding preview as UTF-8")
        return codecs.getincrementaldecoder("utf-8")(errors="replace")


async def read_text_up_to(response: aiohttp.ClientResponse, max_bytes: int) -> str:
    """
    Decode at most ``max_bytes`` raw bytes of a streamed response body.

    The body is decoded chunk by chunk with an incremental decoder, so
    multi-byte characters split across chunk boundaries survive. Once the
    budget is reached the response is closed, which drops the connection
    instead of downloading the rest. The decoder is finalized before
    returning; a character cut by the budget becomes U+FFFD.

    Args:
        response: An open aiohttp response
        max_bytes: Raw byte budget

    Returns:
        Decoded text of the first ``max_bytes`` bytes
    """
    decoder = _incremental_decoder(response.headers.get("Content-Type"))
    parts: list[str] = []
    consumed = 0

    try:
        if max_bytes > 0:
            async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                remaining = max_bytes - consumed
                if len(chunk) > remaining:
                    chunk = chunk[:remaining]
                consumed += len(chunk)
                parts.append(decoder.decode(chunk))
                if consumed >= max_bytes:
                    break
    finally:
        response.close()

    parts.append(decoder.decode(b"", final=True))
    return "".join(parts)


class AsyncHttpClient:
    """
    Async HTTP client for the fetch cascade.

    Features:
    - HEAD, full GET and bounded "sniff" GET
    - Redirects always followed
    - Per-request total timeout, reported as FetchTimeoutError
    - Content size limits to prevent memory exhaustion
    - Intelligent encoding detection

    Requests are never retried: a failed request is handled by the caller
    moving on to its next strategy.

    Example:
        async with AsyncHttpClient(default_timeout=10) as client:
            envelope = await client.sniff("https://example.com/README.md")
            if envelope.ok:
                print(envelope.preview)
    """

    MAX_CONTENT_SIZE = 50 * 1024 * 1024  # 50 MB

    def __init__(
        self,
        user_agent: Optional[str] = None,
        default_timeout: float = 30.0,
        headers: Optional[Mapping[str, str]] = None,
        max_content_size: int = MAX_CONTENT_SIZE,
    ) -> None:
        """
        Initialize the HTTP client.

        Args:
            user_agent: User-Agent sent with every request
            default_timeout: Timeout in seconds when a call passes none
            headers: Static headers included in all requests
            max_content_size: Maximum response size in bytes for full reads
        """
        self._user_agent = user_agent or DEFAULT_USER_AGENT
        self._default_timeout = default_timeout
        self._static_headers = dict(headers or {})
        self._max_content_size = max_content_size

        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> AsyncHttpClient:
        """Enter async context and create session."""
        self._session = aiohttp.ClientSession(
            headers={"User-Agent": self._user_agent},
        )
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        """Exit async context and close session."""
        if self._session:
            await self._session.close()
            self._session = None

    def _attempt(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]],
        timeout: Optional[float],
    ) -> FetchAttempt:
        request_headers = dict(self._static_headers)
        if headers:
            request_headers.update(headers)
        return FetchAttempt(
            url=url,
            method=method,
            headers=request_headers,
            timeout=timeout or self._default_timeout,
        )

    @asynccontextmanager
    async def _open(self, attempt: FetchAttempt) -> AsyncIterator[aiohttp.ClientResponse]:
        """Send a request and translate transport failures into fetchmd errors."""
        if self._session is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        logger.debug(f"{attempt.method} {attempt.url}")
        try:
            async with self._session.request(
                attempt.method,
                attempt.url,
                headers=dict(attempt.headers),
                timeout=aiohttp.ClientTimeout(total=attempt.timeout),
                allow_redirects=True,
            ) as response:
                yield response
        except asyncio.TimeoutError as e:
            raise FetchTimeoutError(attempt.url, attempt.timeout) from e
        except aiohttp.ClientError as e:
            raise FetchNetworkError(attempt.url, str(e) or type(e).__name__) from e

    def _body_loader(
        self,
        url: str,
        headers: Optional[Mapping[str, str]],
        timeout: Optional[float],
    ) -> BodyLoader:
        return partial(self.get_text, url, headers=headers, timeout=timeout)

    def _decode_content(self, content: bytes, content_type: str) -> str:
        """
        Decode content with intelligent encoding detection.

        Fallback chain:
        1. Content-Type header charset
        2. Strict UTF-8
        3. charset-normalizer detection
        4. UTF-8 with replacement

        Args:
            content: Raw bytes content
            content_type: Content-Type header value

        Returns:
            Decoded string
        """
        encoding = _charset_from_content_type(content_type)
        if encoding:
            try:
                return content.decode(encoding)
            except (UnicodeDecodeError, LookupError):
                logger.debug(f"Failed to decode with declared encoding: {encoding}")

        try:
            return content.decode("utf-8")
        except UnicodeDecodeError:
            pass

        best_match = detect_encoding(content).best()
        if best_match is not None:
            logger.debug(f"Detected encoding: {best_match.encoding}")
            return str(best_match)

        return content.decode("utf-8", errors="replace")

    async def head(
        self,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> ResponseEnvelope:
        """
        Perform an HTTP HEAD request.

        Args:
            url: The URL to check
            headers: Optional additional headers
            timeout: Request timeout in seconds (uses default if None)

        Returns:
            ResponseEnvelope with an empty preview; ``read_full_text()``
            issues a GET with the same headers

        Raises:
            FetchTimeoutError: If the request exceeds the timeout
            FetchNetworkError: On any other transport failure
        """
        attempt = self._attempt("HEAD", url, headers, timeout)
        async with self._open(attempt) as response:
            return ResponseEnvelope(
                status_code=response.status,
                content_type=response.headers.get("Content-Type"),
                url=str(response.url),
                headers=dict(response.headers),
                loader=self._body_loader(url, headers, timeout),
            )

    async def get(
        self,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> HttpResponse:
        """
        Perform an HTTP GET request and read the whole body.

        Args:
            url: The URL to fetch
            headers: Optional additional headers
            timeout: Request timeout in seconds (uses default if None)

        Returns:
            HttpResponse with status, content, and headers

        Raises:
            FetchTimeoutError: If the request exceeds the timeout
            FetchNetworkError: On any other transport failure
            ValueError: On content size exceeded
        """
        attempt = self._attempt("GET", url, headers, timeout)
        async with self._open(attempt) as response:
            # Check Content-Length if available
            content_length = response.headers.get("Content-Length")
            if content_length and content_length.isdigit() and int(content_length) > self._max_content_size:
                raise ValueError(f"Content too large: {content_length} bytes")

            # Read content with size limit
            content = bytearray()
            async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                content.extend(chunk)
                if len(content) > self._max_content_size:
                    raise ValueError(f"Content size limit exceeded: >{self._max_content_size} bytes")

            logger.debug(f"GET {url} -> {response.status} ({len(content)} bytes)")

            return HttpResponse(
                status_code=response.status,
                content=bytes(content),
                content_type=response.headers.get("Content-Type", ""),
                headers=dict(response.headers),
                url=str(response.url),
                reason=response.reason or "",
            )

    async def get_text(
        self,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """
        GET a URL and return its decoded body.

        Raises:
            HttpStatusError: If the response status is not 2xx
            FetchTimeoutError: If the request exceeds the timeout
            FetchNetworkError: On any other transport failure
        """
        response = await self.get(url, headers=headers, timeout=timeout)
        if not response.ok:
            raise HttpStatusError(response.url, response.status_code, response.reason)
        return self.decode_content(response)

    async def sniff(
        self,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        max_bytes: int = SNIFF_MAX_BYTES,
    ) -> ResponseEnvelope:
        """
        Fetch only the beginning of a resource to classify it.

        Sends ``Range: bytes=0-(max_bytes - 1)``. Servers that ignore the
        range may send more, but no more than ``max_bytes`` bytes are read.

        Args:
            url: The URL to sniff
            headers: Optional additional headers
            timeout: Request timeout in seconds (uses default if None)
            max_bytes: Raw byte budget for the preview

        Returns:
            ResponseEnvelope with the decoded preview; ``read_full_text()``
            issues a full GET without the Range header

        Raises:
            FetchTimeoutError: If the request exceeds the timeout
            FetchNetworkError: On any other transport failure
        """
        sniff_headers = dict(headers or {})
        sniff_headers["Range"] = f"bytes=0-{max(max_bytes, 1) - 1}"

        attempt = self._attempt("GET", url, sniff_headers, timeout)
        async with self._open(attempt) as response:
            preview = await read_text_up_to(response, max_bytes)
            return ResponseEnvelope(
                status_code=response.status,
                content_type=response.headers.get("Content-Type"),
                url=str(response.url),
                preview=preview,
                headers=dict(response.headers),
                loader=self._body_loader(url, headers, timeout),
            )

    def decode_content(self, response: HttpResponse) -> str:
        """
        Decode response content to string.

        Convenience method that uses intelligent encoding detection.

        Args:
            response: HttpResponse to decode

        Returns:
            Decoded string content
        """
        return self._decode_content(response.content, response.content_type)
