"""Protocol definitions for HTTP client abstraction."""

from __future__ import annotations

from collections.abc import Awaitable, Mapping
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

# Deferred accessor for the full body of a sniffed or HEAD-checked resource
BodyLoader = Callable[[], Awaitable[str]]


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


@dataclass(frozen=True)
class FetchAttempt:
    """
    A single outbound request, fixed before it is sent.

    Attributes:
        url: Absolute URL to request
        method: HTTP method ("GET" or "HEAD")
        headers: Request headers merged on top of the session defaults
        timeout: Total time budget for the request in seconds
    """

    url: str
    method: str
    headers: Mapping[str, str]
    timeout: float


@dataclass(frozen=True)
class HttpResponse:
    """
    Immutable, fully-read HTTP response.

    Attributes:
        status_code: HTTP status code (200, 404, etc.)
        content: Raw response content as bytes
        content_type: Content-Type header value
        headers: All response headers
        url: Final URL after any redirects
        reason: HTTP reason phrase
    """

    status_code: int
    content: bytes
    content_type: str
    headers: dict[str, str]
    url: str
    reason: str = ""

    @property
    def ok(self) -> bool:
        """True for 2xx responses."""
        return _is_success(self.status_code)


@dataclass(frozen=True)
class ResponseEnvelope:
    """
    Response metadata plus a bounded body preview.

    Produced by HEAD and sniff requests. The preview is only as long as the
    sniff budget allowed (empty for HEAD); the full body is fetched lazily
    through ``read_full_text()``.

    Attributes:
        status_code: HTTP status code
        content_type: Declared Content-Type, None when absent
        url: Final URL after any redirects
        preview: Decoded beginning of the body
        headers: All response headers
    """

    status_code: int
    content_type: Optional[str]
    url: str
    preview: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    loader: Optional[BodyLoader] = field(default=None, repr=False, compare=False)

    @property
    def ok(self) -> bool:
        """True for 2xx responses."""
        return _is_success(self.status_code)

    async def read_full_text(self) -> str:
        """
        Fetch and decode the complete body of the same resource.

        Raises:
            RuntimeError: If the envelope was built without a loader
            HttpStatusError: If the full request returns a non-2xx status
        """
        if self.loader is None:
            raise RuntimeError(f"No body loader attached for {self.url}")
        return await self.loader()


class HttpClient(Protocol):
    """
    Protocol for HTTP clients used by the cascade.

    This abstraction allows for:
    - Mock implementations in tests
    - Different backends (aiohttp, httpx, etc.)
    - Consistent interface across the codebase
    """

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
            timeout: Request timeout in seconds

        Returns:
            ResponseEnvelope with an empty preview
        """
        ...

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
            timeout: Request timeout in seconds

        Returns:
            HttpResponse with status, content, and headers
        """
        ...

    async def sniff(
        self,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        max_bytes: int = 8192,
    ) -> ResponseEnvelope:
        """
        Perform a ranged GET and decode at most ``max_bytes`` of the body.

        Args:
            url: The URL to sniff
            headers: Optional additional headers
            timeout: Request timeout in seconds
            max_bytes: Raw byte budget for the preview

        Returns:
            ResponseEnvelope with the decoded preview
        """
        ...

    def decode_content(self, response: HttpResponse) -> str:
        """Decode a fully-read response body to text."""
        ...
