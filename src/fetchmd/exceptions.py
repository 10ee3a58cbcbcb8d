"""Exception hierarchy for fetchmd."""

from __future__ import annotations


class FetchMdError(Exception):
    """Base class for all fetchmd errors."""


class InvalidUrlError(FetchMdError):
    """The input URL is unparsable or does not use http(s)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Invalid URL {url!r}: {reason}")
        self.url = url
        self.reason = reason


class FetchNetworkError(FetchMdError):
    """A request failed at the transport level (DNS, connection, TLS, ...)."""

    def __init__(self, url: str, message: str):
        super().__init__(f"Request to {url} failed: {message}")
        self.url = url


class FetchTimeoutError(FetchNetworkError):
    """A request exceeded its timeout and was cancelled."""

    def __init__(self, url: str, timeout: float):
        super().__init__(url, f"timed out after {timeout:g}s")
        self.timeout = timeout


class HttpStatusError(FetchMdError):
    """A response body was required but the server answered with a non-2xx status."""

    def __init__(self, url: str, status_code: int, reason: str = ""):
        detail = f"{status_code} {reason}".strip()
        super().__init__(f"Fetch failed: {detail} ({url})")
        self.url = url
        self.status_code = status_code
        self.reason = reason


class TerminalFetchError(HttpStatusError):
    """The HTML fallback request returned a non-2xx status; nothing is left to try."""


class NegotiationError(FetchMdError):
    """
    A recoverable cascade stage failed.

    Only used for tracing: the original exception is chained as ``__cause__``
    and the cascade moves on to the next stage.
    """

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage}: {message}")
        self.stage = stage


class CascadeExhaustedError(FetchMdError):
    """Every cascade stage finished without producing Markdown."""
