"""
fetchmd - Fetch a URL as clean Markdown.

Tries, in order: content negotiation (HEAD, then a small ranged GET),
sibling Markdown files such as ``page.md`` or ``index.md``, and finally
main-content extraction from the HTML page.

Usage:
    from fetchmd import Fetcher, FetchMdConfig

    async with Fetcher(FetchMdConfig(timeout_ms=10_000)) as fetcher:
        markdown = await fetcher.fetch("https://docs.example.com/guide/")
"""

__version__ = "1.0.0"

from .core.fetcher import Fetcher, fetch_blocking, fetch_markdown
from .exceptions import (
    CascadeExhaustedError,
    FetchMdError,
    FetchNetworkError,
    FetchTimeoutError,
    HttpStatusError,
    InvalidUrlError,
    NegotiationError,
    TerminalFetchError,
)
from .models.config import FetchMdConfig
from .models.events import EventType, FetchEvent

__all__ = [
    "__version__",
    # Core
    "Fetcher",
    "fetch_blocking",
    "fetch_markdown",
    # Config
    "FetchMdConfig",
    # Events
    "EventType",
    "FetchEvent",
    # Errors
    "CascadeExhaustedError",
    "FetchMdError",
    "FetchNetworkError",
    "FetchTimeoutError",
    "HttpStatusError",
    "InvalidUrlError",
    "NegotiationError",
    "TerminalFetchError",
]
