"""Main Fetcher class: runs the Markdown cascade for one URL at a time."""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import Callable

from ..exceptions import InvalidUrlError
from ..http import AsyncHttpClient
from ..http.protocols import HttpClient
from ..logging_config import setup_logging
from ..models.config import FetchMdConfig
from ..models.events import EventType, FetchEvent
from ..pipeline.base import CascadeContext, CascadeStep, FetchCascade
from ..pipeline.steps import (
    HeaderNegotiationStep,
    HtmlFallbackStep,
    SiblingLookupStep,
    SniffNegotiationStep,
)
from ..security.url_validator import UrlValidator

logger = logging.getLogger(__name__)


def default_steps(http_client: HttpClient) -> list[CascadeStep]:
    """
    Build the standard cascade.

    Order: HEAD negotiation, sniff negotiation, sibling lookup, HTML fallback.
    """
    return [
        HeaderNegotiationStep(http_client),
        SniffNegotiationStep(http_client),
        SiblingLookupStep(http_client),
        HtmlFallbackStep(http_client),
    ]


class Fetcher:
    """
    Primary API for fetchmd.

    Validates the URL, then tries each cascade strategy in order and returns
    the first Markdown produced. Every run records a trace of FetchEvents.

    Example:
        config = FetchMdConfig(timeout_ms=10_000)

        async with Fetcher(config) as fetcher:
            markdown = await fetcher.fetch("https://docs.example.com/guide/")

        for event in fetcher.trace:
            print(event)
    """

    def __init__(
        self,
        config: FetchMdConfig | None = None,
        http_client: HttpClient | None = None,
        on_event: Callable[[FetchEvent], None] | None = None,
    ):
        """
        Initialize the Fetcher.

        Args:
            config: Configuration (defaults if None)
            http_client: Client to use instead of an owned AsyncHttpClient.
                A supplied client is neither opened nor closed here.
            on_event: Optional callback invoked for every trace event
        """
        self.config = config or FetchMdConfig()
        self._on_event = on_event
        self._trace: list[FetchEvent] = []
        self._url_validator = UrlValidator()

        # Library callers get the same stage trace as the CLI
        if self.config.debug:
            setup_logging(self.config.effective_log_level, self.config.log_file)

        self._external_client = http_client
        self._owned_client: AsyncHttpClient | None = None
        self._cascade: FetchCascade | None = None

    @property
    def trace(self) -> list[FetchEvent]:
        """Events recorded during the most recent run."""
        return list(self._trace)

    def _emit(self, event: FetchEvent) -> None:
        self._trace.append(event)
        if self._on_event:
            self._on_event(event)

    async def __aenter__(self) -> Fetcher:
        """Enter async context and build the cascade."""
        client: HttpClient
        if self._external_client is not None:
            client = self._external_client
        else:
            self._owned_client = AsyncHttpClient(
                user_agent=self.config.user_agent,
                default_timeout=self.config.timeout_seconds,
                headers=self.config.headers,
            )
            await self._owned_client.__aenter__()
            client = self._owned_client

        self._cascade = FetchCascade(steps=default_steps(client))
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context and cleanup resources."""
        if self._owned_client:
            await self._owned_client.__aexit__(exc_type, exc_val, exc_tb)
            self._owned_client = None
        self._cascade = None

    def validate_url(self, url: str) -> str:
        """
        Check that ``url`` is an absolute http(s) URL with a host.

        Raises:
            InvalidUrlError: If the URL is rejected
        """
        result = self._url_validator.validate(url)
        if not result.is_valid:
            raise InvalidUrlError(url, result.rejection_reason or "rejected")
        return url.strip()

    async def run(self, url: str) -> CascadeContext:
        """
        Run the cascade and return its full state.

        Args:
            url: Absolute http(s) URL

        Returns:
            CascadeContext with markdown, stage, source_url and recovered errors

        Raises:
            InvalidUrlError: Before any request, for unusable input
            TerminalFetchError: If the HTML fallback gets a non-2xx answer
            FetchNetworkError: If the HTML fallback request fails
        """
        url = self.validate_url(url)
        if self._cascade is None:
            raise RuntimeError("Fetcher not initialized. Use 'async with' context manager.")

        self._trace = []
        self._emit(FetchEvent(type=EventType.STARTED, url=url))
        try:
            ctx = await self._cascade.execute(url, self.config, emit=self._emit)
        except Exception as e:
            self._emit(FetchEvent(type=EventType.FAILED, url=url, error=str(e)))
            raise

        logger.info(f"Fetched {url} via {ctx.stage}")
        self._emit(
            FetchEvent(
                type=EventType.COMPLETED,
                url=ctx.source_url,
                stage=ctx.stage,
                message=f"{len(ctx.markdown or '')} characters of Markdown",
            )
        )
        return ctx

    async def fetch(self, url: str) -> str:
        """
        Fetch a URL as Markdown.

        Args:
            url: Absolute http(s) URL

        Returns:
            Normalized Markdown ending with a single newline
        """
        ctx = await self.run(url)
        return ctx.markdown or ""


async def fetch_markdown(url: str, config: FetchMdConfig | None = None) -> str:
    """
    Fetch a single URL as Markdown with a short-lived Fetcher.

    Example:
        markdown = await fetch_markdown("https://example.com/docs/")
    """
    async with Fetcher(config) as fetcher:
        return await fetcher.fetch(url)


def fetch_blocking(url: str, config: FetchMdConfig | None = None) -> str:
    """
    Blocking fetch of a single URL as Markdown.

    This is a convenience wrapper for sync code that can't use async/await.
    For async code, use fetch_markdown or the Fetcher class directly.

    WARNING: Do not call from within an existing event loop (e.g., Jupyter,
    asyncio-based frameworks).

    Args:
        url: Absolute http(s) URL
        config: Optional configuration

    Returns:
        Normalized Markdown
    """
    # Detect if we're already in an async context
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        pass
    else:
        raise RuntimeError("fetch_blocking() called from async context. Use fetch_markdown() instead.")

    return asyncio.run(fetch_markdown(url, config))
