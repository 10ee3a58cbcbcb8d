"""Cascade step for HTML to Markdown conversion."""

import logging
from typing import Optional

from ...conversion.dom import SoupElement
from ...conversion.extractor import MainContentExtractor
from ...conversion.links import absolutize_dom_urls
from ...conversion.markdown import HtmlToMarkdown
from ...conversion.normalize import normalize_markdown, strip_ui_noise_markdown
from ...conversion.protocols import ContentExtractor, MarkdownConverter
from ...exceptions import TerminalFetchError
from ...http.protocols import HttpClient
from ...models.events import EventType, FetchEvent
from ..base import CascadeContext, EventEmitter, StepOutcome

logger = logging.getLogger(__name__)

HTML_ACCEPT = "text/html,*/*;q=0.1"


class HtmlFallbackStep:
    """
    Last cascade step: fetch the page as HTML and convert it.

    Extracts the main content, rewrites relative links against the final
    (post-redirect) URL when ``config.absolutize_links`` is set, converts to
    Markdown, drops UI noise lines and normalizes whitespace.

    Not recoverable: every error raised here reaches the caller.

    Example:
        step = HtmlFallbackStep(http_client)
        await step.execute(ctx, emit=callback)
        # ctx.markdown now contains the converted content
    """

    name = "html-fallback"
    recoverable = False

    def __init__(
        self,
        http_client: HttpClient,
        extractor: Optional[ContentExtractor] = None,
        converter: Optional[MarkdownConverter] = None,
    ):
        """
        Initialize the HTML fallback step.

        Args:
            http_client: HTTP client implementing HttpClient protocol
            extractor: Content extractor (uses default if None)
            converter: Markdown converter (uses default if None)
        """
        self._client = http_client
        self._extractor = extractor or MainContentExtractor()
        self._converter = converter or HtmlToMarkdown()

    def render(self, html: str, base_url: str, absolutize_links: bool = True) -> str:
        """
        Turn an HTML page into normalized Markdown.

        Args:
            html: Full HTML document
            base_url: URL the document was served from
            absolutize_links: Rewrite relative href/src values

        Returns:
            Normalized Markdown
        """
        document = self._extractor.extract(html, base_url)
        if absolutize_links:
            absolutize_dom_urls(SoupElement(document.fragment), document.source_base_url)
        markdown = self._converter.convert_document(document)
        return normalize_markdown(strip_ui_noise_markdown(markdown))

    async def execute(
        self,
        ctx: CascadeContext,
        emit: Optional[EventEmitter] = None,
    ) -> StepOutcome:
        """
        Fetch the page as HTML and convert it to Markdown.

        Raises:
            TerminalFetchError: If the server answers non-2xx
            FetchNetworkError: On transport failure or timeout
        """
        response = await self._client.get(
            ctx.url,
            headers={"Accept": HTML_ACCEPT},
            timeout=ctx.timeout,
        )
        if not response.ok:
            raise TerminalFetchError(response.url or ctx.url, response.status_code, response.reason)

        base_url = response.url or ctx.url
        html = self._client.decode_content(response)
        markdown = self.render(html, base_url, ctx.config.absolutize_links)

        if emit:
            emit(
                FetchEvent(
                    type=EventType.STAGE_SUCCEEDED,
                    url=base_url,
                    stage=self.name,
                    status_code=response.status_code,
                    content_type=response.content_type,
                    message=f"Converted to {len(markdown)} characters of Markdown",
                )
            )

        logger.debug(f"Converted {base_url} to {len(markdown)} characters of Markdown")
        return ctx.succeed(self.name, markdown, base_url)
