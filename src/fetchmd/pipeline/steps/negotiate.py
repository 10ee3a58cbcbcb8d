"""Content negotiation steps: ask the server for Markdown directly."""

import logging
from typing import Optional

from ...conversion.normalize import normalize_markdown
from ...http.protocols import HttpClient
from ...negotiation.classifier import (
    is_markdown_content_type,
    is_text_content_type,
    looks_like_html,
    looks_like_markdown,
)
from ..base import CascadeContext, EventEmitter, StepOutcome

logger = logging.getLogger(__name__)

# Markdown first, HTML still acceptable so the server never answers 406
MARKDOWN_ACCEPT = "text/markdown, text/x-markdown;q=0.99, text/plain;q=0.9, text/html;q=0.8, */*;q=0.1"


def _describe(content_type: Optional[str]) -> str:
    return content_type or "(none)"


class HeaderNegotiationStep:
    """
    Cascade step that trusts the Content-Type of a HEAD response.

    Sends HEAD with a Markdown-preferring Accept header. When the server
    answers 2xx with a Markdown content type, the body is fetched with GET
    and normalized.

    Raises exception for:
        - Network errors and timeouts (HEAD or GET)
        - A non-2xx answer to the follow-up GET
    """

    name = "negotiate-header"
    recoverable = True

    def __init__(self, http_client: HttpClient) -> None:
        self._client = http_client

    async def execute(
        self,
        ctx: CascadeContext,
        emit: Optional[EventEmitter] = None,
    ) -> StepOutcome:
        headers = {"Accept": MARKDOWN_ACCEPT}
        envelope = await self._client.head(ctx.url, headers=headers, timeout=ctx.timeout)
        logger.debug(f"HEAD {envelope.status_code} content-type={_describe(envelope.content_type)}")

        if not (envelope.ok and is_markdown_content_type(envelope.content_type)):
            return StepOutcome.CONTINUE

        logger.debug("Negotiated Markdown (content-type)")
        body = await envelope.read_full_text()
        return ctx.succeed(self.name, normalize_markdown(body), envelope.url)


class SniffNegotiationStep:
    """
    Cascade step that looks at the first bytes of the negotiated response.

    Handles servers that return Markdown under a wrong or generic
    Content-Type. The preview must not look like HTML, and either the type
    is Markdown or the preview reads like Markdown.

    Raises exception for:
        - Network errors and timeouts (sniff or GET)
        - A non-2xx answer to the follow-up GET
    """

    name = "negotiate-sniff"
    recoverable = True

    def __init__(self, http_client: HttpClient) -> None:
        self._client = http_client

    @staticmethod
    def _accepts(content_type: Optional[str], preview: str) -> bool:
        if looks_like_html(preview):
            return False
        if is_markdown_content_type(content_type):
            return True
        # A textual type only helps when the preview agrees
        if is_text_content_type(content_type) and looks_like_markdown(preview):
            return True
        return looks_like_markdown(preview)

    async def execute(
        self,
        ctx: CascadeContext,
        emit: Optional[EventEmitter] = None,
    ) -> StepOutcome:
        envelope = await self._client.sniff(
            ctx.url,
            headers={"Accept": MARKDOWN_ACCEPT},
            timeout=ctx.timeout,
        )
        logger.debug(f"Sniff {envelope.status_code} content-type={_describe(envelope.content_type)}")

        if not (envelope.ok and self._accepts(envelope.content_type, envelope.preview)):
            return StepOutcome.CONTINUE

        logger.debug("Negotiated Markdown (sniff)")
        body = await envelope.read_full_text()
        return ctx.succeed(self.name, normalize_markdown(body), envelope.url)
