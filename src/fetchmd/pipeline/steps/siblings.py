"""SiblingLookupStep - look for a Markdown twin of the page."""

import logging
from typing import Optional

from ...conversion.normalize import normalize_markdown
from ...exceptions import FetchMdError
from ...http.protocols import HttpClient, ResponseEnvelope
from ...models.events import EventType, FetchEvent
from ...negotiation.candidates import compute_markdown_sibling_urls
from ...negotiation.classifier import PreviewKind, classify_preview
from ..base import CascadeContext, EventEmitter, StepOutcome

logger = logging.getLogger(__name__)

SIBLING_ACCEPT = "text/markdown,text/plain;q=0.9,*/*;q=0.1"


class SiblingLookupStep:
    """
    Cascade step that tries ``page.md``, ``index.md`` and similar URLs.

    Candidates are sniffed one at a time, in order. A candidate is skipped
    when its request fails, it answers non-2xx, it looks like HTML (by type
    or content) or it looks like neither Markdown type nor Markdown content.
    The first candidate that passes is fetched in full; if that GET fails,
    the lookup moves on to the next candidate.

    Never raises for a single candidate: exhausting the list returns CONTINUE.

    Example:
        step = SiblingLookupStep(http_client)
        outcome = await step.execute(ctx)
        if outcome == StepOutcome.SUCCEEDED:
            print(ctx.source_url)
    """

    name = "sibling-lookup"
    recoverable = True

    def __init__(self, http_client: HttpClient) -> None:
        """
        Initialize the sibling lookup step.

        Args:
            http_client: HTTP client implementing HttpClient protocol
        """
        self._client = http_client

    @staticmethod
    def _rejection(envelope: ResponseEnvelope) -> Optional[str]:
        """Return why a sniffed candidate is unusable, or None if it is Markdown."""
        if not envelope.ok:
            return f"HTTP {envelope.status_code}"
        kind = classify_preview(envelope.content_type, envelope.preview)
        if kind == PreviewKind.HTML:
            return "looks like HTML"
        if kind == PreviewKind.UNKNOWN:
            return "not Markdown"
        return None

    async def execute(
        self,
        ctx: CascadeContext,
        emit: Optional[EventEmitter] = None,
    ) -> StepOutcome:
        headers = {"Accept": SIBLING_ACCEPT}

        for candidate in compute_markdown_sibling_urls(ctx.url):
            try:
                envelope = await self._client.sniff(candidate, headers=headers, timeout=ctx.timeout)
            except (FetchMdError, ValueError) as e:
                logger.debug(f"Sibling sniff {candidate} failed: {e}")
                if emit:
                    emit(FetchEvent(type=EventType.CANDIDATE_TRIED, url=candidate, stage=self.name, error=str(e)))
                continue

            ct = envelope.content_type or "(none)"
            logger.debug(f"Sibling sniff {candidate} -> {envelope.status_code} ct={ct}")

            rejection = self._rejection(envelope)
            if emit:
                emit(
                    FetchEvent(
                        type=EventType.CANDIDATE_TRIED,
                        url=candidate,
                        stage=self.name,
                        status_code=envelope.status_code,
                        content_type=envelope.content_type,
                        message=rejection or "Markdown",
                    )
                )
            if rejection:
                continue

            logger.debug(f"Sibling Markdown: {candidate}")
            try:
                body = await envelope.read_full_text()
            except (FetchMdError, ValueError) as e:
                logger.debug(f"Sibling fetch {candidate} failed: {e}")
                continue

            return ctx.succeed(self.name, normalize_markdown(body), envelope.url)

        return StepOutcome.CONTINUE
