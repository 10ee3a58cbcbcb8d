"""Tests for the fetch cascade and its steps."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fetchmd.exceptions import (
    CascadeExhaustedError,
    FetchNetworkError,
    FetchTimeoutError,
    HttpStatusError,
    NegotiationError,
    TerminalFetchError,
)
from fetchmd.http import HttpResponse, ResponseEnvelope
from fetchmd.models.config import FetchMdConfig
from fetchmd.models.events import EventType
from fetchmd.pipeline import (
    HTML_ACCEPT,
    MARKDOWN_ACCEPT,
    SIBLING_ACCEPT,
    CascadeContext,
    FetchCascade,
    HeaderNegotiationStep,
    HtmlFallbackStep,
    SiblingLookupStep,
    SniffNegotiationStep,
    StepOutcome,
)

PAGE_URL = "https://docs.example.com/guide/page"


def envelope(
    status_code=200,
    content_type="text/markdown",
    preview="",
    url=PAGE_URL,
    body="# Title\n",
):
    """Build an envelope whose loader returns ``body``."""
    loader = AsyncMock(return_value=body)
    return ResponseEnvelope(
        status_code=status_code,
        content_type=content_type,
        url=url,
        preview=preview,
        loader=loader,
    )


def html_response(html, status_code=200, url=PAGE_URL, reason="OK"):
    return HttpResponse(
        status_code=status_code,
        content=html.encode("utf-8"),
        content_type="text/html; charset=utf-8",
        headers={},
        url=url,
        reason=reason,
    )


@pytest.fixture
def ctx():
    return CascadeContext(url=PAGE_URL, config=FetchMdConfig(timeout_ms=1500))


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.head = AsyncMock()
    client.sniff = AsyncMock()
    client.get = AsyncMock()
    client.decode_content = MagicMock(side_effect=lambda response: response.content.decode("utf-8"))
    return client


class TestCascadeContext:
    """Tests for CascadeContext."""

    def test_defaults(self):
        """Test a fresh context."""
        context = CascadeContext(url=PAGE_URL)
        assert context.markdown is None
        assert context.stage is None
        assert context.errors == []
        assert context.timeout == 30.0

    def test_succeed(self, ctx):
        """Test recording the winning step."""
        outcome = ctx.succeed("negotiate-header", "# Hi\n", "https://x.com/")
        assert outcome == StepOutcome.SUCCEEDED
        assert ctx.markdown == "# Hi\n"
        assert ctx.stage == "negotiate-header"
        assert ctx.source_url == "https://x.com/"


class TestHeaderNegotiationStep:
    """Tests for HeaderNegotiationStep."""

    @pytest.mark.asyncio
    async def test_markdown_content_type(self, ctx, mock_client):
        """Test the negotiated body is normalized."""
        mock_client.head.return_value = envelope(body="# Hi\n\n\n\ntext  \n")
        step = HeaderNegotiationStep(mock_client)

        outcome = await step.execute(ctx)

        assert outcome == StepOutcome.SUCCEEDED
        assert ctx.markdown == "# Hi\n\ntext\n"
        assert ctx.stage == "negotiate-header"
        mock_client.head.assert_awaited_once_with(PAGE_URL, headers={"Accept": MARKDOWN_ACCEPT}, timeout=1.5)

    @pytest.mark.asyncio
    async def test_html_content_type_continues(self, ctx, mock_client):
        """Test that a non-Markdown type passes to the next step."""
        head = envelope(content_type="text/html")
        mock_client.head.return_value = head
        step = HeaderNegotiationStep(mock_client)

        assert await step.execute(ctx) == StepOutcome.CONTINUE
        head.loader.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_error_status_continues(self, ctx, mock_client):
        """Test that a Markdown type on an error status is ignored."""
        mock_client.head.return_value = envelope(status_code=405)
        assert await HeaderNegotiationStep(mock_client).execute(ctx) == StepOutcome.CONTINUE

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, ctx, mock_client):
        """Test that failures surface for the cascade to record."""
        mock_client.head.side_effect = FetchTimeoutError(PAGE_URL, 1.5)
        with pytest.raises(FetchTimeoutError):
            await HeaderNegotiationStep(mock_client).execute(ctx)


class TestSniffNegotiationStep:
    """Tests for SniffNegotiationStep."""

    @pytest.mark.asyncio
    async def test_markdown_under_plain_type(self, ctx, mock_client):
        """Test Markdown served as text/plain."""
        mock_client.sniff.return_value = envelope(
            content_type="text/plain",
            preview="# Title\n\nBody",
            body="# Title\n\nBody\n",
        )
        step = SniffNegotiationStep(mock_client)

        assert await step.execute(ctx) == StepOutcome.SUCCEEDED
        assert ctx.markdown == "# Title\n\nBody\n"
        assert ctx.stage == "negotiate-sniff"
        mock_client.sniff.assert_awaited_once_with(PAGE_URL, headers={"Accept": MARKDOWN_ACCEPT}, timeout=1.5)

    @pytest.mark.asyncio
    async def test_markdown_without_content_type(self, ctx, mock_client):
        """Test Markdown-looking content with no declared type."""
        mock_client.sniff.return_value = envelope(content_type=None, preview="- item\n- item\n")
        assert await SniffNegotiationStep(mock_client).execute(ctx) == StepOutcome.SUCCEEDED

    @pytest.mark.asyncio
    async def test_markdown_type_with_plain_preview(self, ctx, mock_client):
        """Test that a Markdown type is enough when the preview is plain text."""
        mock_client.sniff.return_value = envelope(content_type="text/x-markdown", preview="Plain words.")
        assert await SniffNegotiationStep(mock_client).execute(ctx) == StepOutcome.SUCCEEDED

    @pytest.mark.asyncio
    async def test_html_preview_rejected(self, ctx, mock_client):
        """Test that HTML is never accepted, even labelled as Markdown."""
        mock_client.sniff.return_value = envelope(
            content_type="text/markdown",
            preview="<!DOCTYPE html><html><body><p>- item</p></body></html>",
        )
        assert await SniffNegotiationStep(mock_client).execute(ctx) == StepOutcome.CONTINUE

    @pytest.mark.asyncio
    async def test_plain_text_rejected(self, ctx, mock_client):
        """Test that prose without Markdown signals is not taken."""
        mock_client.sniff.return_value = envelope(content_type="text/plain", preview="Just words.")
        assert await SniffNegotiationStep(mock_client).execute(ctx) == StepOutcome.CONTINUE

    @pytest.mark.asyncio
    async def test_failed_full_fetch_raises(self, ctx, mock_client):
        """Test that a failing follow-up GET is reported."""
        sniffed = envelope(content_type="text/markdown", preview="# T")
        sniffed.loader.side_effect = HttpStatusError(PAGE_URL, 500, "Internal Server Error")
        mock_client.sniff.return_value = sniffed

        with pytest.raises(HttpStatusError):
            await SniffNegotiationStep(mock_client).execute(ctx)


class TestSiblingLookupStep:
    """Tests for SiblingLookupStep."""

    @pytest.mark.asyncio
    async def test_first_markdown_candidate_wins(self, ctx, mock_client):
        """Test candidate order and the chosen sibling."""
        md_url = "https://docs.example.com/guide/page.md"
        mock_client.sniff.side_effect = [
            envelope(status_code=404, url=md_url),
            envelope(
                content_type="text/plain",
                preview="# Page\n",
                url="https://docs.example.com/guide/page.markdown",
                body="# Page\n\n\n\nBody\n",
            ),
        ]
        events = []
        step = SiblingLookupStep(mock_client)

        assert await step.execute(ctx, events.append) == StepOutcome.SUCCEEDED
        assert ctx.markdown == "# Page\n\nBody\n"
        assert ctx.stage == "sibling-lookup"
        assert ctx.source_url == "https://docs.example.com/guide/page.markdown"

        tried = [call.args[0] for call in mock_client.sniff.await_args_list]
        assert tried == [md_url, "https://docs.example.com/guide/page.markdown"]
        for call in mock_client.sniff.await_args_list:
            assert call.kwargs["headers"] == {"Accept": SIBLING_ACCEPT}
        assert [e.type for e in events] == [EventType.CANDIDATE_TRIED, EventType.CANDIDATE_TRIED]

    @pytest.mark.asyncio
    async def test_html_candidates_skipped(self, ctx, mock_client):
        """Test HTML by type and by content are both skipped."""
        mock_client.sniff.side_effect = [
            envelope(content_type="text/html", preview="# Looks like md"),
            envelope(content_type="text/plain", preview="<html><body>x</body></html>"),
        ]
        assert await SiblingLookupStep(mock_client).execute(ctx) == StepOutcome.CONTINUE
        assert ctx.markdown is None

    @pytest.mark.asyncio
    async def test_rejection_reasons_traced(self, mock_client):
        """Test the reason recorded for each rejected candidate."""
        dir_ctx = CascadeContext(url="https://docs.example.com/guide/")
        mock_client.sniff.side_effect = [
            envelope(status_code=404),
            envelope(content_type="text/html", preview="# Looks like md"),
            envelope(content_type="text/plain", preview="plain"),
        ]
        events = []

        assert await SiblingLookupStep(mock_client).execute(dir_ctx, events.append) == StepOutcome.CONTINUE
        assert [e.message for e in events] == ["HTTP 404", "looks like HTML", "not Markdown"]

    @pytest.mark.asyncio
    async def test_non_markdown_skipped(self, ctx, mock_client):
        """Test that plain text candidates are skipped."""
        mock_client.sniff.side_effect = [
            envelope(content_type="text/plain", preview="plain"),
            envelope(content_type="application/octet-stream", preview="plain"),
        ]
        assert await SiblingLookupStep(mock_client).execute(ctx) == StepOutcome.CONTINUE

    @pytest.mark.asyncio
    async def test_failures_move_to_next_candidate(self, ctx, mock_client):
        """Test that transport errors and failed full GETs are skipped."""
        broken = envelope(preview="# A")
        broken.loader.side_effect = HttpStatusError("https://docs.example.com/", 500)
        dir_ctx = CascadeContext(url="https://docs.example.com/guide/")
        mock_client.sniff.side_effect = [
            FetchNetworkError("https://docs.example.com/guide/index.md", "connection reset"),
            broken,
            envelope(preview="# C", body="# C\n", url="https://docs.example.com/guide/index.markdown"),
        ]

        assert await SiblingLookupStep(mock_client).execute(dir_ctx) == StepOutcome.SUCCEEDED
        assert dir_ctx.markdown == "# C\n"
        assert mock_client.sniff.await_count == 3


class TestHtmlFallbackStep:
    """Tests for HtmlFallbackStep."""

    PAGE = """
    <html><head><title>Doc</title></head>
    <body>
        <p>See <a href="/other">other</a> and <a href="#top">top</a>.</p>
        <p>Copy</p>
        <pre>console.log(1)


</pre>
    </body></html>
    """

    @pytest.mark.asyncio
    async def test_converts_page(self, ctx, mock_client):
        """Test the HTML pipeline output."""
        mock_client.get.return_value = html_response(self.PAGE, url="https://docs.example.com/final/")
        step = HtmlFallbackStep(mock_client)

        assert await step.execute(ctx) == StepOutcome.SUCCEEDED
        md = ctx.markdown

        assert md.startswith("# Doc\n\n")
        assert "[other](https://docs.example.com/other)" in md
        assert "[top](#top)" in md
        assert "```\nconsole.log(1)\n```" in md
        assert "\nCopy\n" not in md
        assert md.endswith("```\n")
        assert ctx.stage == "html-fallback"
        assert ctx.source_url == "https://docs.example.com/final/"
        mock_client.get.assert_awaited_once_with(PAGE_URL, headers={"Accept": HTML_ACCEPT}, timeout=1.5)

    def test_render_page_without_body_tag(self, mock_client):
        """Test that the title appears once when <body> is omitted."""
        html = "<html><head><title>Doc</title><meta charset='utf-8'></head><p>Hello world.</p></html>"
        markdown = HtmlFallbackStep(mock_client).render(html, "https://a.com/p/")
        assert markdown == "# Doc\n\nHello world.\n"

    @pytest.mark.asyncio
    async def test_relative_links_resolve_against_final_url(self, ctx, mock_client):
        """Test that redirects change the base for relative links."""
        html = '<html><body><p><a href="next">next</a></p></body></html>'
        mock_client.get.return_value = html_response(html, url="https://mirror.example.com/v2/")

        await HtmlFallbackStep(mock_client).execute(ctx)
        assert "[next](https://mirror.example.com/v2/next)" in ctx.markdown

    @pytest.mark.asyncio
    async def test_absolutize_disabled(self, mock_client):
        """Test that links stay relative when disabled."""
        context = CascadeContext(url=PAGE_URL, config=FetchMdConfig(absolutize_links=False))
        html = '<html><body><p><a href="/x">x</a></p></body></html>'
        mock_client.get.return_value = html_response(html)

        await HtmlFallbackStep(mock_client).execute(context)
        assert "[x](/x)" in context.markdown

    @pytest.mark.asyncio
    async def test_error_status_is_terminal(self, ctx, mock_client):
        """Test that a non-2xx HTML response raises TerminalFetchError."""
        mock_client.get.return_value = html_response("nope", status_code=503, reason="Service Unavailable")

        with pytest.raises(TerminalFetchError) as exc_info:
            await HtmlFallbackStep(mock_client).execute(ctx)
        assert exc_info.value.status_code == 503
        assert "503 Service Unavailable" in str(exc_info.value)

    def test_not_recoverable(self, mock_client):
        """Test the step flags."""
        assert HtmlFallbackStep.recoverable is False
        assert HeaderNegotiationStep.recoverable is True
        assert SniffNegotiationStep.recoverable is True
        assert SiblingLookupStep.recoverable is True


class FixedStep:
    """Step with a scripted outcome, for cascade tests."""

    def __init__(self, name, outcome=StepOutcome.CONTINUE, error=None, recoverable=True):
        self.name = name
        self.recoverable = recoverable
        self._outcome = outcome
        self._error = error
        self.calls = 0

    async def execute(self, ctx, emit=None):
        self.calls += 1
        if self._error is not None:
            raise self._error
        if self._outcome == StepOutcome.SUCCEEDED:
            return ctx.succeed(self.name, f"# {self.name}\n", ctx.url)
        return self._outcome


class TestFetchCascade:
    """Tests for FetchCascade."""

    @pytest.mark.asyncio
    async def test_first_success_wins(self):
        """Test that later steps are not run after a success."""
        first = FixedStep("first")
        second = FixedStep("second", StepOutcome.SUCCEEDED)
        third = FixedStep("third", StepOutcome.SUCCEEDED)
        cascade = FetchCascade(steps=[first, second, third])

        ctx = await cascade.execute(PAGE_URL)

        assert ctx.stage == "second"
        assert ctx.markdown == "# second\n"
        assert (first.calls, second.calls, third.calls) == (1, 1, 0)

    @pytest.mark.asyncio
    async def test_recoverable_failure_recorded(self):
        """Test that recoverable errors are recorded and skipped."""
        cause = FetchNetworkError(PAGE_URL, "connection refused")
        events = []
        cascade = FetchCascade(
            steps=[FixedStep("broken", error=cause), FixedStep("works", StepOutcome.SUCCEEDED)]
        )

        ctx = await cascade.execute(PAGE_URL, emit=events.append)

        assert ctx.stage == "works"
        assert len(ctx.errors) == 1
        assert isinstance(ctx.errors[0], NegotiationError)
        assert ctx.errors[0].stage == "broken"
        assert ctx.errors[0].__cause__ is cause
        failed = [e for e in events if e.type == EventType.STAGE_FAILED]
        assert len(failed) == 1 and failed[0].stage == "broken"

    @pytest.mark.asyncio
    async def test_unexpected_errors_are_recoverable_too(self):
        """Test that any exception from a recoverable step is contained."""
        cascade = FetchCascade(
            steps=[FixedStep("odd", error=KeyError("x")), FixedStep("works", StepOutcome.SUCCEEDED)]
        )
        ctx = await cascade.execute(PAGE_URL)
        assert ctx.stage == "works"

    @pytest.mark.asyncio
    async def test_non_recoverable_failure_propagates(self):
        """Test that terminal errors reach the caller."""
        error = TerminalFetchError(PAGE_URL, 404, "Not Found")
        last = FixedStep("after")
        cascade = FetchCascade(steps=[FixedStep("terminal", error=error, recoverable=False), last])

        with pytest.raises(TerminalFetchError):
            await cascade.execute(PAGE_URL)
        assert last.calls == 0

    @pytest.mark.asyncio
    async def test_exhausted(self):
        """Test a cascade without a terminal step."""
        cascade = FetchCascade(steps=[FixedStep("a"), FixedStep("b")])
        with pytest.raises(CascadeExhaustedError):
            await cascade.execute(PAGE_URL)

    @pytest.mark.asyncio
    async def test_stage_events(self):
        """Test the events emitted per step."""
        events = []
        cascade = FetchCascade(steps=[FixedStep("skip"), FixedStep("win", StepOutcome.SUCCEEDED)])

        await cascade.execute(PAGE_URL, emit=events.append)

        assert [(e.type, e.stage) for e in events] == [
            (EventType.STAGE_STARTED, "skip"),
            (EventType.STAGE_SKIPPED, "skip"),
            (EventType.STAGE_STARTED, "win"),
            (EventType.STAGE_SUCCEEDED, "win"),
        ]

    def test_add_step(self):
        """Test fluent step registration."""
        cascade = FetchCascade(steps=[])
        assert cascade.add_step(FixedStep("a")).add_step(FixedStep("b")) is cascade
        assert [s.name for s in cascade.steps] == ["a", "b"]
