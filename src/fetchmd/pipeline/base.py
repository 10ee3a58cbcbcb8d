"""Base classes for the fetch cascade."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Protocol, runtime_checkable

from ..exceptions import CascadeExhaustedError, NegotiationError
from ..models.config import FetchMdConfig
from ..models.events import EventType, FetchEvent

logger = logging.getLogger(__name__)

# Type alias for event emitter function
EventEmitter = Callable[[FetchEvent], None]


class StepOutcome(str, Enum):
    """Result of a single cascade step."""

    SUCCEEDED = "succeeded"
    CONTINUE = "continue"


@dataclass
class CascadeContext:
    """
    State of one cascade run.

    Attributes:
        url: The URL requested by the caller
        config: Settings for this run
        markdown: Final Markdown, set by the step that succeeded
        stage: Name of the step that produced the Markdown
        source_url: URL whose body the Markdown was built from
        errors: Failures of recoverable steps, in the order they happened
    """

    url: str
    config: FetchMdConfig = field(default_factory=FetchMdConfig)

    markdown: Optional[str] = None
    stage: Optional[str] = None
    source_url: Optional[str] = None

    errors: list[NegotiationError] = field(default_factory=list)

    @property
    def timeout(self) -> float:
        """Per-request timeout in seconds."""
        return self.config.timeout_seconds

    def succeed(self, stage: str, markdown: str, source_url: str) -> "StepOutcome":
        """Record the winning step's output."""
        self.markdown = markdown
        self.stage = stage
        self.source_url = source_url
        return StepOutcome.SUCCEEDED


@runtime_checkable
class CascadeStep(Protocol):
    """
    Protocol for cascade steps.

    Each step tries one way of getting Markdown for ``ctx.url``.

    Error Handling Contract:
    - Not applicable (wrong content type, non-2xx): return CONTINUE
    - Produced Markdown: call ``ctx.succeed(...)`` and return SUCCEEDED
    - Unexpected failures: raise. The cascade records the failure and moves
      on when ``recoverable`` is true, and propagates it otherwise.

    Example implementation:
        class StaticStep:
            name = "static"
            recoverable = True

            async def execute(
                self,
                ctx: CascadeContext,
                emit: Optional[EventEmitter] = None
            ) -> StepOutcome:
                return ctx.succeed(self.name, "# Hello\\n", ctx.url)
    """

    name: str
    recoverable: bool

    async def execute(
        self,
        ctx: CascadeContext,
        emit: Optional[EventEmitter] = None,
    ) -> StepOutcome:
        """
        Execute this cascade step.

        Args:
            ctx: The cascade context
            emit: Optional callback to emit events

        Returns:
            SUCCEEDED when ctx.markdown was set, CONTINUE otherwise
        """
        ...


@dataclass
class FetchCascade:
    """
    Runs cascade steps in order until one of them produces Markdown.

    Example:
        cascade = FetchCascade(steps=[
            HeaderNegotiationStep(http_client),
            SniffNegotiationStep(http_client),
            SiblingLookupStep(http_client),
            HtmlFallbackStep(http_client),
        ])

        ctx = await cascade.execute(url, config, emit=trace.append)
        print(ctx.stage, ctx.markdown)
    """

    steps: list[CascadeStep]

    async def execute(
        self,
        url: str,
        config: Optional[FetchMdConfig] = None,
        emit: Optional[EventEmitter] = None,
    ) -> CascadeContext:
        """
        Execute the cascade for a URL.

        Args:
            url: The URL to fetch
            config: Settings for this run (defaults if None)
            emit: Optional callback for emitting events

        Returns:
            CascadeContext with markdown, stage and source_url set

        Raises:
            CascadeExhaustedError: If no step produced Markdown
            Exception: Whatever a non-recoverable step raised
        """
        ctx = CascadeContext(url=url, config=config or FetchMdConfig())

        for step in self.steps:
            if emit:
                emit(FetchEvent(type=EventType.STAGE_STARTED, url=url, stage=step.name))

            try:
                outcome = await step.execute(ctx, emit)
            except Exception as e:
                if not step.recoverable:
                    if emit:
                        emit(
                            FetchEvent(
                                type=EventType.STAGE_FAILED,
                                url=url,
                                stage=step.name,
                                error=str(e),
                            )
                        )
                    raise

                error = NegotiationError(step.name, str(e) or type(e).__name__)
                error.__cause__ = e
                ctx.errors.append(error)
                logger.debug(f"{step.name} failed: {e}")

                if emit:
                    emit(
                        FetchEvent(
                            type=EventType.STAGE_FAILED,
                            url=url,
                            stage=step.name,
                            error=str(error),
                        )
                    )
                continue

            if outcome == StepOutcome.SUCCEEDED:
                if emit:
                    emit(
                        FetchEvent(
                            type=EventType.STAGE_SUCCEEDED,
                            url=url,
                            stage=step.name,
                            message=f"Markdown from {ctx.source_url}",
                        )
                    )
                return ctx

            if emit:
                emit(FetchEvent(type=EventType.STAGE_SKIPPED, url=url, stage=step.name))

        raise CascadeExhaustedError(f"No strategy produced Markdown for {url}")

    def add_step(self, step: CascadeStep) -> "FetchCascade":
        """
        Add a step to the cascade (fluent API).

        Args:
            step: The step to add

        Returns:
            Self for chaining
        """
        self.steps.append(step)
        return self
