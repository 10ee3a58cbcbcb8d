"""Event types for tracing a cascade run."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class EventType(str, Enum):
    """Types of events emitted while a URL moves through the cascade."""

    # Lifecycle events
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"

    # Stage events
    STAGE_STARTED = "stage_started"
    STAGE_SUCCEEDED = "stage_succeeded"
    STAGE_SKIPPED = "stage_skipped"
    STAGE_FAILED = "stage_failed"

    # Sibling lookup
    CANDIDATE_TRIED = "candidate_tried"


@dataclass
class FetchEvent:
    """
    Event emitted during a fetch.

    Example:
        async with Fetcher(config) as fetcher:
            markdown = await fetcher.fetch(url)
            for event in fetcher.trace:
                if event.type == EventType.STAGE_FAILED:
                    print(f"{event.stage}: {event.error}")
    """

    type: EventType

    # Timestamp (always UTC)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # Common fields
    url: Optional[str] = None
    stage: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None

    # Response details
    status_code: Optional[int] = None
    content_type: Optional[str] = None

    @property
    def is_error(self) -> bool:
        """Check if this is an error event."""
        return self.type in (EventType.FAILED, EventType.STAGE_FAILED)

    def __str__(self) -> str:
        parts = [self.type.value]
        if self.stage:
            parts.append(f"[{self.stage}]")
        if self.url:
            parts.append(self.url)
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.content_type:
            parts.append(f"ct={self.content_type}")
        if self.message:
            parts.append(self.message)
        if self.error:
            parts.append(f"error={self.error}")
        return " ".join(parts)
