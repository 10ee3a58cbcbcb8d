"""Fetch cascade: ordered strategies for turning a URL into Markdown."""

from .base import CascadeContext, CascadeStep, EventEmitter, FetchCascade, StepOutcome
from .steps import (
    HTML_ACCEPT,
    MARKDOWN_ACCEPT,
    SIBLING_ACCEPT,
    HeaderNegotiationStep,
    HtmlFallbackStep,
    SiblingLookupStep,
    SniffNegotiationStep,
)

__all__ = [
    # Base
    "CascadeContext",
    "CascadeStep",
    "EventEmitter",
    "FetchCascade",
    "StepOutcome",
    # Steps
    "HTML_ACCEPT",
    "MARKDOWN_ACCEPT",
    "SIBLING_ACCEPT",
    "HeaderNegotiationStep",
    "HtmlFallbackStep",
    "SiblingLookupStep",
    "SniffNegotiationStep",
]
