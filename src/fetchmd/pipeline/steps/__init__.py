"""Cascade step implementations."""

from .html_fallback import HTML_ACCEPT, HtmlFallbackStep
from .negotiate import MARKDOWN_ACCEPT, HeaderNegotiationStep, SniffNegotiationStep
from .siblings import SIBLING_ACCEPT, SiblingLookupStep

__all__ = [
    "HTML_ACCEPT",
    "MARKDOWN_ACCEPT",
    "SIBLING_ACCEPT",
    "HeaderNegotiationStep",
    "HtmlFallbackStep",
    "SiblingLookupStep",
    "SniffNegotiationStep",
]
