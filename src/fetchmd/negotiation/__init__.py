"""Content negotiation helpers: response classification and sibling URLs."""

from .candidates import compute_markdown_sibling_urls
from .classifier import (
    PreviewKind,
    classify_preview,
    is_html_content_type,
    is_markdown_content_type,
    is_text_content_type,
    looks_like_html,
    looks_like_markdown,
)

__all__ = [
    "PreviewKind",
    "classify_preview",
    "compute_markdown_sibling_urls",
    "is_html_content_type",
    "is_markdown_content_type",
    "is_text_content_type",
    "looks_like_html",
    "looks_like_markdown",
]
