"""Heuristics for classifying responses as Markdown, HTML or plain text."""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional

HTML_SNIFF_CHARS = 2000
MARKDOWN_SNIFF_CHARS = 4000

MARKDOWN_CONTENT_TYPES = (
    "text/markdown",
    "text/x-markdown",
    "application/markdown",
    "application/x-markdown",
)

HTML_CONTENT_TYPES = (
    "text/html",
    "application/xhtml+xml",
)

# Prologues that only ever open a full HTML/XML document
_HTML_PROLOGUES = ("<!doctype html", "<html", "<?xml")

_HTML_HEAD_OR_BODY_RE = re.compile(r"<(head|body)\b")
_HTML_CLOSING_RE = re.compile(r"</(html|head|body)>")

# Kept strict: Markdown may contain inline HTML (e.g. "<div>") and should
# still be treated as Markdown.
_MARKDOWN_PATTERNS = (
    re.compile(r"^\s*#\s+\S+", re.MULTILINE),  # ATX heading
    re.compile(r"^\s*---\s*$", re.MULTILINE),  # horizontal rule / frontmatter
    re.compile(r"```"),  # fenced code
    re.compile(r"^\s*[-*+]\s+\S+", re.MULTILINE),  # bullet item
    re.compile(r"^\s*\d+\.\s+\S+", re.MULTILINE),  # numbered item
    re.compile(r"\[[^\]]+\]\([^)]+\)"),  # inline link
)


class PreviewKind(str, Enum):
    """Outcome of classifying a response preview."""

    HTML = "html"
    MARKDOWN = "markdown"
    UNKNOWN = "unknown"


def _normalize_content_type(content_type: Optional[str]) -> str:
    return (content_type or "").lower()


def is_markdown_content_type(content_type: Optional[str]) -> bool:
    """Return True if the declared Content-Type names a Markdown media type."""
    ct = _normalize_content_type(content_type)
    return any(media_type in ct for media_type in MARKDOWN_CONTENT_TYPES)


def is_html_content_type(content_type: Optional[str]) -> bool:
    """Return True for text/html and application/xhtml+xml."""
    ct = _normalize_content_type(content_type)
    return any(media_type in ct for media_type in HTML_CONTENT_TYPES)


def is_text_content_type(content_type: Optional[str]) -> bool:
    """Return True for any text/* type or XML."""
    ct = _normalize_content_type(content_type)
    return ct.startswith("text/") or "application/xml" in ct


def looks_like_html(preview: Optional[str]) -> bool:
    """
    Return True if a body preview looks like a full HTML document.

    Only document-level markers count (doctype, <html>, <head>, <body>);
    stray inline tags inside Markdown do not.

    Args:
        preview: Beginning of the response body

    Returns:
        True if the preview should be handled as HTML
    """
    text = (preview or "").lstrip()[:HTML_SNIFF_CHARS].lower()
    if text.startswith(_HTML_PROLOGUES):
        return True
    if _HTML_HEAD_OR_BODY_RE.search(text):
        return True
    return text.startswith("<") and _HTML_CLOSING_RE.search(text) is not None


def looks_like_markdown(preview: Optional[str]) -> bool:
    """
    Return True if a body preview contains common Markdown constructs.

    Args:
        preview: Beginning of the response body

    Returns:
        True if any heading, rule, fence, list item or inline link is found
    """
    text = (preview or "")[:MARKDOWN_SNIFF_CHARS]
    return any(pattern.search(text) for pattern in _MARKDOWN_PATTERNS)


def classify_preview(content_type: Optional[str], preview: Optional[str]) -> PreviewKind:
    """
    Classify a response from its declared type and body preview.

    HTML detection always wins: a payload that looks like HTML is never
    treated as Markdown, whatever Markdown patterns it also contains.
    """
    if is_html_content_type(content_type) or looks_like_html(preview):
        return PreviewKind.HTML
    if is_markdown_content_type(content_type) or looks_like_markdown(preview):
        return PreviewKind.MARKDOWN
    return PreviewKind.UNKNOWN
