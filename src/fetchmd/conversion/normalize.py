"""Markdown cleanup: whitespace normalization and UI noise removal."""

from __future__ import annotations

import re

# Button labels and placeholders that leak into text from docs-site chrome
UI_NOISE_LINES = frozenset(
    {
        "copy",
        "copy page",
        "copied",
        "copied!",
        "copy to clipboard",
        "loading...",
    }
)

FENCE_MARKER = "```"

# A CR left in front of LF counts as trailing whitespace
_TRAILING_WHITESPACE_RE = re.compile(r"[ \t\r]+$", re.MULTILINE)
_EXCESSIVE_BLANK_LINES_RE = re.compile(r"\n{3,}")


def normalize_markdown(markdown: str) -> str:
    """
    Canonicalize Markdown whitespace.

    Converts CRLF to LF, strips trailing spaces and tabs from every line,
    keeps at most one blank line between blocks, trims the document and
    ends it with exactly one newline. Applying it twice changes nothing.

    Args:
        markdown: Markdown text

    Returns:
        Normalized Markdown
    """
    text = (markdown or "").replace("\r\n", "\n")
    text = _TRAILING_WHITESPACE_RE.sub("", text)
    text = _EXCESSIVE_BLANK_LINES_RE.sub("\n\n", text)
    return text.strip() + "\n"


def strip_ui_noise_markdown(markdown: str) -> str:
    """Drop "Copy", "Loading..." and similar lines outside fenced code blocks."""
    lines = (markdown or "").replace("\r\n", "\n").split("\n")
    kept: list[str] = []
    in_fence = False

    for line in lines:
        trimmed = line.strip()
        if trimmed.startswith(FENCE_MARKER):
            in_fence = not in_fence
            kept.append(line)
            continue
        if not in_fence and trimmed.lower() in UI_NOISE_LINES:
            continue
        kept.append(line)

    return "\n".join(kept)
