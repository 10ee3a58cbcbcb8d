"""HTML to Markdown conversion."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Callable, Optional, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from markdownify import ASTERISK, ATX, MarkdownConverter, abstract_inline_conversion

from .extractor import ContentDocument

logger = logging.getLogger(__name__)

TABLES = "tables"
STRIKETHROUGH = "strikethrough"
TASK_LIST_ITEMS = "task_list_items"

# GitHub-flavoured extensions on top of the base converter
GFM_EXTENSIONS = frozenset({TABLES, STRIKETHROUGH, TASK_LIST_ITEMS})

_TABLE_TAGS = frozenset({"table", "thead", "tbody", "tfoot", "tr", "th", "td", "caption"})
_STRIKE_TAGS = frozenset({"del", "s", "strike"})

ConvertFn = Callable[..., str]


class _FetchMdConverter(MarkdownConverter):
    """
    markdownify converter with fetchmd's fixed style.

    ``_`` for emphasis (``**`` for strong), fenced ``<pre>`` blocks that drop
    language hints, and switchable GFM extensions. A disabled extension falls
    back to plain text for the affected tags.
    """

    def __init__(self, extensions: frozenset[str], **options: Any):
        super().__init__(**options)
        self.extensions = extensions

    convert_em = abstract_inline_conversion(lambda self: "_")
    convert_i = convert_em

    convert_strike = MarkdownConverter.convert_del

    def convert_pre(self, el: Tag, text: str, parent_tags: set[str]) -> str:
        code = el.get_text().rstrip("\n")
        return f"\n\n```\n{code}\n```\n\n"

    def convert_input(self, el: Tag, text: str, parent_tags: set[str]) -> str:
        if str(el.get("type", "")).lower() != "checkbox" or "li" not in parent_tags:
            return ""
        marker = "[x]" if el.has_attr("checked") else "[ ]"
        following = el.next_sibling
        if isinstance(following, NavigableString) and following[:1].isspace():
            return marker
        return marker + " "

    def _plain_block(self, el: Tag, text: str, parent_tags: set[str]) -> str:
        if el.name in ("td", "th"):
            return " " + text.strip() + " "
        return "\n\n" + text.strip() + "\n\n"

    def _plain_inline(self, el: Tag, text: str, parent_tags: set[str]) -> str:
        return text

    def get_conv_fn(self, tag_name: str) -> Optional[ConvertFn]:
        name = tag_name.lower()
        if name in _TABLE_TAGS and TABLES not in self.extensions:
            return self._plain_block
        if name in _STRIKE_TAGS and STRIKETHROUGH not in self.extensions:
            return self._plain_inline
        if name == "input" and TASK_LIST_ITEMS not in self.extensions:
            return None
        return super().get_conv_fn(tag_name)


class HtmlToMarkdown:
    """
    Converts HTML content to clean Markdown.

    Uses markdownify with fixed settings: ATX headings, fenced code blocks,
    ``---`` rules, ``-`` bullets and ``_`` emphasis. Tables, strikethrough and
    task-list items are enabled by default.

    Example:
        converter = HtmlToMarkdown()
        markdown = converter.convert("<h2>Usage</h2><p>Run it.</p>")
    """

    def __init__(self, extensions: Optional[Iterable[str]] = None):
        """
        Initialize the Markdown converter.

        Args:
            extensions: GFM extensions to enable (default: all). Unknown
                names are logged and ignored.
        """
        requested = set(GFM_EXTENSIONS if extensions is None else extensions)
        unknown = requested - GFM_EXTENSIONS
        if unknown:
            logger.warning(f"Ignoring unknown Markdown extensions: {', '.join(sorted(unknown))}")
        self.extensions = frozenset(requested & GFM_EXTENSIONS)

        self._converter = _FetchMdConverter(
            self.extensions,
            heading_style=ATX,
            bullets="-",
            strong_em_symbol=ASTERISK,
            autolinks=False,
            table_infer_header=True,
            wrap=False,
        )

    def convert(self, html: Union[str, BeautifulSoup]) -> str:
        """
        Convert HTML to Markdown.

        Args:
            html: HTML string or an already parsed document

        Returns:
            Markdown string (not normalized)
        """
        soup = html if isinstance(html, BeautifulSoup) else BeautifulSoup(html, "html.parser")
        try:
            return self._converter.convert_soup(soup)
        except Exception as e:
            logger.error(f"Failed to convert HTML to Markdown: {e}")
            # Return plain text as fallback
            text: str = soup.get_text(separator="\n")
            return text.strip() + "\n"

    def convert_document(self, document: ContentDocument) -> str:
        """
        Convert an extracted document, adding its title as a heading.

        The ``# title`` line is only added when the converted body does not
        already open with a level-1 heading.

        Args:
            document: Output of MainContentExtractor.extract

        Returns:
            Markdown string (not normalized)
        """
        content = self.convert(document.fragment)
        if document.title and not content.lstrip().startswith("# "):
            return f"# {document.title}\n\n{content}"
        return content
