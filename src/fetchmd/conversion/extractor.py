"""Main content extraction from HTML pages."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup, Tag
from readability import Document
from readability.readability import Unparseable

from .dom import SoupElement

logger = logging.getLogger(__name__)

# Never content, removed before anything else
NON_CONTENT_TAGS = ("script", "style", "noscript")

# Document-level elements that carry no visible content
HEAD_ONLY_TAGS = ("head", "title", "meta", "link", "base")

# Elements that typically contain main content
CONTENT_SELECTORS = [
    "article",
    "main",
    '[role="main"]',
    '[itemprop="articleBody"]',
    ".content",
    ".main-content",
    ".post-content",
    ".article-content",
    ".entry-content",
    ".documentation",
    ".docs-content",
    ".markdown-body",
    "#content",
    "#main-content",
    "#documentation",
]

# Page chrome removed before looking for the article
CHROME_SELECTORS = [
    "nav",
    "aside",
    "footer",
    '[role="navigation"]',
    '[role="banner"]',
    '[role="contentinfo"]',
    '[role="complementary"]',
    '[aria-hidden="true"]',
]

_UNLIKELY_RE = re.compile(
    r"banner|breadcrumb|combx|comment|community|cookie|disqus|extra|footer|gdpr|header|"
    r"legends|menu|modal|newsletter|pager|pagination|popup|promo|related|remark|share|"
    r"shoutbox|sidebar|skyscraper|social|sponsor|subscribe|toc|tweet|widget",
    re.IGNORECASE,
)
_MAYBE_CANDIDATE_RE = re.compile(r"and|article|body|column|content|main|shadow|docs?", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")

DEFAULT_CHAR_THRESHOLD = 250
MAX_LINK_DENSITY = 0.5


@dataclass
class ContentDocument:
    """
    Extracted page content, owned by the caller.

    Attributes:
        title: Whitespace-collapsed page title (may be empty)
        fragment: Isolated ``<html><body>...</body></html>`` document holding
            only the extracted content
        source_base_url: URL used to resolve relative references
        is_article: True when an article was found, False for the
            whole-body fallback
    """

    title: str
    fragment: BeautifulSoup
    source_base_url: str
    is_article: bool = False

    @property
    def body(self) -> Tag:
        """The fragment's ``<body>`` element."""
        body = self.fragment.body
        if body is None:
            raise ValueError("Content fragment has no <body>")
        return body


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace to single spaces and trim."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def _text_length(tag: Tag) -> int:
    return len(collapse_whitespace(tag.get_text(" ")))


def _link_density(tag: Tag) -> float:
    """Share of the element's text that sits inside links."""
    text_length = _text_length(tag)
    if text_length == 0:
        return 0.0
    link_length = sum(_text_length(a) for a in tag.find_all("a"))
    return link_length / text_length


def _class_and_id(tag: Tag) -> str:
    return " ".join(tag.get("class") or []) + " " + str(tag.get("id") or "")


class MainContentExtractor:
    """
    Extracts the main readable content from HTML documents.

    Page chrome is removed, well-known content containers are tried first,
    then readability picks the article. When nothing article-like is found
    the whole ``<body>`` is used instead.

    Example:
        extractor = MainContentExtractor()
        document = extractor.extract(html, "https://docs.example.com/page")
        print(document.title, document.body)
    """

    def __init__(
        self,
        content_selectors: Optional[list[str]] = None,
        char_threshold: int = DEFAULT_CHAR_THRESHOLD,
    ):
        """
        Initialize the content extractor.

        Args:
            content_selectors: CSS selectors for main content (overrides defaults)
            char_threshold: Minimum text length for extracted content to count
                as an article
        """
        self._content_selectors = content_selectors or CONTENT_SELECTORS
        self._char_threshold = char_threshold

    def _parse_html(self, html: str) -> BeautifulSoup:
        """Parse HTML and drop script, style and noscript elements."""
        soup = BeautifulSoup(html, "html.parser")
        root = SoupElement(soup)
        for tag_name in NON_CONTENT_TAGS:
            for element in root.query_all(tag_name):
                element.remove()
        return soup

    def _extract_title(self, soup: BeautifulSoup) -> str:
        """Return <title>, og:title or the first <h1>, whitespace-collapsed."""
        if soup.title is not None:
            title = collapse_whitespace(soup.title.get_text())
            if title:
                return title

        og_title = soup.find("meta", attrs={"property": "og:title"})
        if isinstance(og_title, Tag) and og_title.get("content"):
            return collapse_whitespace(str(og_title["content"]))

        h1 = soup.find("h1")
        if isinstance(h1, Tag):
            return collapse_whitespace(h1.get_text(" "))
        return ""

    def _remove_chrome(self, soup: BeautifulSoup) -> None:
        """Remove navigation, sidebars, comment sections and similar."""
        for selector in CHROME_SELECTORS:
            for element in soup.select(selector):
                element.decompose()

        for element in soup.find_all(["div", "section", "header", "span", "ul", "form"]):
            if not isinstance(element, Tag) or element.decomposed:
                continue
            if element.name in ("body", "article", "main"):
                continue
            match_string = _class_and_id(element)
            if _UNLIKELY_RE.search(match_string) and not _MAYBE_CANDIDATE_RE.search(match_string):
                element.decompose()

    def _is_article_like(self, tag: Tag) -> bool:
        return _text_length(tag) >= self._char_threshold and _link_density(tag) < MAX_LINK_DENSITY

    def _find_by_selector(self, soup: BeautifulSoup) -> Optional[Tag]:
        """Try semantic containers (article, main, ...) in priority order."""
        for selector in self._content_selectors:
            for element in soup.select(selector):
                if self._is_article_like(element):
                    logger.debug(f"Content container matched selector {selector!r}")
                    return element
        return None

    def _find_by_readability(self, soup: BeautifulSoup) -> Optional[Tag]:
        """Let readability pick the article out of the cleaned page."""
        # No url: readability would rewrite links itself
        try:
            summary = Document(str(soup)).summary(html_partial=True)
        except Unparseable as e:
            logger.debug(f"Readability could not parse the page: {e}")
            return None

        content = BeautifulSoup(summary, "html.parser")
        root = content.find(True)
        if not isinstance(root, Tag) or not self._is_article_like(root):
            return None
        logger.debug("Content container chosen by readability")
        return root

    def find_article(self, soup: BeautifulSoup) -> Optional[Tag]:
        """
        Look for the article in a parsed document.

        The document is modified (chrome is removed), so pass a copy when the
        original is still needed.

        Returns:
            The content element, or None when nothing looks like an article
        """
        self._remove_chrome(soup)
        return self._find_by_selector(soup) or self._find_by_readability(soup)

    @staticmethod
    def _body_html(soup: BeautifulSoup) -> str:
        """Inner HTML of <body>, or of the document minus head elements when <body> is omitted."""
        if soup.body is not None:
            return soup.body.decode_contents()

        for element in soup.find_all(list(HEAD_ONLY_TAGS)):
            if isinstance(element, Tag) and not element.decomposed:
                element.decompose()
        root = soup.html or soup
        return root.decode_contents()

    def extract(self, html: str, base_url: str) -> ContentDocument:
        """
        Extract the main content from an HTML page.

        Args:
            html: Raw HTML text
            base_url: URL the page was fetched from (after redirects)

        Returns:
            ContentDocument whose fragment is independent of the parsed page
        """
        soup = self._parse_html(html)
        title = self._extract_title(soup)

        # Article lookup mutates its input; the fallback needs the page as parsed
        article = self.find_article(BeautifulSoup(str(soup), "html.parser"))

        if article is not None:
            content_html = article.decode_contents() if article.name == "body" else str(article)
            logger.debug(f"HTML -> article -> Markdown ({base_url})")
        else:
            content_html = self._body_html(soup)
            logger.debug(f"HTML -> body -> Markdown, no article found ({base_url})")

        fragment = BeautifulSoup(f"<html><body>{content_html}</body></html>", "html.parser")
        return ContentDocument(
            title=title,
            fragment=fragment,
            source_base_url=base_url,
            is_article=article is not None,
        )
