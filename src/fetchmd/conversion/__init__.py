"""Content conversion for fetchmd (HTML extraction, HTML to Markdown, cleanup)."""

from .dom import DomElement, SoupElement
from .extractor import ContentDocument, MainContentExtractor
from .links import absolutize_dom_urls, to_absolute_http_url
from .markdown import GFM_EXTENSIONS, HtmlToMarkdown
from .normalize import normalize_markdown, strip_ui_noise_markdown
from .protocols import ContentExtractor, MarkdownConverter

__all__ = [
    # Protocols
    "ContentExtractor",
    "DomElement",
    "MarkdownConverter",
    # Implementations
    "ContentDocument",
    "GFM_EXTENSIONS",
    "HtmlToMarkdown",
    "MainContentExtractor",
    "SoupElement",
    # Functions
    "absolutize_dom_urls",
    "normalize_markdown",
    "strip_ui_noise_markdown",
    "to_absolute_http_url",
]
