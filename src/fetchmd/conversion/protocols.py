"""Protocol definitions for content conversion."""

from typing import Protocol

from .extractor import ContentDocument


class ContentExtractor(Protocol):
    """
    Protocol for extracting main content from HTML.

    Implementations should isolate the main article/documentation content
    and return it as a document they no longer reference.
    """

    def extract(self, html: str, base_url: str) -> ContentDocument:
        """
        Extract main content from HTML.

        Args:
            html: Raw HTML text
            base_url: Source URL (for relative link resolution)

        Returns:
            ContentDocument with title and content fragment
        """
        ...


class MarkdownConverter(Protocol):
    """
    Protocol for converting extracted content to Markdown.
    """

    def convert_document(self, document: ContentDocument) -> str:
        """
        Convert an extracted document to Markdown.

        Args:
            document: Extracted content

        Returns:
            Markdown string
        """
        ...
