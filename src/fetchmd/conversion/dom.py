"""Minimal DOM capability interface used by extraction and link rewriting."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Optional, Protocol, Union

from bs4 import BeautifulSoup, Tag


class DomElement(Protocol):
    """
    The few DOM operations fetchmd needs.

    Extraction and link rewriting only talk to this protocol, so any HTML
    library can back them.
    """

    def query_all(self, selector: str) -> Iterator[DomElement]:
        """Yield descendants matching a CSS selector."""
        ...

    def get_attribute(self, name: str) -> Optional[str]:
        """Return an attribute value, or None when absent."""
        ...

    def set_attribute(self, name: str, value: str) -> None:
        """Set an attribute value."""
        ...

    def remove_attribute(self, name: str) -> None:
        """Remove an attribute if present."""
        ...

    def remove(self) -> None:
        """Detach this element (and its subtree) from the document."""
        ...


class SoupElement:
    """
    DomElement backed by a BeautifulSoup tag or document.

    Example:
        soup = BeautifulSoup(html, "html.parser")
        for node in SoupElement(soup).query_all("script"):
            node.remove()
    """

    __slots__ = ("tag",)

    def __init__(self, tag: Union[Tag, BeautifulSoup]):
        self.tag = tag

    def query_all(self, selector: str) -> Iterator[SoupElement]:
        # select() returns a list, so callers may remove nodes while iterating
        for found in self.tag.select(selector):
            yield SoupElement(found)

    def get_attribute(self, name: str) -> Optional[str]:
        value = self.tag.get(name)
        if value is None:
            return None
        # Multi-valued attributes (class, rel) come back as lists
        if isinstance(value, list):
            return " ".join(value)
        return str(value)

    def set_attribute(self, name: str, value: str) -> None:
        self.tag[name] = value

    def remove_attribute(self, name: str) -> None:
        if name in self.tag.attrs:
            del self.tag[name]

    def remove(self) -> None:
        self.tag.decompose()
