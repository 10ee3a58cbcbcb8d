"""Rewrite relative link and image references to absolute URLs."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urljoin, urlsplit

from .dom import DomElement

logger = logging.getLogger(__name__)

URL_ATTRIBUTES = ("href", "src")

# References that must survive untouched
_PRESERVED_PREFIXES = ("mailto:", "tel:")
_HTTP_SCHEMES = frozenset({"http", "https"})


def to_absolute_http_url(value: Optional[str], base_url: str) -> Optional[str]:
    """
    Resolve a single link reference against a base URL.

    Args:
        value: Raw attribute value
        base_url: URL of the document the reference came from

    Returns:
        The value to store: the absolute http(s) URL, the original value when
        it is empty, an anchor, mailto:/tel:, unresolvable or non-http(s);
        None when the attribute should be removed (javascript: URLs)
    """
    if not value:
        return value
    raw = value.strip()
    if not raw or raw.startswith("#"):
        return value
    lowered = raw.lower()
    if lowered.startswith(_PRESERVED_PREFIXES):
        return value
    if lowered.startswith("javascript:"):
        return None

    try:
        absolute = urljoin(base_url, raw)
        scheme = urlsplit(absolute).scheme.lower()
    except ValueError as e:
        logger.debug(f"Could not resolve {raw!r} against {base_url}: {e}")
        return value

    if scheme in _HTTP_SCHEMES:
        return absolute
    return value


def absolutize_dom_urls(root: DomElement, base_url: str) -> None:
    """
    Make every href/src under ``root`` absolute, in place.

    Anchors, mailto: and tel: links are kept; javascript: links lose the
    attribute entirely; references that cannot be turned into an http(s)
    URL are left as they were.

    Args:
        root: Fragment to rewrite
        base_url: Final URL of the fetched page
    """
    for attribute in URL_ATTRIBUTES:
        for element in root.query_all(f"[{attribute}]"):
            current = element.get_attribute(attribute)
            resolved = to_absolute_http_url(current, base_url)
            if resolved is None:
                element.remove_attribute(attribute)
            elif resolved != current:
                element.set_attribute(attribute, resolved)
