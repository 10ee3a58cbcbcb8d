"""Sibling Markdown URL candidates (index.md, page.md, ...)."""

from __future__ import annotations

from urllib.parse import urljoin, urlsplit, urlunsplit


def _strip_query_and_fragment(url: str) -> tuple[str, str]:
    """Return (url, path) with query and fragment removed and an empty path as '/'."""
    parts = urlsplit(url)
    path = parts.path or "/"
    return urlunsplit((parts.scheme, parts.netloc, path, "", "")), path


def _with_path(url: str, path: str) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))


def compute_markdown_sibling_urls(url: str) -> list[str]:
    """
    Guess Markdown siblings of a page URL.

    Directory URLs get ``index.md`` and ``README.md``; page URLs get the
    path with ``.md`` appended. Both get a ``.markdown`` variant unless the
    path already ends with it.

    Example:
        >>> compute_markdown_sibling_urls("https://a.com/docs/page")
        ['https://a.com/docs/page.md', 'https://a.com/docs/page.markdown']

    Args:
        url: Absolute http(s) URL

    Returns:
        Up to three candidate URLs, most likely first, without duplicates
    """
    base, path = _strip_query_and_fragment(url)
    is_directory = path.endswith("/")
    lowered = path.lower()

    candidates: list[str] = []

    if is_directory:
        candidates.append(urljoin(base, "index.md"))
        candidates.append(urljoin(base, "README.md"))
    elif not lowered.endswith(".md"):
        candidates.append(_with_path(base, f"{path}.md"))

    if not lowered.endswith(".markdown"):
        if is_directory:
            candidates.append(_with_path(base, f"{path}index.markdown"))
        else:
            candidates.append(_with_path(base, f"{path}.markdown"))

    # dict preserves insertion order
    return list(dict.fromkeys(candidates))
