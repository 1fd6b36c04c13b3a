"""CSS-selector-based HTML extraction with fallback chains.

The document capability used by the matcher and the extractor:
``parse_html(html)`` returns a BeautifulSoup tree, and the helpers below
run CSS selectors and read attributes/text from it.  Every helper that
takes a selector also accepts *fallback_selectors*; the first selector
that yields at least one match wins.
"""

from __future__ import annotations

from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag


def parse_html(html: str) -> BeautifulSoup:
    """Parse an HTML string (or snippet) into a BeautifulSoup tree."""
    return BeautifulSoup(html, "lxml")


def select_items(
    root: BeautifulSoup | Tag,
    selector: str,
    *fallback_selectors: str,
) -> list[Tag]:
    """Select elements via CSS with a fallback chain."""
    for sel in (selector, *fallback_selectors):
        items = root.select(sel)
        if items:
            return items
    return []


def extract_text(
    element: BeautifulSoup | Tag,
    selector: str,
    *fallback_selectors: str,
    default: str = "",
    strip: bool = True,
) -> str:
    """Extract text from the first matching child element.

    With ``selector=""`` the element's own text is returned.
    """
    if selector == "":
        text = element.get_text(strip=strip)
        return text if text else default

    for sel in (selector, *fallback_selectors):
        match = element.select_one(sel)
        if match:
            text = match.get_text(strip=strip)
            if text:
                return text
    return default


def extract_attr(
    element: BeautifulSoup | Tag,
    selector: str,
    attr: str,
    *fallback_selectors: str,
    default: str = "",
) -> str:
    """Extract an HTML attribute from the first matching child element.

    With ``selector=""`` the attribute is read from *element* itself.
    """
    if selector == "":
        val = element.get(attr)
        return str(val) if val else default

    for sel in (selector, *fallback_selectors):
        match = element.select_one(sel)
        if match:
            val = match.get(attr)
            if val:
                return str(val)
    return default


def first_attr(element: Tag, *attrs: str, default: str = "") -> str:
    """Return the first non-empty attribute out of *attrs* (e.g. src, data-src)."""
    for attr in attrs:
        val = element.get(attr)
        if val:
            return str(val)
    return default


def has_attr(element: Tag, attr: str) -> bool:
    """True if *attr* is present at all, even as a bare boolean attribute."""
    return element.has_attr(attr)


def extract_links(
    element: BeautifulSoup | Tag,
    selector: str = "a[href]",
    *fallback_selectors: str,
    base_url: str = "",
) -> list[dict[str, str]]:
    """Extract all links matching *selector*.

    Returns a list of ``{"text": ..., "href": ...}`` dicts.
    """
    tags = select_items(element, selector, *fallback_selectors)
    results: list[dict[str, str]] = []
    for tag in tags:
        href = tag.get("href")
        if not href:
            continue
        href_str = str(href)
        if base_url:
            href_str = urljoin(base_url, href_str)
        results.append(
            {
                "text": tag.get_text(strip=True),
                "href": href_str,
            }
        )
    return results
