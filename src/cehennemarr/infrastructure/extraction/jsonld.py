"""JSON-LD fallback: a direct media URL from ``application/ld+json``.

Only ``contentUrl`` is read; ``embedUrl`` names a player page, not media.
"""

from __future__ import annotations

import json
from typing import Any, Iterator

import structlog

from cehennemarr.infrastructure.common.html_selectors import parse_html

from .cipher import looks_like_media_url

log = structlog.get_logger(__name__)

_URL_KEY = "contentUrl"


def _walk(node: Any) -> Iterator[dict[str, Any]]:
    if isinstance(node, list):
        for item in node:
            yield from _walk(item)
    elif isinstance(node, dict):
        yield node
        graph = node.get("@graph")
        if graph is not None:
            yield from _walk(graph)
        video = node.get("video")
        if isinstance(video, (dict, list)):
            yield from _walk(video)


def extract_jsonld_content_url(html: str) -> str | None:
    """First http(s) ``contentUrl`` found in any JSON-LD block."""
    soup = parse_html(html)
    objects: list[dict[str, Any]] = []
    for script in soup.select('script[type="application/ld+json"]'):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            objects.extend(_walk(json.loads(raw)))
        except ValueError:
            log.debug("jsonld_parse_failed")
            continue

    for obj in objects:
        value = obj.get(_URL_KEY)
        if isinstance(value, str) and looks_like_media_url(value):
            return value
    return None
