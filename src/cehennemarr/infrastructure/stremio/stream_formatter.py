"""Shape an :class:`ExtractionResult` into Stremio stream objects.

Pure transformation logic, no I/O.  The video host refuses requests
without the embed's ``Referer``, so every stream carries it, either as
``behaviorHints.proxyHeaders`` (for clients whose streaming server
applies headers) or baked into a relay URL (for clients that cannot).
"""

from __future__ import annotations

import base64
from typing import Any
from urllib.parse import urlencode

from cehennemarr.domain.entities.extraction import ExtractionResult

STREAM_NAME = "HDFilmCehennemi"
_DEFAULT_AUDIO_TITLE = "Original audio"


def _b64(value: str) -> str:
    return base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii")


def playback_headers(origin: str) -> dict[str, str]:
    """``Referer``/``Origin`` pair for the host that served the embed."""
    origin = origin.rstrip("/")
    return {"Referer": f"{origin}/", "Origin": origin}


def build_relay_url(relay_base_url: str, video_url: str, referer: str) -> str:
    """``{relay}?url=<b64 url>&referer=<b64 referer>``."""
    query = urlencode({"url": _b64(video_url), "referer": _b64(referer)})
    separator = "&" if "?" in relay_base_url else "?"
    return f"{relay_base_url}{separator}{query}"


def to_protocol_streams(
    result: ExtractionResult | None,
    display_title: str,
    relay_base_url: str | None = None,
    *,
    default_origin: str = "https://hdfilmcehennemi.mobi",
) -> dict[str, list[dict[str, Any]]]:
    """Build ``{"streams": [...]}``; empty when the result is not playable.

    One stream per audio track (titled by the track name), otherwise a
    single "Original audio" stream.  The headers follow the embed host
    that actually produced the video URL; *default_origin* is used only
    when the result does not record one.
    """
    if result is None or not result.is_playable:
        return {"streams": []}
    assert result.video_url is not None

    headers = playback_headers(result.embed_origin or default_origin)

    if relay_base_url:
        url = build_relay_url(relay_base_url, result.video_url, headers["Referer"])
        hints: dict[str, Any] = {"notWebReady": True}
    else:
        url = result.video_url
        hints = {"notWebReady": True, "proxyHeaders": {"request": headers}}

    subtitles = [
        {"id": s.id, "url": s.url, "lang": s.lang, "label": s.label}
        for s in result.subtitles
    ]
    titles = [track.name for track in result.audio_tracks] or [_DEFAULT_AUDIO_TITLE]

    streams: list[dict[str, Any]] = []
    for title in titles:
        stream: dict[str, Any] = {
            "name": STREAM_NAME,
            "title": title,
            "description": display_title,
            "url": url,
            "behaviorHints": dict(hints),
            "subtitles": list(subtitles),
        }
        if result.source:
            stream["name"] = f"{STREAM_NAME}\n{result.source}"
        streams.append(stream)

    return {"streams": streams}
