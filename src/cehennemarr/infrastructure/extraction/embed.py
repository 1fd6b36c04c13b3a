"""Embed page extraction: content page -> playable video URL + tracks.

Per content page:

1. find the player iframe (``src`` or lazy ``data-src``)
2. read the ``.alternative-link`` provider descriptors
3. scrape the primary frame; if it yields no video URL, try each
   non-active alternate until one does
4. on primary success, credit the page's active alternate as ``source``

Per frame: subtitles from ``<video><track>``, packed JS -> cipher parts
-> video URL, JSON-LD as the secondary path, then audio renditions from
the HLS master playlist (non-fatal).
"""

from __future__ import annotations

import re
from typing import Sequence
from urllib.parse import urljoin, urlparse

import structlog
from bs4 import BeautifulSoup

from cehennemarr.domain.entities.extraction import AltSource, ExtractionResult, Subtitle
from cehennemarr.domain.errors import NetworkError, PipelineError, ScrapingError
from cehennemarr.infrastructure.common.html_selectors import (
    first_attr,
    has_attr,
    parse_html,
    select_items,
)
from cehennemarr.infrastructure.http.fetcher import ResilientFetcher

from .cipher import decode_with_fallback, extract_cipher_parts
from .hls import parse_audio_tracks
from .jsonld import extract_jsonld_content_url
from .unpacker import unpack_packed_js

log = structlog.get_logger(__name__)

_VIDEO_ID_RE = re.compile(r"embed/([^/?]+)")

# Providers that select their stream through an extra query parameter.
_QUERY_PARAM_PROVIDERS: dict[str, str] = {"rapidrame": "rapidrame_id"}


def origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def parse_alternative_sources(soup: BeautifulSoup) -> list[AltSource]:
    sources: list[AltSource] = []
    for el in select_items(soup, ".alternative-link"):
        sources.append(
            AltSource(
                name=el.get_text(strip=True),
                video_id=first_attr(el, "data-video") or None,
                active=el.get("data-active") == "1",
            )
        )
    return sources


def parse_subtitles(soup: BeautifulSoup, frame_url: str) -> list[Subtitle]:
    subtitles: list[Subtitle] = []
    for i, track in enumerate(select_items(soup, "video track")):
        src = first_attr(track, "src")
        if not src:
            continue
        lang = first_attr(track, "srclang")
        subtitles.append(
            Subtitle(
                id=f"hdfc-{lang or i}",
                lang=lang or "unknown",
                label=first_attr(track, "label"),
                url=urljoin(frame_url, src),
                default=has_attr(track, "default"),
            )
        )
    return subtitles


class EmbedExtractor:
    """Recovers an :class:`ExtractionResult` from a content page.

    Args:
        fetcher: Resilient fetcher shared with the matcher.
        embed_base_url: Host that serves alternate-provider embeds.
        stage_orders: Cipher stage orders to try (default table if ``None``).
    """

    def __init__(
        self,
        fetcher: ResilientFetcher,
        *,
        embed_base_url: str,
        stage_orders: Sequence[Sequence[str]] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._embed_base = embed_base_url.rstrip("/")
        self._stage_orders = stage_orders

    def alternate_frame_url(self, video_id: str, alt: AltSource) -> str:
        base = f"{self._embed_base}/video/embed/{video_id}/"
        param = _QUERY_PARAM_PROVIDERS.get(alt.name.strip().lower())
        if param and alt.video_id:
            return f"{base}?{param}={alt.video_id}"
        return base

    async def extract(self, page_url: str) -> ExtractionResult:
        """Run the page pipeline.

        Raises:
            ScrapingError: no player iframe, or no video URL from any source.
            NetworkError: the content page (or every frame) could not be fetched.
        """
        html = await self._fetcher.fetch_text(page_url)
        soup = parse_html(html)

        iframe = soup.select_one("iframe")
        frame_src = first_attr(iframe, "src", "data-src") if iframe else ""
        if not frame_src:
            log.warning("player_iframe_missing", url=page_url)
            raise ScrapingError("Player iframe not found", page_url)

        frame_url = urljoin(page_url, frame_src)
        alternatives = parse_alternative_sources(soup)
        log.info(
            "embed_found",
            page=page_url,
            frame=frame_url,
            alternatives=[a.name for a in alternatives],
        )

        attempts: list[ExtractionResult | NetworkError] = []
        result = await self._scrape_or_none(frame_url, page_url, attempts)

        if result is not None and result.is_playable:
            active = next((a for a in alternatives if a.active), None)
            if active is not None:
                result.source = active.name
        else:
            result = await self._try_alternatives(
                frame_url, page_url, alternatives, attempts
            ) or result

        if result is None or not result.is_playable:
            if attempts and all(isinstance(a, NetworkError) for a in attempts):
                raise attempts[-1]  # type: ignore[misc]
            raise ScrapingError(
                "No video URL recovered from any source",
                page_url,
                {"alternatives": [a.name for a in alternatives]},
            )

        result.alternative_sources = alternatives
        log.info(
            "extraction_succeeded",
            page=page_url,
            source=result.source,
            origin=result.embed_origin,
            subtitles=len(result.subtitles),
            audio_tracks=len(result.audio_tracks),
        )
        return result

    async def _try_alternatives(
        self,
        frame_url: str,
        page_url: str,
        alternatives: list[AltSource],
        attempts: list[ExtractionResult | NetworkError],
    ) -> ExtractionResult | None:
        m = _VIDEO_ID_RE.search(frame_url)
        if not m:
            log.warning("embed_video_id_missing", frame=frame_url)
            return None
        video_id = m.group(1)

        log.info("primary_source_failed", frame=frame_url)
        for alt in alternatives:
            if alt.active:
                continue
            alt_url = self.alternate_frame_url(video_id, alt)
            log.info("alternate_source_attempt", name=alt.name, frame=alt_url)
            alt_result = await self._scrape_or_none(alt_url, page_url, attempts)
            if alt_result is not None and alt_result.is_playable:
                alt_result.source = alt.name
                log.info("alternate_source_succeeded", name=alt.name)
                return alt_result
        return None

    async def _scrape_or_none(
        self,
        frame_url: str,
        referer: str,
        attempts: list[ExtractionResult | NetworkError],
    ) -> ExtractionResult | None:
        try:
            result = await self.scrape_frame(frame_url, referer)
        except NetworkError as exc:
            log.warning("frame_fetch_failed", frame=frame_url, error=exc.message)
            attempts.append(exc)
            return None
        attempts.append(result)
        return result

    async def scrape_frame(self, frame_url: str, referer: str) -> ExtractionResult:
        """Scrape one embed frame; ``video_url`` stays ``None`` if nothing decodes."""
        html = await self._fetcher.fetch_text(frame_url, referer=referer)
        soup = parse_html(html)

        result = ExtractionResult(embed_origin=origin_of(frame_url))
        result.subtitles = parse_subtitles(soup, frame_url)

        unpacked = unpack_packed_js(html)
        if unpacked is not None:
            parts = extract_cipher_parts(unpacked)
            if parts:
                result.video_url = decode_with_fallback(parts, self._stage_orders)
            else:
                log.debug("cipher_parts_missing", frame=frame_url)

        if result.video_url is None:
            result.video_url = extract_jsonld_content_url(html)
            if result.video_url:
                log.info("jsonld_fallback_used", frame=frame_url)

        if result.video_url:
            await self._attach_audio_tracks(result, frame_url)

        return result

    async def _attach_audio_tracks(self, result: ExtractionResult, frame_url: str) -> None:
        assert result.video_url is not None
        try:
            manifest = await self._fetcher.fetch_text(result.video_url, referer=frame_url)
        except PipelineError as exc:
            log.warning("audio_tracks_unavailable", url=result.video_url, error=exc.message)
            return
        result.audio_tracks = parse_audio_tracks(manifest, result.video_url)
        log.debug("audio_tracks_parsed", count=len(result.audio_tracks))
