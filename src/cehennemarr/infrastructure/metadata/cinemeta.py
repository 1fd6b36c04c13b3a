"""Cinemeta metadata client: canonical title and year for an IMDb id.

Used only by the title-fallback match strategy, when the site's own
search does not index the id.
"""

from __future__ import annotations

from contextlib import nullcontext
from typing import Any, AsyncContextManager

import httpx
import structlog

from cehennemarr.domain.entities.content import ContentType, TitleInfo
from cehennemarr.domain.ports.cache import CachePort
from cehennemarr.infrastructure.common.converters import leading_year
from cehennemarr.infrastructure.concurrency import AdmissionLimiter

log = structlog.get_logger(__name__)

_TIMEOUT = 10.0


class CinemetaClient:
    """Implements ``MetadataPort`` against ``{base}/{type}/{id}.json``."""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        cache: CachePort,
        base_url: str = "https://v3-cinemeta.strem.io/meta",
        limiter: AdmissionLimiter | None = None,
    ) -> None:
        self._http = http_client
        self._cache = cache
        self._base_url = base_url.rstrip("/")
        self._limiter = limiter

    def _admit(self) -> AsyncContextManager[None]:
        if self._limiter is None:
            return nullcontext()
        return self._limiter.slot()

    async def _fetch_meta(
        self, content_type: ContentType, imdb_id: str
    ) -> dict[str, Any] | None:
        url = f"{self._base_url}/{content_type}/{imdb_id}.json"
        try:
            async with self._admit():
                resp = await self._http.get(url, timeout=_TIMEOUT)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError):
            log.warning("metadata_fetch_failed", imdb_id=imdb_id, exc_info=True)
            return None

        meta = data.get("meta") if isinstance(data, dict) else None
        return meta if isinstance(meta, dict) else None

    async def get_title_info(
        self, content_type: ContentType, imdb_id: str
    ) -> TitleInfo | None:
        cache_key = f"meta:{content_type}:{imdb_id}"
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        meta = await self._fetch_meta(content_type, imdb_id)
        if not meta or not meta.get("name"):
            log.info("metadata_not_found", imdb_id=imdb_id, type=content_type)
            return None

        info = TitleInfo(
            title=str(meta["name"]),
            original_title=meta.get("originalTitle") or meta.get("original_title"),
            year=leading_year(meta.get("year") or meta.get("releaseInfo")),
        )
        await self._cache.set(cache_key, info)
        log.info(
            "metadata_resolved",
            imdb_id=imdb_id,
            title=info.title,
            year=info.year,
        )
        return info
