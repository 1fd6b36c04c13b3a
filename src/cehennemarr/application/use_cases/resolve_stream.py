"""Stream resolution use case: Stremio id -> Stremio streams.

Flow:
    1. Parse the Stremio id (``tt123`` / ``tt123:1:5``).
    2. Match it to a page on the site (ContentMatcher).
    3. Extract the video URL and tracks (EmbedExtractor).
    4. Shape the result into Stremio streams.

:meth:`StreamResolutionUseCase.execute` is the only place that turns
pipeline errors into an empty response; :meth:`resolve` keeps them
typed for callers that want a diagnostic.
"""

from __future__ import annotations

import time
from typing import Any

import structlog

from cehennemarr.domain.entities.content import ContentMatch
from cehennemarr.domain.entities.extraction import ExtractionResult
from cehennemarr.domain.entities.stremio import StremioStreamRequest
from cehennemarr.domain.errors import (
    ContentNotFoundError,
    ErrorKind,
    FetchTimeoutError,
    NetworkError,
    PipelineError,
    ValidationError,
)
from cehennemarr.domain.ports.cache import CachePort
from cehennemarr.infrastructure.common.converters import to_int
from cehennemarr.infrastructure.extraction.embed import EmbedExtractor
from cehennemarr.infrastructure.site.matcher import ContentMatcher
from cehennemarr.infrastructure.stremio.stream_formatter import to_protocol_streams

log = structlog.get_logger(__name__)

StreamsResponse = dict[str, list[dict[str, Any]]]


def parse_stream_id(content_type: str, raw_id: str) -> StremioStreamRequest | None:
    """Split ``tt123[:season:episode]``; ``None`` when the shape is unusable.

    Value checks (id pattern, ranges) are left to the matcher so they
    surface as :class:`ValidationError`.
    """
    if content_type not in ("movie", "series") or not raw_id:
        return None

    parts = raw_id.split(":")
    imdb_id = parts[0]
    if not imdb_id:
        return None

    season = episode = None
    if len(parts) >= 3:
        season = to_int(parts[1])
        episode = to_int(parts[2])
        if season is None or episode is None:
            return None

    return StremioStreamRequest(
        imdb_id=imdb_id,
        content_type=content_type,  # type: ignore[arg-type]
        season=season,
        episode=episode,
    )


class StreamResolutionUseCase:
    """Resolve Stremio stream requests for the target site.

    Args:
        matcher: Maps ids to content pages.
        extractor: Recovers the video URL from a content page.
        success_cache: Optional short-TTL cache of non-empty responses.
        relay_base_url: When set, stream URLs go through this relay.
        default_origin: Embed origin used if a result lacks one.
    """

    def __init__(
        self,
        *,
        matcher: ContentMatcher,
        extractor: EmbedExtractor,
        success_cache: CachePort | None = None,
        relay_base_url: str | None = None,
        default_origin: str = "https://hdfilmcehennemi.mobi",
    ) -> None:
        self._matcher = matcher
        self._extractor = extractor
        self._success_cache = success_cache
        self._relay_base_url = relay_base_url
        self._default_origin = default_origin

    async def resolve(
        self, request: StremioStreamRequest
    ) -> tuple[ContentMatch, ExtractionResult]:
        """Match and extract.  Raises the typed pipeline errors unchanged."""
        match = await self._matcher.find_content(
            request.content_type,
            request.imdb_id,
            request.season,
            request.episode,
        )
        log.info("content_matched", title=match.title, url=match.url)
        result = await self._extractor.extract(match.url)
        return match, result

    def format(self, match: ContentMatch, result: ExtractionResult) -> StreamsResponse:
        return to_protocol_streams(
            result,
            match.title,
            self._relay_base_url,
            default_origin=self._default_origin,
        )

    async def execute(self, content_type: str, raw_id: str) -> StreamsResponse:
        """Resolve a Stremio stream request; failures become ``{"streams": []}``."""
        t0 = time.perf_counter()
        log.info("stream_request", type=content_type, id=raw_id)

        request = parse_stream_id(content_type, raw_id)
        if request is None:
            log.warning("stream_request_unparseable", type=content_type, id=raw_id)
            return {"streams": []}

        if self._success_cache is not None:
            cached = await self._success_cache.get(request.cache_key)
            if cached is not None:
                log.info("stream_cache_hit", key=request.cache_key)
                return cached

        try:
            match, result = await self.resolve(request)
        except PipelineError as exc:
            self._log_failure(exc, request, time.perf_counter() - t0)
            return {"streams": []}

        response = self.format(match, result)
        if response["streams"] and self._success_cache is not None:
            await self._success_cache.set(request.cache_key, response)

        log.info(
            "stream_response",
            id=raw_id,
            streams=len(response["streams"]),
            elapsed_ms=round((time.perf_counter() - t0) * 1000),
        )
        return response

    @staticmethod
    def _log_failure(
        exc: PipelineError, request: StremioStreamRequest, elapsed: float
    ) -> None:
        elapsed_ms = round(elapsed * 1000)
        if isinstance(exc, ValidationError):
            log.warning(
                "stream_validation_error",
                field=exc.field,
                value=exc.value,
                error=exc.message,
                elapsed_ms=elapsed_ms,
            )
        elif isinstance(exc, ContentNotFoundError):
            log.info("stream_content_not_found", query=exc.query, elapsed_ms=elapsed_ms)
        elif isinstance(exc, FetchTimeoutError):
            log.error("stream_timeout", url=exc.url, elapsed_ms=elapsed_ms)
        elif isinstance(exc, NetworkError):
            log.error(
                "stream_network_error",
                url=exc.url,
                status=exc.status_code,
                error=exc.message,
                elapsed_ms=elapsed_ms,
            )
        else:
            log.warning(
                "stream_failed",
                kind=exc.kind.value,
                imdb_id=request.imdb_id,
                error=exc.message,
                elapsed_ms=elapsed_ms,
            )
        if exc.kind is ErrorKind.SCRAPING:
            log.debug("stream_scraping_details", details=exc.details)
