"""Composition root: builds the resolution pipeline from an AppConfig."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

import httpx
import structlog

from cehennemarr.application.use_cases.resolve_stream import StreamResolutionUseCase
from cehennemarr.infrastructure.cache.memory_adapter import MemoryCacheAdapter
from cehennemarr.infrastructure.concurrency import AdmissionLimiter
from cehennemarr.infrastructure.config.schema import AppConfig
from cehennemarr.infrastructure.extraction.embed import EmbedExtractor
from cehennemarr.infrastructure.http.fetcher import ResilientFetcher
from cehennemarr.infrastructure.metadata.cinemeta import CinemetaClient
from cehennemarr.infrastructure.proxy.pool import ProxyPool
from cehennemarr.infrastructure.site.matcher import ContentMatcher

log = structlog.get_logger(__name__)


@dataclass
class PipelineContext:
    """Long-lived objects shared by every resolution in the process."""

    config: AppConfig
    http_client: httpx.AsyncClient
    limiter: AdmissionLimiter
    proxy_pool: ProxyPool
    fetcher: ResilientFetcher
    matcher: ContentMatcher
    extractor: EmbedExtractor
    use_case: StreamResolutionUseCase
    caches: list[MemoryCacheAdapter]


def build_pipeline(config: AppConfig, http_client: httpx.AsyncClient) -> PipelineContext:
    """Wire the pipeline around an existing client (no resources opened here)."""
    site = config.site

    search_cache = MemoryCacheAdapter(config.cache.search_ttl_seconds, name="search")
    episode_cache = MemoryCacheAdapter(config.cache.episodes_ttl_seconds, name="episodes")
    metadata_cache = MemoryCacheAdapter(config.cache.metadata_ttl_seconds, name="metadata")
    success_cache = MemoryCacheAdapter(config.cache.success_ttl_seconds, name="streams")

    limiter = AdmissionLimiter(config.http.max_concurrent)
    proxy_pool = ProxyPool(
        http_client,
        config.proxy,
        test_url=f"{site.base_url}/",
        user_agent=config.http.user_agent,
        limiter=limiter,
    )
    fetcher = ResilientFetcher(
        http_client,
        limiter=limiter,
        proxy_pool=proxy_pool,
        protected_domains=site.protected_domains,
        proxy_mode=config.proxy.mode,
        timeout=config.http.timeout_seconds,
        max_retries=config.http.max_retries,
        retry_delay=config.http.retry_delay_seconds,
        max_proxy_attempts=config.proxy.max_proxy_attempts,
        no_proxy_pause=config.proxy.no_proxy_pause_seconds,
        user_agent=config.http.user_agent,
        accept_language=config.http.accept_language,
    )
    matcher = ContentMatcher(
        fetcher,
        base_url=site.base_url,
        search_cache=search_cache,
        episode_cache=episode_cache,
        metadata=CinemetaClient(
            http_client=http_client,
            cache=metadata_cache,
            base_url=site.metadata_base_url,
            limiter=limiter,
        ),
        strategy=site.match_strategy,
        threshold=site.title_match_threshold,
    )
    extractor = EmbedExtractor(fetcher, embed_base_url=site.embed_base_url)
    use_case = StreamResolutionUseCase(
        matcher=matcher,
        extractor=extractor,
        success_cache=success_cache,
        relay_base_url=config.relay_base_url,
        default_origin=site.embed_base_url,
    )

    log.info(
        "pipeline_built",
        site=site.base_url,
        strategy=site.match_strategy,
        proxy_mode=config.proxy.mode,
        max_concurrent=config.http.max_concurrent,
    )
    return PipelineContext(
        config=config,
        http_client=http_client,
        limiter=limiter,
        proxy_pool=proxy_pool,
        fetcher=fetcher,
        matcher=matcher,
        extractor=extractor,
        use_case=use_case,
        caches=[search_cache, episode_cache, metadata_cache, success_cache],
    )


@asynccontextmanager
async def pipeline_lifespan(config: AppConfig) -> AsyncIterator[PipelineContext]:
    """Open the shared HTTP client, yield the pipeline, then clean up."""
    async with httpx.AsyncClient(
        timeout=config.http.timeout_seconds,
        follow_redirects=True,
        headers={"User-Agent": config.http.user_agent},
    ) as http_client:
        ctx = build_pipeline(config, http_client)
        try:
            yield ctx
        finally:
            for cache in ctx.caches:
                await cache.aclose()
            ctx.proxy_pool.clear()
            log.info("pipeline_closed")
