"""Content matcher: IMDb id (+ season/episode) to a page on the site.

The site's AJAX search answers ``{"results": [<html snippet>, ...]}``;
each snippet is parsed for link, title, year and type.  Series pages are
scraped for episode links named ``<season>-sezon-<episode>-bolum``.
"""

from __future__ import annotations

import re
from urllib.parse import quote, urljoin, urlparse

import structlog

from cehennemarr.domain.entities.content import (
    ContentMatch,
    ContentType,
    EpisodeRef,
    SiteSearchResult,
)
from cehennemarr.domain.errors import ContentNotFoundError, PipelineError
from cehennemarr.domain.ports.cache import CachePort
from cehennemarr.domain.ports.metadata import MetadataPort
from cehennemarr.infrastructure.common.converters import leading_year
from cehennemarr.infrastructure.common.html_selectors import (
    extract_attr,
    extract_links,
    extract_text,
    parse_html,
)
from cehennemarr.infrastructure.http.fetcher import ResilientFetcher

from .title_matcher import DEFAULT_THRESHOLD, pick_best_match, significant_word
from .validation import validate_request

log = structlog.get_logger(__name__)

_EPISODE_RE = re.compile(r"(\d+)-sezon-(\d+)-bolum")
_SEASON_TOKEN_RE = re.compile(r"sezon[/-]?(\d+)", re.IGNORECASE)
_EPISODE_TOKEN_RE = re.compile(r"bolum[/-]?(\d+)", re.IGNORECASE)

_SEARCH_HEADERS = {
    "X-Requested-With": "fetch",
    "Accept": "application/json",
}


def _site_label(base_url: str) -> str:
    """``https://www.hdfilmcehennemi.ws`` -> ``hdfilmcehennemi``."""
    host = (urlparse(base_url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host.split(".")[0]


def parse_search_results(data: object, base_url: str) -> list[SiteSearchResult]:
    """Parse the JSON search payload into results on the site's own domain."""
    if not isinstance(data, dict):
        return []
    snippets = data.get("results")
    if not isinstance(snippets, list):
        return []

    label = _site_label(base_url)
    results: list[SiteSearchResult] = []
    for snippet in snippets:
        if not isinstance(snippet, str):
            continue
        soup = parse_html(snippet)
        link = extract_attr(soup, "a[href]", "href")
        if not link:
            continue
        url = urljoin(base_url + "/", link)
        if label not in (urlparse(url).hostname or ""):
            continue

        title = extract_text(soup, "h4.title") or extract_attr(soup, "img[alt]", "alt")
        kind = extract_text(soup, ".type").lower()
        results.append(
            SiteSearchResult(
                url=url,
                title=title,
                year=leading_year(extract_text(soup, ".year")),
                content_type="series" if kind == "dizi" else "movie",
                slug=urlparse(url).path.replace("/", ""),
            )
        )
    return results


def parse_episode_links(html: str, base_url: str) -> list[EpisodeRef]:
    """Collect episode links, primary naming scheme first, then loose tokens."""
    links = [link["href"] for link in extract_links(parse_html(html), base_url=base_url)]

    episodes: list[EpisodeRef] = []
    for href in links:
        m = _EPISODE_RE.search(href)
        if m:
            episodes.append(EpisodeRef(href, int(m.group(1)), int(m.group(2))))

    if not episodes:
        for href in links:
            season = _SEASON_TOKEN_RE.search(href)
            episode = _EPISODE_TOKEN_RE.search(href)
            if season and episode:
                episodes.append(
                    EpisodeRef(href, int(season.group(1)), int(episode.group(1)))
                )

    seen: set[tuple[int, int]] = set()
    unique: list[EpisodeRef] = []
    for ep in episodes:
        key = (ep.season, ep.episode)
        if key not in seen:
            seen.add(key)
            unique.append(ep)
    return unique


class ContentMatcher:
    """Maps ``(type, imdb id, season, episode)`` to a :class:`ContentMatch`.

    Args:
        fetcher: Resilient fetcher for site requests.
        base_url: Site base URL.
        search_cache: Short-TTL cache of raw search results.
        episode_cache: Short-TTL cache of episode lists.
        metadata: Title metadata source (title-fallback strategy only).
        strategy: ``imdb_only`` or ``title_fallback``.
        threshold: Minimum title score accepted by the fallback.
    """

    def __init__(
        self,
        fetcher: ResilientFetcher,
        *,
        base_url: str,
        search_cache: CachePort,
        episode_cache: CachePort,
        metadata: MetadataPort | None = None,
        strategy: str = "imdb_only",
        threshold: float = DEFAULT_THRESHOLD,
    ) -> None:
        self._fetcher = fetcher
        self._base_url = base_url.rstrip("/")
        self._search_cache = search_cache
        self._episode_cache = episode_cache
        self._metadata = metadata
        self._strategy = strategy
        self._threshold = threshold

    async def search(self, query: str) -> list[SiteSearchResult]:
        """Query the AJAX search.  Failures are logged and yield ``[]``."""
        cache_key = f"search:{query}"
        cached = await self._search_cache.get(cache_key)
        if cached is not None:
            return cached

        url = f"{self._base_url}/search/?q={quote(query)}"
        log.info("site_search", query=query)
        try:
            resp = await self._fetcher.fetch(url, headers=_SEARCH_HEADERS)
            results = parse_search_results(resp.json(), self._base_url)
        except (PipelineError, ValueError) as exc:
            log.warning("site_search_failed", query=query, error=str(exc))
            return []

        log.info("site_search_results", query=query, count=len(results))
        # an empty answer is never cached so a later request searches afresh
        if results:
            await self._search_cache.set(cache_key, results)
        return results

    async def list_episodes(self, series_url: str) -> list[EpisodeRef]:
        cache_key = f"episodes:{series_url}"
        cached = await self._episode_cache.get(cache_key)
        if cached is not None:
            return cached

        html = await self._fetcher.fetch_text(series_url)
        episodes = parse_episode_links(html, self._base_url)
        log.debug("episodes_found", url=series_url, count=len(episodes))
        if episodes:
            await self._episode_cache.set(cache_key, episodes)
        return episodes

    async def find_episode_url(
        self, series_url: str, season: int, episode: int
    ) -> str | None:
        for ep in await self.list_episodes(series_url):
            if ep.season == season and ep.episode == episode:
                log.debug("episode_found", season=season, episode=episode, url=ep.url)
                return ep.url
        log.warning("episode_not_found", url=series_url, season=season, episode=episode)
        return None

    async def find_content(
        self,
        content_type: ContentType,
        external_id: str,
        season: int | str | None = None,
        episode: int | str | None = None,
    ) -> ContentMatch:
        """Resolve the page to scrape.

        Raises:
            ValidationError: malformed id, type, season or episode (no I/O done).
            ContentNotFoundError: no match, or the episode is missing.
        """
        validate_request(content_type, external_id, season, episode)
        season_no = int(season) if season is not None else None
        episode_no = int(episode) if episode is not None else None

        log.info(
            "find_content",
            type=content_type,
            imdb_id=external_id,
            season=season_no,
            episode=episode_no,
        )

        results = await self.search(external_id)
        match = results[0] if results else None
        if match is not None:
            log.info("match_by_id", title=match.title, url=match.url)
        elif self._strategy == "title_fallback":
            match = await self._match_by_title(content_type, external_id)

        if match is None:
            log.warning("content_not_found", imdb_id=external_id)
            raise ContentNotFoundError(
                external_id, {"type": content_type, "reason": "not_found_on_site"}
            )

        if content_type == "series" and season_no is not None and episode_no is not None:
            episode_url = await self.find_episode_url(match.url, season_no, episode_no)
            label = f"{match.title} S{season_no}E{episode_no}"
            if episode_url is None:
                raise ContentNotFoundError(
                    label,
                    {"type": "episode", "season": season_no, "episode": episode_no},
                )
            return ContentMatch(url=episode_url, title=label, series_title=match.title)

        return ContentMatch(url=match.url, title=match.title)

    async def _match_by_title(
        self, content_type: ContentType, external_id: str
    ) -> SiteSearchResult | None:
        if self._metadata is None:
            return None

        info = await self._metadata.get_title_info(content_type, external_id)
        if info is None:
            return None

        queries: list[str] = []
        for query in (info.title, info.original_title, significant_word(info.title)):
            if query and query not in queries:
                queries.append(query)

        for query in queries:
            results = await self.search(query)
            same_type = [r for r in results if r.content_type == content_type]
            best = pick_best_match(same_type or results, info, self._threshold)
            if best is not None:
                log.info("match_by_title", query=query, title=best.title, url=best.url)
                return best
        return None
