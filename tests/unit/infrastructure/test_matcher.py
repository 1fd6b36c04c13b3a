"""Tests for the content matcher (search parsing, episodes, strategies)."""

from __future__ import annotations

import json
from urllib.parse import quote

import pytest

from cehennemarr.domain.entities.content import TitleInfo
from cehennemarr.domain.errors import ContentNotFoundError, NetworkError, ValidationError
from cehennemarr.infrastructure.cache.memory_adapter import MemoryCacheAdapter
from cehennemarr.infrastructure.http.fetcher import FetchResponse
from cehennemarr.infrastructure.site.matcher import (
    ContentMatcher,
    parse_episode_links,
    parse_search_results,
)

_BASE = "https://www.hdfilmcehennemi.ws"


def _snippet(path: str, title: str, year: str = "", kind: str = "Film") -> str:
    return (
        f'<a href="{path}"><img alt="{title}" src="/p.jpg">'
        f'<h4 class="title">{title}</h4>'
        f'<span class="year">{year}</span><span class="type">{kind}</span></a>'
    )


_INCEPTION = json.dumps({"results": [_snippet("/inception-2010/", "Inception", "2010")]})
_DARK = json.dumps({"results": [_snippet("/dizi/dark/", "Dark", "2017", "Dizi")]})
_EMPTY = json.dumps({"results": []})

_DARK_PAGE = """
<div class="seasons">
  <a href="/dizi/dark/1-sezon-1-bolum/">1. Bölüm</a>
  <a href="/dizi/dark/1-sezon-2-bolum/">2. Bölüm</a>
  <a href="/dizi/dark/1-sezon-2-bolum/">2. Bölüm (tekrar)</a>
  <a href="/dizi/dark/2-sezon-1-bolum/">S2 1. Bölüm</a>
  <a href="/iletisim/">İletişim</a>
</div>
"""

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _FakeFetcher:
    """Serves canned bodies by URL and records every request."""

    def __init__(self, pages: dict[str, str]) -> None:
        self.pages = pages
        self.calls: list[str] = []

    async def fetch(self, url, *, referer=None, headers=None) -> FetchResponse:
        self.calls.append(url)
        if url not in self.pages:
            raise NetworkError("HTTP 404", url, 404)
        return FetchResponse(url=url, status_code=200, text=self.pages[url])

    async def fetch_text(self, url, *, referer=None) -> str:
        return (await self.fetch(url, referer=referer)).text


class _FakeMetadata:
    def __init__(self, info: TitleInfo | None) -> None:
        self.info = info
        self.calls = 0

    async def get_title_info(self, content_type, imdb_id) -> TitleInfo | None:
        self.calls += 1
        return self.info


def _search_url(query: str) -> str:
    return f"{_BASE}/search/?q={quote(query)}"


def _make_matcher(
    pages: dict[str, str],
    *,
    metadata: _FakeMetadata | None = None,
    strategy: str = "imdb_only",
) -> tuple[ContentMatcher, _FakeFetcher]:
    fetcher = _FakeFetcher(pages)
    matcher = ContentMatcher(
        fetcher,  # type: ignore[arg-type]
        base_url=_BASE,
        search_cache=MemoryCacheAdapter(600, name="search"),
        episode_cache=MemoryCacheAdapter(600, name="episodes"),
        metadata=metadata,
        strategy=strategy,
    )
    return matcher, fetcher


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParseSearchResults:
    def test_parses_snippet(self) -> None:
        results = parse_search_results(json.loads(_DARK), _BASE)
        assert len(results) == 1
        r = results[0]
        assert r.url == f"{_BASE}/dizi/dark/"
        assert r.title == "Dark"
        assert r.year == 2017
        assert r.content_type == "series"
        assert r.slug == "dizidark"

    def test_foreign_links_dropped(self) -> None:
        data = {
            "results": [
                _snippet("https://ads.example.com/x", "Ad"),
                _snippet("/inception-2010/", "Inception"),
            ]
        }
        results = parse_search_results(data, _BASE)
        assert [r.title for r in results] == ["Inception"]

    def test_title_falls_back_to_image_alt(self) -> None:
        snippet = '<a href="/x/"><img alt="Başlangıç"></a>'
        results = parse_search_results({"results": [snippet]}, _BASE)
        assert results[0].title == "Başlangıç"
        assert results[0].content_type == "movie"
        assert results[0].year is None

    @pytest.mark.parametrize("data", [None, [], {"results": "x"}, {"results": [1, "<p>no link</p>"]}])
    def test_unexpected_payloads(self, data: object) -> None:
        assert parse_search_results(data, _BASE) == []


class TestParseEpisodeLinks:
    def test_primary_pattern_deduped(self) -> None:
        episodes = parse_episode_links(_DARK_PAGE, _BASE)
        assert [(e.season, e.episode) for e in episodes] == [(1, 1), (1, 2), (2, 1)]
        assert episodes[1].url == f"{_BASE}/dizi/dark/1-sezon-2-bolum/"

    def test_loose_tokens_when_primary_absent(self) -> None:
        html = '<a href="/dizi/x/sezon-3/bolum-7">x</a><a href="/dizi/x/">x</a>'
        episodes = parse_episode_links(html, _BASE)
        assert [(e.season, e.episode) for e in episodes] == [(3, 7)]

    def test_no_episodes(self) -> None:
        assert parse_episode_links("<p>nothing</p>", _BASE) == []


# ---------------------------------------------------------------------------
# find_content
# ---------------------------------------------------------------------------


class TestFindContentMovie:
    @pytest.mark.asyncio
    async def test_match_by_id(self) -> None:
        matcher, fetcher = _make_matcher({_search_url("tt1375666"): _INCEPTION})
        match = await matcher.find_content("movie", "tt1375666")
        assert match.url == f"{_BASE}/inception-2010/"
        assert match.title == "Inception"
        assert match.series_title is None
        assert fetcher.calls == [_search_url("tt1375666")]

    @pytest.mark.asyncio
    async def test_not_found(self) -> None:
        matcher, _ = _make_matcher({_search_url("tt9999999"): _EMPTY})
        with pytest.raises(ContentNotFoundError) as exc_info:
            await matcher.find_content("movie", "tt9999999")
        assert exc_info.value.query == "tt9999999"
        assert exc_info.value.details["reason"] == "not_found_on_site"

    @pytest.mark.asyncio
    async def test_search_failure_is_not_found(self) -> None:
        matcher, _ = _make_matcher({})
        with pytest.raises(ContentNotFoundError):
            await matcher.find_content("movie", "tt1375666")

    @pytest.mark.asyncio
    async def test_non_json_search_is_not_found(self) -> None:
        matcher, _ = _make_matcher({_search_url("tt1375666"): "<html>oops</html>"})
        with pytest.raises(ContentNotFoundError):
            await matcher.find_content("movie", "tt1375666")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("content_type", "imdb_id", "season", "episode", "field"),
        [
            ("movie", "invalid", None, None, "imdb_id"),
            ("movie", "tt123", None, None, "imdb_id"),
            ("anime", "tt1375666", None, None, "type"),
            ("series", "tt5753856", 0, 1, "season"),
            ("series", "tt5753856", 1, "abc", "episode"),
            ("series", "tt0499549", "²", "1", "season"),
        ],
    )
    async def test_validation_before_any_io(
        self,
        content_type: str,
        imdb_id: str,
        season: object,
        episode: object,
        field: str,
    ) -> None:
        matcher, fetcher = _make_matcher({})
        with pytest.raises(ValidationError) as exc_info:
            await matcher.find_content(content_type, imdb_id, season, episode)  # type: ignore[arg-type]
        assert exc_info.value.field == field
        assert fetcher.calls == []


class TestFindContentSeries:
    @pytest.mark.asyncio
    async def test_episode_match(self) -> None:
        matcher, _ = _make_matcher(
            {_search_url("tt5753856"): _DARK, f"{_BASE}/dizi/dark/": _DARK_PAGE}
        )
        match = await matcher.find_content("series", "tt5753856", 1, 2)
        assert match.url == f"{_BASE}/dizi/dark/1-sezon-2-bolum/"
        assert match.title == "Dark S1E2"
        assert match.series_title == "Dark"

    @pytest.mark.asyncio
    async def test_string_numbers_accepted(self) -> None:
        matcher, _ = _make_matcher(
            {_search_url("tt5753856"): _DARK, f"{_BASE}/dizi/dark/": _DARK_PAGE}
        )
        match = await matcher.find_content("series", "tt5753856", "2", "1")
        assert match.title == "Dark S2E1"

    @pytest.mark.asyncio
    async def test_missing_episode(self) -> None:
        matcher, _ = _make_matcher(
            {_search_url("tt5753856"): _DARK, f"{_BASE}/dizi/dark/": _DARK_PAGE}
        )
        with pytest.raises(ContentNotFoundError) as exc_info:
            await matcher.find_content("series", "tt5753856", 3, 9)
        assert exc_info.value.query == "Dark S3E9"

    @pytest.mark.asyncio
    async def test_series_page_network_error_propagates(self) -> None:
        matcher, _ = _make_matcher({_search_url("tt5753856"): _DARK})
        with pytest.raises(NetworkError):
            await matcher.find_content("series", "tt5753856", 1, 1)

    @pytest.mark.asyncio
    async def test_series_without_episode_returns_series_page(self) -> None:
        matcher, _ = _make_matcher({_search_url("tt5753856"): _DARK})
        match = await matcher.find_content("series", "tt5753856")
        assert match.url == f"{_BASE}/dizi/dark/"


# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------


class TestCaching:
    @pytest.mark.asyncio
    async def test_search_results_cached(self) -> None:
        matcher, fetcher = _make_matcher({_search_url("tt1375666"): _INCEPTION})
        await matcher.search("tt1375666")
        await matcher.search("tt1375666")
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_empty_search_not_cached(self) -> None:
        matcher, fetcher = _make_matcher({_search_url("tt9999999"): _EMPTY})
        assert await matcher.search("tt9999999") == []
        fetcher.pages[_search_url("tt9999999")] = _INCEPTION
        assert len(await matcher.search("tt9999999")) == 1
        assert len(fetcher.calls) == 2

    @pytest.mark.asyncio
    async def test_episode_list_cached(self) -> None:
        matcher, fetcher = _make_matcher({f"{_BASE}/dizi/dark/": _DARK_PAGE})
        await matcher.list_episodes(f"{_BASE}/dizi/dark/")
        await matcher.list_episodes(f"{_BASE}/dizi/dark/")
        assert len(fetcher.calls) == 1


# ---------------------------------------------------------------------------
# Title fallback
# ---------------------------------------------------------------------------


class TestTitleFallback:
    @pytest.mark.asyncio
    async def test_matches_by_title(self) -> None:
        metadata = _FakeMetadata(TitleInfo("Inception", None, 2010))
        matcher, fetcher = _make_matcher(
            {
                _search_url("tt1375666"): _EMPTY,
                _search_url("Inception"): _INCEPTION,
            },
            metadata=metadata,
            strategy="title_fallback",
        )
        match = await matcher.find_content("movie", "tt1375666")
        assert match.title == "Inception"
        assert fetcher.calls == [_search_url("tt1375666"), _search_url("Inception")]

    @pytest.mark.asyncio
    async def test_tries_original_title_then_significant_word(self) -> None:
        metadata = _FakeMetadata(TitleInfo("The Matrix", "Matrix", 1999))
        matrix = json.dumps({"results": [_snippet("/matrix-1999/", "Matrix", "1999")]})
        matcher, fetcher = _make_matcher(
            {
                _search_url("tt0133093"): _EMPTY,
                _search_url("The Matrix"): _EMPTY,
                _search_url("Matrix"): matrix,
            },
            metadata=metadata,
            strategy="title_fallback",
        )
        match = await matcher.find_content("movie", "tt0133093")
        assert match.url == f"{_BASE}/matrix-1999/"
        assert _search_url("Matrix") in fetcher.calls

    @pytest.mark.asyncio
    async def test_prefers_same_content_type(self) -> None:
        metadata = _FakeMetadata(TitleInfo("Dark", None, 2017))
        both = json.dumps(
            {
                "results": [
                    _snippet("/dark-film/", "Dark", "2017", "Film"),
                    _snippet("/dizi/dark/", "Dark", "2017", "Dizi"),
                ]
            }
        )
        matcher, _ = _make_matcher(
            {_search_url("tt5753856"): _EMPTY, _search_url("Dark"): both},
            metadata=metadata,
            strategy="title_fallback",
        )
        match = await matcher.find_content("series", "tt5753856")
        assert match.url == f"{_BASE}/dizi/dark/"

    @pytest.mark.asyncio
    async def test_low_score_rejected(self) -> None:
        metadata = _FakeMetadata(TitleInfo("Inception", None, 2010))
        other = json.dumps({"results": [_snippet("/interstellar/", "Interstellar", "2014")]})
        matcher, _ = _make_matcher(
            {
                _search_url("tt1375666"): _EMPTY,
                _search_url("Inception"): other,
                _search_url("inception"): other,
            },
            metadata=metadata,
            strategy="title_fallback",
        )
        with pytest.raises(ContentNotFoundError):
            await matcher.find_content("movie", "tt1375666")

    @pytest.mark.asyncio
    async def test_imdb_only_never_consults_metadata(self) -> None:
        metadata = _FakeMetadata(TitleInfo("Inception", None, 2010))
        matcher, _ = _make_matcher(
            {_search_url("tt1375666"): _EMPTY, _search_url("Inception"): _INCEPTION},
            metadata=metadata,
        )
        with pytest.raises(ContentNotFoundError):
            await matcher.find_content("movie", "tt1375666")
        assert metadata.calls == 0

    @pytest.mark.asyncio
    async def test_metadata_miss_is_not_found(self) -> None:
        matcher, _ = _make_matcher(
            {_search_url("tt1375666"): _EMPTY},
            metadata=_FakeMetadata(None),
            strategy="title_fallback",
        )
        with pytest.raises(ContentNotFoundError):
            await matcher.find_content("movie", "tt1375666")
