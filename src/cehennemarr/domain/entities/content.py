"""Domain entities for content discovery on the target site.

Pure value objects without framework dependencies or I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ContentType = Literal["movie", "series"]


@dataclass(frozen=True)
class SiteSearchResult:
    """One hit from the site's AJAX search surface."""

    url: str
    title: str
    year: int | None = None
    content_type: ContentType = "movie"
    slug: str = ""


@dataclass(frozen=True)
class ContentMatch:
    """The resolved content page to scrape.

    For episodes, ``title`` carries the ``S<s>E<e>`` suffix and
    ``series_title`` the bare series name.
    """

    url: str
    title: str
    series_title: str | None = None


@dataclass(frozen=True)
class EpisodeRef:
    """An episode link discovered on a series page."""

    url: str
    season: int
    episode: int


@dataclass(frozen=True)
class TitleInfo:
    """Canonical title metadata from the external metadata service."""

    title: str
    original_title: str | None = None
    year: int | None = None
