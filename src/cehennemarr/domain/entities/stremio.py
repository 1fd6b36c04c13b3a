"""Domain entities for the Stremio stream request surface."""

from __future__ import annotations

from dataclasses import dataclass

from cehennemarr.domain.entities.content import ContentType


@dataclass(frozen=True)
class StremioStreamRequest:
    """Parsed Stremio stream request.

    Created from the id path segment: ``tt1234567`` (movie) or
    ``tt1234567:1:5`` (series, season 1, episode 5).
    """

    imdb_id: str
    content_type: ContentType
    season: int | None = None
    episode: int | None = None

    @property
    def cache_key(self) -> str:
        if self.season is not None and self.episode is not None:
            return f"{self.content_type}:{self.imdb_id}:{self.season}:{self.episode}"
        return f"{self.content_type}:{self.imdb_id}"
