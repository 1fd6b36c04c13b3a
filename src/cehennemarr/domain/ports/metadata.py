"""Port for the external title metadata service."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from cehennemarr.domain.entities.content import ContentType, TitleInfo


@runtime_checkable
class MetadataPort(Protocol):
    """Async lookup of canonical title/year for an external id."""

    async def get_title_info(
        self, content_type: ContentType, imdb_id: str
    ) -> TitleInfo | None:
        """Return title metadata, or None if the service has no entry."""
        ...
