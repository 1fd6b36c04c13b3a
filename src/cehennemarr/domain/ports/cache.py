"""Port for the short-lived caches in front of site and metadata lookups.

Three caches share this shape: raw search results, episode lists and
metadata answers.  The use case may also hold a success cache keyed by
``"<type>:<id>"``.  Values are plain Python objects.  A miss and an expired
entry both read as ``None``, so callers must not store ``None`` themselves.
"""

from __future__ import annotations

from typing import Any, Protocol


class CachePort(Protocol):
    """Async TTL cache; usable as ``async with cache: ...``."""

    async def get(self, key: str) -> Any:
        """Cached value, or ``None`` when missing or expired."""
        ...

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        """Store *value*; *ttl* in seconds overrides the cache default."""
        ...

    async def delete(self, key: str) -> bool: ...

    async def exists(self, key: str) -> bool: ...

    async def clear(self) -> None: ...

    async def aclose(self) -> None:
        """Drop all entries at shutdown."""
        ...

    async def __aenter__(self) -> CachePort: ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None: ...
