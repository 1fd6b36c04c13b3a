"""In-memory cache adapter - process-lifetime, TTL-expired entries."""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

import structlog

log = structlog.get_logger(__name__)


class MemoryCacheAdapter:
    """Async ``CachePort`` backed by a plain dict.

    - Entries are ``(value, expires_at)`` tuples; expiry is checked lazily
      on read and swept on write.
    - *clock* defaults to :func:`time.monotonic` and can be replaced in
      tests to step time forward deterministically.
    - Implements context manager (`async with`).

    Args:
        ttl_seconds: Default TTL for `set()` without explicit value.
        max_entries: Soft cap; the oldest entries are dropped beyond it.
        clock: Monotonic time source in seconds.
    """

    def __init__(
        self,
        ttl_seconds: int = 600,
        max_entries: int = 2048,
        *,
        name: str = "memory",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = ttl_seconds
        self.name = name
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    # --- Context Manager ---
    async def __aenter__(self) -> MemoryCacheAdapter:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self._entries.clear()

    # --- CachePort implementation ---
    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            log.debug("cache_get", cache=self.name, key=key, hit=False)
            return None

        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            log.debug("cache_expired", cache=self.name, key=key)
            return None

        log.debug("cache_get", cache=self.name, key=key, hit=True)
        return value

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        expire_time = ttl if ttl is not None else self.default_ttl
        if expire_time <= 0:
            return

        self._sweep()
        self._entries[key] = (value, self._clock() + expire_time)
        log.debug("cache_set", cache=self.name, key=key, ttl=expire_time)

    async def delete(self, key: str) -> bool:
        deleted = self._entries.pop(key, None) is not None
        log.debug("cache_delete", cache=self.name, key=key, deleted=deleted)
        return deleted

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None

    async def clear(self) -> None:
        self._entries.clear()
        log.info("cache_cleared", cache=self.name)

    def __len__(self) -> int:
        return len(self._entries)

    def _sweep(self) -> None:
        """Drop expired entries, then the oldest ones beyond *max_entries*."""
        now = self._clock()
        expired = [k for k, (_, exp) in self._entries.items() if now >= exp]
        for key in expired:
            del self._entries[key]

        overflow = len(self._entries) - self._max_entries + 1
        if overflow > 0:
            # dicts keep insertion order: the first keys are the oldest
            for key in list(self._entries)[:overflow]:
                del self._entries[key]
