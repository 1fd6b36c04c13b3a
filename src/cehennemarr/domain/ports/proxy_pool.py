"""Port for the proxy pool consumed by the fetcher."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from cehennemarr.domain.entities.proxy import Proxy

if TYPE_CHECKING:
    import httpx


@runtime_checkable
class ProxyPoolPort(Protocol):
    """Supplies validated proxies and the httpx clients that route through them."""

    @property
    def enabled(self) -> bool:
        """False when proxy usage is disabled by configuration."""
        ...

    async def get_working_proxy(self) -> Proxy | None:
        """Return a known-good proxy, discovering one if needed."""
        ...

    def mark_bad(self, proxy: Proxy) -> None:
        """Evict *proxy* from the known-good set."""
        ...

    def build_client(self, proxy: Proxy) -> httpx.AsyncClient:
        """Build an httpx client whose transport is keyed by the proxy protocol."""
        ...
