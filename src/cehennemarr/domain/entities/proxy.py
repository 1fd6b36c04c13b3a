"""Proxy value objects used by the proxy pool and the fetcher."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ProxyProtocol(str, Enum):
    """Transport protocol a proxy speaks."""

    HTTP = "http"
    SOCKS4 = "socks4"
    SOCKS5 = "socks5"


@dataclass(frozen=True)
class Proxy:
    """A candidate proxy (``ip:port``) tagged with its protocol.

    Equality and hashing include the protocol; the pool deduplicates
    by ``address`` explicitly.
    """

    address: str
    protocol: ProxyProtocol = ProxyProtocol.HTTP

    @property
    def url(self) -> str:
        """Proxy URL understood by httpx, e.g. ``socks5://1.2.3.4:1080``."""
        return f"{self.protocol.value}://{self.address}"
