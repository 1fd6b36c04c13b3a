"""Parsing of external proxy list feeds.

Two feed shapes are understood:

- plain text, one ``ip:port`` per line (optionally ``scheme://ip:port``)
- JSON, either a list or an object wrapping a list under ``data`` /
  ``proxies``; records are ``"ip:port"`` strings, ``{"ip", "port"}`` or
  ``{"proxy": "ip:port"}`` objects.

Every parsed proxy is tagged with the protocol of its feed.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterable

from cehennemarr.domain.entities.proxy import Proxy, ProxyProtocol

_ADDRESS_RE = re.compile(r"^\d{1,3}(?:\.\d{1,3}){3}:\d{1,5}$")
_SCHEME_RE = re.compile(r"^[a-z0-9]+://", re.IGNORECASE)


def normalize_address(raw: str) -> str | None:
    """Return ``ip:port`` from *raw*, or ``None`` if it is not one."""
    candidate = _SCHEME_RE.sub("", raw.strip()).rstrip("/")
    if _ADDRESS_RE.match(candidate):
        return candidate
    return None


def parse_text_feed(text: str, protocol: ProxyProtocol) -> list[Proxy]:
    proxies: list[Proxy] = []
    for line in text.splitlines():
        address = normalize_address(line)
        if address:
            proxies.append(Proxy(address=address, protocol=protocol))
    return proxies


def _record_address(record: Any) -> str | None:
    if isinstance(record, str):
        return normalize_address(record)
    if not isinstance(record, dict):
        return None
    if isinstance(record.get("proxy"), str):
        return normalize_address(record["proxy"])
    ip = record.get("ip") or record.get("host")
    port = record.get("port")
    if ip and port:
        return normalize_address(f"{ip}:{port}")
    return None


def parse_json_feed(text: str, protocol: ProxyProtocol) -> list[Proxy]:
    """Parse a JSON feed body.

    Raises:
        ValueError: body is not valid JSON.
    """
    data = json.loads(text)
    if isinstance(data, dict):
        data = data.get("data") or data.get("proxies") or []
    if not isinstance(data, list):
        return []

    proxies: list[Proxy] = []
    for record in data:
        address = _record_address(record)
        if address:
            proxies.append(Proxy(address=address, protocol=protocol))
    return proxies


def merge_candidates(groups: Iterable[list[Proxy]]) -> list[Proxy]:
    """Concatenate feed results, deduplicating by address (first tag wins)."""
    seen: set[str] = set()
    merged: list[Proxy] = []
    for group in groups:
        for proxy in group:
            if proxy.address in seen:
                continue
            seen.add(proxy.address)
            merged.append(proxy)
    return merged
