"""Proxy pool: candidate feeds, live validation and a known-good set.

Two independent caches:

- **candidates** – merged, deduplicated feed contents, refreshed after
  ``candidate_ttl_seconds``.  A failed refresh keeps the stale list.
- **known-good** – proxies that passed a live test against the protected
  site, reused without re-testing until ``known_good_ttl_seconds`` or
  until :meth:`ProxyPool.mark_bad` evicts them.  Refreshing candidates
  never touches this set.

Discovery tests shuffled candidates in concurrent batches; the first
passing proxy wins and the rest of the batch is cancelled.
"""

from __future__ import annotations

import asyncio
import random
import time
from contextlib import nullcontext
from typing import Any, AsyncContextManager, Callable

import httpx
import structlog

from cehennemarr.domain.entities.proxy import Proxy
from cehennemarr.infrastructure.common.cloudflare import contains_challenge_markers
from cehennemarr.infrastructure.concurrency import AdmissionLimiter
from cehennemarr.infrastructure.config.schema import ProxyConfig, ProxyFeedConfig

from .feeds import merge_candidates, parse_json_feed, parse_text_feed

log = structlog.get_logger(__name__)

_FEED_TIMEOUT = 10.0

ClientFactory = Callable[[Proxy, float], httpx.AsyncClient]


def _default_client_factory(proxy: Proxy, timeout: float) -> httpx.AsyncClient:
    # socks4/socks5 URLs need the httpx[socks] extra
    return httpx.AsyncClient(
        proxy=proxy.url,
        timeout=timeout,
        follow_redirects=True,
    )


class ProxyPool:
    """Implements ``ProxyPoolPort``.

    Args:
        http_client: Direct client used to download the feeds.
        config: Pool settings (mode, feeds, TTLs, test limits).
        test_url: Page on the protected site used to validate proxies.
        user_agent: Sent with validation requests.
        limiter: Shared admission limiter; feed downloads and proxy tests
            each hold one slot while their request is in flight.
        client_factory: Builds a client routed through a proxy
            (tests inject ``httpx.MockTransport`` clients here).
        clock: Monotonic time source.
        sleep: Pause between discovery rounds.
        rng: Randomness for the candidate shuffle.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        config: ProxyConfig,
        *,
        test_url: str,
        user_agent: str = "",
        limiter: AdmissionLimiter | None = None,
        client_factory: ClientFactory = _default_client_factory,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Any] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._http = http_client
        self._config = config
        self._test_url = config.test_url or test_url
        self._user_agent = user_agent
        self._limiter = limiter
        self._client_factory = client_factory
        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.Random()

        self._candidates: list[Proxy] = []
        self._candidates_expire_at = 0.0
        self._known_good: dict[str, tuple[Proxy, float]] = {}
        self._bad: dict[str, float] = {}
        self._discovery_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # ProxyPoolPort
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._config.mode != "never"

    async def get_working_proxy(self) -> Proxy | None:
        """First known-good proxy, else discover one (bounded rounds)."""
        if not self.enabled:
            log.debug("proxy_disabled")
            return None

        cached = self._first_known_good()
        if cached is not None:
            log.debug("proxy_known_good_hit", proxy=cached.address)
            return cached

        async with self._discovery_lock:
            # another caller may have discovered one while we waited
            cached = self._first_known_good()
            if cached is not None:
                return cached
            return await self._discover()

    def mark_bad(self, proxy: Proxy) -> None:
        """Evict *proxy* and keep it out of discovery for a while."""
        removed = self._known_good.pop(proxy.address, None) is not None
        self._bad[proxy.address] = self._clock() + self._config.candidate_ttl_seconds
        log.debug("proxy_marked_bad", proxy=proxy.address, was_known_good=removed)

    def build_client(self, proxy: Proxy) -> httpx.AsyncClient:
        return self._client_factory(proxy, self._config.test_timeout_seconds)

    # ------------------------------------------------------------------
    # Candidates
    # ------------------------------------------------------------------

    async def refresh_candidates(self, *, force: bool = False) -> list[Proxy]:
        """Return the candidate list, re-downloading feeds once it is stale."""
        now = self._clock()
        if not force and self._candidates and now < self._candidates_expire_at:
            log.debug("proxy_candidates_cached", count=len(self._candidates))
            return self._candidates

        feeds = self._config.feeds
        if not feeds:
            log.warning("proxy_no_feeds_configured")
            return self._candidates

        groups = await asyncio.gather(*(self._fetch_feed(feed) for feed in feeds))
        merged = merge_candidates(groups)

        if not merged:
            log.warning("proxy_feeds_empty", stale_count=len(self._candidates))
            return self._candidates

        self._candidates = merged
        self._candidates_expire_at = now + self._config.candidate_ttl_seconds
        log.info(
            "proxy_candidates_refreshed",
            count=len(merged),
            feeds=len(feeds),
            known_good=len(self._known_good),
        )
        return self._candidates

    async def _fetch_feed(self, feed: ProxyFeedConfig) -> list[Proxy]:
        try:
            async with self._admit():
                resp = await self._http.get(feed.url, timeout=_FEED_TIMEOUT)
            resp.raise_for_status()
            if feed.format == "json":
                proxies = parse_json_feed(resp.text, feed.protocol)
            else:
                proxies = parse_text_feed(resp.text, feed.protocol)
        except (httpx.HTTPError, ValueError) as exc:
            log.warning("proxy_feed_failed", url=feed.url, error=str(exc))
            return []

        log.debug(
            "proxy_feed_fetched",
            url=feed.url,
            protocol=feed.protocol.value,
            count=len(proxies),
        )
        return proxies

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def _discover(self) -> Proxy | None:
        rounds = max(1, self._config.discovery_rounds)
        for round_no in range(1, rounds + 1):
            candidates = await self.refresh_candidates()
            usable = [p for p in candidates if not self._is_bad(p.address)]
            self._rng.shuffle(usable)
            to_test = usable[: self._config.max_to_test]

            if to_test:
                log.info("proxy_discovery_round", round=round_no, testing=len(to_test))
                winner = await self._race(to_test)
                if winner is not None:
                    self._promote(winner)
                    return winner
            else:
                log.warning("proxy_no_candidates", round=round_no)

            if round_no < rounds:
                await self._sleep(self._config.round_pause_seconds)

        log.warning("proxy_discovery_failed", rounds=rounds)
        return None

    async def _race(self, proxies: list[Proxy]) -> Proxy | None:
        """Test *proxies* batch by batch; the first pass wins."""
        size = self._config.test_batch_size
        for start in range(0, len(proxies), size):
            batch = proxies[start : start + size]
            tasks = {
                asyncio.create_task(self.test_proxy(proxy)): proxy for proxy in batch
            }
            pending: set[asyncio.Task[bool]] = set(tasks)
            try:
                while pending:
                    done, pending = await asyncio.wait(
                        pending, return_when=asyncio.FIRST_COMPLETED
                    )
                    for task in done:
                        if task.result():
                            return tasks[task]
            finally:
                for task in pending:
                    task.cancel()
                if pending:
                    await asyncio.gather(*pending, return_exceptions=True)
        return None

    async def test_proxy(self, proxy: Proxy) -> bool:
        """Live check: 200, no challenge page, body above the size floor."""
        headers = {"User-Agent": self._user_agent} if self._user_agent else None
        try:
            async with self._admit(), self.build_client(proxy) as client:
                resp = await client.get(
                    self._test_url,
                    headers=headers,
                    timeout=self._config.test_timeout_seconds,
                )
        except httpx.HTTPError as exc:
            log.debug("proxy_test_error", proxy=proxy.address, error=str(exc))
            return False

        body = resp.text
        passed = (
            resp.status_code == 200
            and not contains_challenge_markers(body)
            and len(body) > self._config.min_content_length
        )
        log.debug(
            "proxy_test_result",
            proxy=proxy.address,
            status=resp.status_code,
            length=len(body),
            passed=passed,
        )
        return passed

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _admit(self) -> AsyncContextManager[None]:
        if self._limiter is None:
            return nullcontext()
        return self._limiter.slot()

    def _promote(self, proxy: Proxy) -> None:
        expires_at = self._clock() + self._config.known_good_ttl_seconds
        self._known_good[proxy.address] = (proxy, expires_at)
        self._bad.pop(proxy.address, None)
        log.info("proxy_promoted", proxy=proxy.address, protocol=proxy.protocol.value)

    def _first_known_good(self) -> Proxy | None:
        now = self._clock()
        for address, (proxy, expires_at) in list(self._known_good.items()):
            if now < expires_at:
                return proxy
            del self._known_good[address]
            log.debug("proxy_known_good_expired", proxy=address)
        return None

    def _is_bad(self, address: str) -> bool:
        expires_at = self._bad.get(address)
        if expires_at is None:
            return False
        if self._clock() >= expires_at:
            del self._bad[address]
            return False
        return True

    def clear(self) -> None:
        self._candidates = []
        self._candidates_expire_at = 0.0
        self._known_good.clear()
        self._bad.clear()
        log.info("proxy_pool_cleared")

    def snapshot(self) -> dict[str, Any]:
        return {
            "mode": self._config.mode,
            "candidates": len(self._candidates),
            "known_good": [p.address for p, _ in self._known_good.values()],
            "bad": len(self._bad),
        }
