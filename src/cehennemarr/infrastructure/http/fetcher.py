"""Resilient HTTP GET with retry, backoff and block-triggered proxy fallback.

Two phases per call:

1. **Direct**: up to *max_retries* attempts with exponential backoff.
   A 403 or a challenge page from a protected domain is the *blocked*
   signal: the direct phase is aborted at once instead of retried.
2. **Proxy**: entered when blocked (or always, in ``mode="always"``),
   only for protected domains.  Rotates through distinct proxies from
   the pool, each with its own bounded retry loop; failing proxies are
   marked bad.

Every attempt passes through the shared :class:`AdmissionLimiter`.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Literal
from urllib.parse import urlparse

import httpx
import structlog

from cehennemarr.domain.entities.proxy import Proxy
from cehennemarr.domain.errors import FetchTimeoutError, NetworkError
from cehennemarr.domain.ports.proxy_pool import ProxyPoolPort
from cehennemarr.infrastructure.common.cloudflare import is_blocked_response
from cehennemarr.infrastructure.concurrency import AdmissionLimiter

log = structlog.get_logger(__name__)

ProxyMode = Literal["auto", "always", "never"]

# 4xx answers worth another attempt; every other 4xx is final.
_RETRYABLE_CLIENT_ERRORS = frozenset({408, 425, 429})


@dataclass(frozen=True)
class FetchResponse:
    """A fully-read response body plus the bits callers need."""

    url: str
    status_code: int
    text: str
    headers: dict[str, str] = field(default_factory=dict)
    via_proxy: str | None = None

    def json(self) -> Any:
        return json.loads(self.text)


class _Outcome:
    """Result of one retry loop (direct or through one proxy)."""

    __slots__ = ("response", "error", "blocked")

    def __init__(
        self,
        response: FetchResponse | None = None,
        error: NetworkError | None = None,
        blocked: bool = False,
    ) -> None:
        self.response = response
        self.error = error
        self.blocked = blocked


def _is_specific(error: NetworkError | None) -> bool:
    return isinstance(error, FetchTimeoutError) or (
        error is not None and error.status_code is not None
    )


def _prefer(current: NetworkError | None, new: NetworkError | None) -> NetworkError | None:
    """Keep the most specific error seen so far (timeout/status > generic)."""
    if new is None:
        return current
    if current is None or _is_specific(new) or not _is_specific(current):
        return new
    return current


class ResilientFetcher:
    """Fetch pages from the target site despite flaky links and blocking.

    Args:
        http_client: Shared client for direct requests.
        limiter: Process-wide admission limiter.
        proxy_pool: Pool used in the proxy phase (``None`` disables it).
        protected_domains: Hostnames (suffix match) behind the block layer.
        proxy_mode: ``auto`` | ``always`` | ``never``.
        sleep: Injectable sleep (tests pass a no-op).
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        limiter: AdmissionLimiter,
        proxy_pool: ProxyPoolPort | None = None,
        protected_domains: list[str] | tuple[str, ...] = (),
        proxy_mode: ProxyMode = "auto",
        timeout: float = 15.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        max_proxy_attempts: int = 5,
        no_proxy_pause: float = 2.0,
        user_agent: str = "",
        accept_language: str = "",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._http = http_client
        self._limiter = limiter
        self._pool = proxy_pool
        self._protected = tuple(d.lower() for d in protected_domains)
        self._proxy_mode = proxy_mode
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._max_proxy_attempts = max_proxy_attempts
        self._no_proxy_pause = no_proxy_pause
        self._sleep = sleep

        self._default_headers: dict[str, str] = {
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        }
        if user_agent:
            self._default_headers["User-Agent"] = user_agent
        if accept_language:
            self._default_headers["Accept-Language"] = accept_language

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def is_protected(self, url: str) -> bool:
        """True if *url* targets a domain behind the anti-bot layer."""
        host = (urlparse(url).hostname or "").lower()
        return any(host == d or host.endswith(f".{d}") for d in self._protected)

    async def fetch(
        self,
        url: str,
        *,
        referer: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> FetchResponse:
        """GET *url* through the direct phase, then the proxy phase if blocked.

        Raises:
            FetchTimeoutError: the most specific failure was a timeout.
            NetworkError: non-2xx, transport failure, or exhausted proxies.
        """
        request_headers = self._build_headers(referer, headers)
        protected = self.is_protected(url)
        use_proxy = self._proxy_mode == "always" and protected
        last_error: NetworkError | None = None

        if not use_proxy:
            outcome = await self._attempt_loop(self._http, url, request_headers, protected)
            if outcome.response is not None:
                return outcome.response
            last_error = outcome.error
            use_proxy = outcome.blocked

        if use_proxy and protected:
            response, proxy_error = await self._proxy_phase(url, request_headers)
            if response is not None:
                return response
            last_error = _prefer(last_error, proxy_error)
            if _is_specific(last_error):
                raise last_error  # type: ignore[misc]
            raise NetworkError(
                f"All {self._max_proxy_attempts} proxy attempts failed", url
            )

        raise last_error or NetworkError("All attempts failed", url)

    async def fetch_text(self, url: str, *, referer: str | None = None) -> str:
        """Convenience wrapper returning only the body."""
        return (await self.fetch(url, referer=referer)).text

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _attempt_loop(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: dict[str, str],
        protected: bool,
        proxy: Proxy | None = None,
    ) -> _Outcome:
        """Bounded retry loop against one route (direct or one proxy)."""
        last_error: NetworkError | None = None
        route = proxy.address if proxy else "direct"

        for attempt in range(1, self._max_retries + 1):
            log.debug(
                "fetch_attempt",
                url=url,
                route=route,
                attempt=attempt,
                max_retries=self._max_retries,
            )
            try:
                response = await self._send(client, url, headers, proxy)
            except asyncio.TimeoutError:
                last_error = FetchTimeoutError(url, self._timeout)
                log.warning("fetch_timeout", url=url, route=route, attempt=attempt)
            except httpx.TimeoutException:
                last_error = FetchTimeoutError(url, self._timeout)
                log.warning("fetch_timeout", url=url, route=route, attempt=attempt)
            except httpx.HTTPError as exc:
                last_error = NetworkError(str(exc) or type(exc).__name__, url)
                log.warning(
                    "fetch_transport_error",
                    url=url,
                    route=route,
                    attempt=attempt,
                    error=str(exc),
                )
            else:
                if protected and is_blocked_response(response.status_code, response.text):
                    log.warning(
                        "fetch_blocked",
                        url=url,
                        route=route,
                        status=response.status_code,
                    )
                    return _Outcome(
                        error=NetworkError(
                            "Upstream blocked the request",
                            url,
                            response.status_code,
                        ),
                        blocked=True,
                    )

                if response.status_code < 400:
                    if proxy is not None:
                        log.info("fetch_via_proxy_success", url=url, proxy=proxy.address)
                    return _Outcome(response=response)

                last_error = NetworkError(
                    f"HTTP {response.status_code}", url, response.status_code
                )
                log.warning(
                    "fetch_http_error",
                    url=url,
                    route=route,
                    status=response.status_code,
                    attempt=attempt,
                )
                if (
                    response.status_code < 500
                    and response.status_code not in _RETRYABLE_CLIENT_ERRORS
                ):
                    break

            if attempt < self._max_retries:
                delay = self._retry_delay * (2 ** (attempt - 1))
                log.debug("fetch_retry_backoff", url=url, route=route, delay=delay)
                await self._sleep(delay)

        return _Outcome(error=last_error)

    async def _proxy_phase(
        self, url: str, headers: dict[str, str]
    ) -> tuple[FetchResponse | None, NetworkError | None]:
        """Rotate through distinct proxies until one succeeds."""
        pool = self._pool
        if pool is None or not pool.enabled or self._proxy_mode == "never":
            log.warning("proxy_fallback_unavailable", url=url, mode=self._proxy_mode)
            return None, None

        log.info("proxy_fallback_activated", url=url)
        tried: set[str] = set()
        last_error: NetworkError | None = None

        for proxy_attempt in range(1, self._max_proxy_attempts + 1):
            proxy = await pool.get_working_proxy()
            if proxy is None:
                log.warning(
                    "no_working_proxy",
                    attempt=proxy_attempt,
                    max_attempts=self._max_proxy_attempts,
                )
                if proxy_attempt < self._max_proxy_attempts:
                    await self._sleep(self._no_proxy_pause)
                continue

            if proxy.address in tried:
                log.debug("proxy_already_tried", proxy=proxy.address)
                pool.mark_bad(proxy)
                continue

            tried.add(proxy.address)
            log.info(
                "proxy_attempt",
                proxy=proxy.address,
                protocol=proxy.protocol.value,
                attempt=proxy_attempt,
                max_attempts=self._max_proxy_attempts,
            )

            client = pool.build_client(proxy)
            try:
                outcome = await self._attempt_loop(client, url, headers, True, proxy)
            finally:
                await client.aclose()

            if outcome.response is not None:
                return outcome.response, None

            if not outcome.blocked:
                last_error = _prefer(last_error, outcome.error)
            log.warning("proxy_failed", proxy=proxy.address, blocked=outcome.blocked)
            pool.mark_bad(proxy)

        return None, last_error

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _send(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: dict[str, str],
        proxy: Proxy | None,
    ) -> FetchResponse:
        async with self._limiter.slot():
            resp = await asyncio.wait_for(
                client.get(
                    url,
                    headers=headers,
                    timeout=self._timeout,
                    follow_redirects=True,
                ),
                timeout=self._timeout,
            )
        return FetchResponse(
            url=str(resp.url),
            status_code=resp.status_code,
            text=resp.text,
            headers=dict(resp.headers),
            via_proxy=proxy.address if proxy else None,
        )

    def _build_headers(
        self, referer: str | None, extra: dict[str, str] | None
    ) -> dict[str, str]:
        headers = dict(self._default_headers)
        if referer:
            headers["Referer"] = referer
        if extra:
            headers.update(extra)
        return headers
