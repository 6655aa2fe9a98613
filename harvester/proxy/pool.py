"""Proxy pool with round-robin reservation, quota windows, and failure blocking.

Proxies come from the ``HARVESTER_PROXY_LIST`` setting. Selection walks the
pool round-robin from an internal cursor, skipping proxies that are blocked
or at their per-minute/per-day quota; selecting a proxy reserves it, i.e.
increments its counters. Failures are reported back by the HTTP client and
three consecutive failures take a proxy out of rotation. A background
maintenance loop resets elapsed quota windows and lifts blocks after the
block duration.

Every read or mutation of a ``ProxyUsage`` happens under a single pool lock,
so reservation, reporting, and the maintenance sweep never interleave.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable

import httpx

from harvester.proxy.types import BLOCK_THRESHOLD, Proxy, ProxyUsage

logger = logging.getLogger(__name__)

MINUTE_SECONDS = 60
DAY_SECONDS = 86_400


class ProxyPool:
    """Owns the configured proxies and their rolling usage state.

    Args:
        proxies: Proxy configurations, in rotation order.
        enabled: When False, ``next()`` always returns None and reports are
            ignored, so callers run direct without special-casing.
        block_duration_seconds: How long a blocked proxy stays out of rotation.
        maintenance_interval_seconds: Period of the background sweep.
        check_url: URL fetched through a proxy to test it.
        check_timeout_seconds: Timeout for a single proxy test.
        clock: Monotonic time source in seconds (injectable for tests).
    """

    def __init__(
        self,
        proxies: list[Proxy] | None = None,
        *,
        enabled: bool = True,
        block_duration_seconds: float = 1800,
        maintenance_interval_seconds: float = 60,
        check_url: str = "https://api.ipify.org?format=json",
        check_timeout_seconds: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._enabled = enabled
        self._block_duration = block_duration_seconds
        self._maintenance_interval = maintenance_interval_seconds
        self._check_url = check_url
        self._check_timeout = check_timeout_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._index = 0

        now = clock()
        self._usage: list[ProxyUsage] = [
            ProxyUsage(proxy=proxy, minute_window_start=now, day_window_start=now)
            for proxy in (proxies or [])
        ]

        if enabled:
            logger.info("Proxy pool initialized with %d proxies", len(self._usage))
        else:
            logger.info("Proxy pool disabled — requests go out directly")

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def proxies(self) -> list[Proxy]:
        return [usage.proxy for usage in self._usage]

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def next(self) -> Proxy | None:
        """Reserve the next eligible proxy, round-robin.

        Returns None when the pool is disabled, empty, or every proxy is
        blocked or at quota. None means "proceed without a proxy".
        """
        if not self._enabled:
            return None

        with self._lock:
            pool_size = len(self._usage)
            for _ in range(pool_size):
                usage = self._usage[self._index]
                self._index = (self._index + 1) % pool_size

                if not usage.is_eligible():
                    continue

                usage.requests_this_minute += 1
                usage.requests_today += 1
                usage.last_used_at = self._clock()
                return usage.proxy

        if pool_size:
            logger.warning("No eligible proxy in pool of %d", pool_size)
        return None

    # ------------------------------------------------------------------
    # Health reporting
    # ------------------------------------------------------------------

    def report_success(self, proxy: Proxy) -> None:
        """Reset the proxy's consecutive failure count."""
        if not self._enabled:
            return

        with self._lock:
            usage = self._find(proxy)
            if usage is None:
                return
            usage.consecutive_failures = 0
            if usage.is_blocked:
                usage.is_blocked = False
                usage.blocked_at = None
                logger.info("Proxy %s unblocked after a successful request", proxy.label)

    def report_failure(self, proxy: Proxy) -> None:
        """Count a failure; block the proxy once it reaches the threshold."""
        if not self._enabled:
            return

        with self._lock:
            usage = self._find(proxy)
            if usage is None:
                return
            usage.consecutive_failures += 1
            if usage.consecutive_failures >= BLOCK_THRESHOLD and not usage.is_blocked:
                usage.is_blocked = True
                usage.blocked_at = self._clock()
                logger.warning(
                    "Proxy %s blocked after %d consecutive failures",
                    proxy.label,
                    usage.consecutive_failures,
                    extra={"proxy_used": proxy.label},
                )

    def _find(self, proxy: Proxy) -> ProxyUsage | None:
        for usage in self._usage:
            if usage.proxy.host == proxy.host and usage.proxy.port == proxy.port:
                return usage
        return None

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def run_maintenance(self) -> None:
        """Reset elapsed quota windows and lift expired blocks.

        A window resets only once it has fully elapsed, and its new start is
        the time of the reset, so each elapsed window resets exactly once.
        """
        with self._lock:
            now = self._clock()
            for usage in self._usage:
                if now - usage.minute_window_start >= MINUTE_SECONDS:
                    usage.requests_this_minute = 0
                    usage.minute_window_start = now

                if now - usage.day_window_start >= DAY_SECONDS:
                    usage.requests_today = 0
                    usage.day_window_start = now

                if (
                    usage.is_blocked
                    and usage.blocked_at is not None
                    and now - usage.blocked_at >= self._block_duration
                ):
                    usage.is_blocked = False
                    usage.blocked_at = None
                    usage.consecutive_failures = 0
                    logger.info("Proxy %s returned to rotation", usage.proxy.label)

    async def maintenance_loop(self) -> None:
        """Run ``run_maintenance`` every ``maintenance_interval_seconds``."""
        while True:
            await asyncio.sleep(self._maintenance_interval)
            self.run_maintenance()

    # ------------------------------------------------------------------
    # Liveness probes
    # ------------------------------------------------------------------

    async def check_proxy(self, proxy: Proxy) -> bool:
        """Fetch ``check_url`` through *proxy*; True on a 2xx response."""
        try:
            async with httpx.AsyncClient(
                proxy=proxy.url,
                timeout=httpx.Timeout(self._check_timeout),
            ) as client:
                response = await client.get(self._check_url)
                return response.is_success
        except httpx.HTTPError as exc:
            logger.debug("Proxy check failed for %s: %s", proxy.label, exc)
            return False

    async def probe_all(self) -> int:
        """Probe every proxy and block the unreachable ones.

        Returns the number of proxies found unreachable.
        """
        if not self._enabled:
            return 0

        dead = 0
        for proxy in self.proxies:
            if await self.check_proxy(proxy):
                continue
            dead += 1
            with self._lock:
                usage = self._find(proxy)
                if usage is not None:
                    usage.consecutive_failures = max(usage.consecutive_failures, BLOCK_THRESHOLD)
                    usage.is_blocked = True
                    usage.blocked_at = self._clock()
            logger.warning("Proxy %s unreachable at startup — blocked", proxy.label)
        return dead

    async def test_proxies(self, pause_seconds: float = 1.0) -> list[dict]:
        """Probe each proxy sequentially, timing the round trip.

        Returns a list of ``{host, port, working, response_time_ms}``; empty
        when the pool is disabled.
        """
        if not self._enabled:
            return []

        results: list[dict] = []
        for position, proxy in enumerate(self.proxies):
            if position and pause_seconds > 0:
                await asyncio.sleep(pause_seconds)
            start = time.monotonic()
            working = await self.check_proxy(proxy)
            results.append(
                {
                    "host": proxy.host,
                    "port": proxy.port,
                    "working": working,
                    "response_time_ms": round((time.monotonic() - start) * 1000),
                }
            )
        return results

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_stats(self) -> list[dict]:
        """Per-proxy snapshot: host, counters, and available/limited/blocked status.

        Empty when the pool is disabled.
        """
        if not self._enabled:
            return []
        with self._lock:
            return [
                {
                    "host": usage.proxy.host,
                    "port": usage.proxy.port,
                    "requests_this_minute": usage.requests_this_minute,
                    "requests_today": usage.requests_today,
                    "status": usage.status.value,
                }
                for usage in self._usage
            ]
