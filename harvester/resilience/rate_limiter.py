"""Per-second / per-day rate limiter for the geocoding provider.

The daily request counter lives in the persisted key-value store, not in
process memory, so quota accounting survives restarts. The UTC calendar day
the counter belongs to is stored next to it; the first acquisition on a new
UTC day resets the counter.

Key behaviors:
- acquire() raises RateLimitExceeded once the daily quota is spent; it never
  queues or retries against an exhausted quota
- acquire() sleeps just long enough to keep at most ``requests_per_second``
  requests per second
- acquisitions are serialized by an asyncio lock; across processes the
  counter is charged with an atomic INCR and rolled back on overshoot
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from harvester.integration.kv_store import KeyValueStore
from harvester.middleware.error_handler import RateLimitExceeded

logger = logging.getLogger(__name__)

DAILY_COUNTER_KEY = "geocoding:dailyRequests"
CURRENT_DAY_KEY = "geocoding:currentDay"


@dataclass
class RateLimitState:
    """In-memory view of the limiter. ``daily_requests`` mirrors the last
    value read from the store; the store stays authoritative."""

    requests_per_second: float
    requests_per_day: int
    current_day: str
    daily_requests: int = 0
    last_request_at: float | None = None  # clock() seconds


class DailyQuotaRateLimiter:
    """Spacing plus daily quota, backed by a ``KeyValueStore``.

    Args:
        store: Persisted store holding the daily counter.
        requests_per_second: Maximum request rate.
        requests_per_day: Daily quota (UTC day).
        clock: Wall-clock source in epoch seconds.
        sleep: Async sleep, injectable for tests.
    """

    def __init__(
        self,
        store: KeyValueStore,
        requests_per_second: float = 1.0,
        requests_per_day: int = 2500,
        *,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self.state = RateLimitState(
            requests_per_second=requests_per_second,
            requests_per_day=requests_per_day,
            current_day=self._utc_day(),
        )

    def _utc_day(self) -> str:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc).date().isoformat()

    async def _read_counter(self, *, repair: bool = False) -> int:
        raw = await self._store.get(DAILY_COUNTER_KEY)
        try:
            return int(raw) if raw is not None else 0
        except ValueError:
            logger.warning("Corrupt geocoding counter %r, treating as 0", raw)
            if repair:
                await self._store.set(DAILY_COUNTER_KEY, "0")
            return 0

    async def acquire(self) -> None:
        """Consume one request from today's quota, waiting for spacing.

        Raises
        ------
        RateLimitExceeded
            If today's quota is already spent.
        """
        async with self._lock:
            today = self._utc_day()
            stored_day = await self._store.get(CURRENT_DAY_KEY)
            if stored_day != today:
                await self._store.set(DAILY_COUNTER_KEY, "0")
                await self._store.set(CURRENT_DAY_KEY, today)
                if stored_day is not None:
                    logger.info("Geocoding quota reset for new UTC day %s", today)
            self.state.current_day = today

            daily = await self._read_counter(repair=True)
            self.state.daily_requests = daily

            if daily >= self.state.requests_per_day:
                logger.warning(
                    "Geocoding daily quota of %d exhausted", self.state.requests_per_day
                )
                raise RateLimitExceeded(
                    f"Geocoding daily quota of {self.state.requests_per_day} requests exhausted",
                    daily_requests=daily,
                )

            if self.state.last_request_at is not None:
                min_interval = 1.0 / self.state.requests_per_second
                wait = min_interval - (self._clock() - self.state.last_request_at)
                if wait > 0:
                    await self._sleep(wait)

            # Other processes share the counter; INCR is the authoritative check.
            count = await self._store.incr(DAILY_COUNTER_KEY)
            if count > self.state.requests_per_day:
                await self._store.decr(DAILY_COUNTER_KEY)
                self.state.daily_requests = count - 1
                logger.warning(
                    "Geocoding daily quota of %d spent by another instance",
                    self.state.requests_per_day,
                )
                raise RateLimitExceeded(
                    f"Geocoding daily quota of {self.state.requests_per_day} requests exhausted",
                    daily_requests=count - 1,
                )

            self.state.last_request_at = self._clock()
            self.state.daily_requests = count

    async def get_stats(self) -> dict:
        """Snapshot of today's usage. Reads only; never resets the counter."""
        stored_day = await self._store.get(CURRENT_DAY_KEY)
        daily = await self._read_counter() if stored_day == self._utc_day() else 0
        return {
            "daily_requests": daily,
            "remaining_requests": max(self.state.requests_per_day - daily, 0),
            "last_request_at": (
                datetime.fromtimestamp(self.state.last_request_at, tz=timezone.utc).isoformat()
                if self.state.last_request_at is not None
                else None
            ),
        }
