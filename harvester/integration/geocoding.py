"""Geocoding gateway — cached, quota-limited address lookups.

Resolves a free-text address to coordinates through a Nominatim-compatible
search endpoint (``?q=<address>&format=json&limit=1``). Lookups go through:

1. the persisted cache (30-day TTL, keyed by the normalized address); a
   hit costs no network request and no quota
2. the daily-quota / per-second rate limiter
3. the resilient HTTP client, with its own bounded retry and backoff

An empty provider answer means the address is unresolvable and yields
``None``; it is not an error. ``RateLimitExceeded`` and ``FetchExhausted``
propagate so the caller can skip enrichment for the record.
"""

from __future__ import annotations

import json
import logging

from harvester.client.http import ResilientClient
from harvester.integration.kv_store import KeyValueStore
from harvester.models.company import Coordinates
from harvester.resilience.rate_limiter import DailyQuotaRateLimiter

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "geocoding:"


def normalize_address(address: str) -> str:
    """Collapse whitespace and lowercase, so trivially different spellings share a cache entry."""
    return " ".join(address.split()).lower()


class GeocodingGateway:
    """Address → coordinates lookups with caching and quota enforcement.

    Parameters
    ----------
    client:
        Resilient HTTP client used for provider requests.
    store:
        Persisted store for cached coordinates.
    rate_limiter:
        Daily quota / per-second limiter sharing the same store.
    provider_url:
        Search endpoint of the geocoding provider.
    use_proxy / max_attempts / timeout / retry_delay:
        Provider request options (seconds for the last two).
    cache_ttl_seconds:
        Lifetime of a cached coordinate (default 30 days).
    """

    def __init__(
        self,
        client: ResilientClient,
        store: KeyValueStore,
        rate_limiter: DailyQuotaRateLimiter,
        *,
        provider_url: str = "https://nominatim.openstreetmap.org/search",
        use_proxy: bool = False,
        max_attempts: int = 3,
        timeout: float = 5.0,
        retry_delay: float = 2.0,
        cache_ttl_seconds: int = 30 * 24 * 60 * 60,
    ) -> None:
        self._client = client
        self._store = store
        self._rate_limiter = rate_limiter
        self._provider_url = provider_url
        self._use_proxy = use_proxy
        self._max_attempts = max_attempts
        self._timeout = timeout
        self._retry_delay = retry_delay
        self._cache_ttl_seconds = cache_ttl_seconds

    async def resolve(self, address: str) -> Coordinates | None:
        """Return coordinates for *address*, or None if the provider knows no match.

        Raises
        ------
        RateLimitExceeded
            If the daily geocoding quota is spent (cache misses only).
        FetchExhausted
            If every provider attempt failed.
        StoreUnavailableError
            If the key-value store cannot be reached.
        """
        normalized = normalize_address(address)
        if not normalized:
            return None

        cache_key = f"{CACHE_KEY_PREFIX}{normalized}"
        cached = await self._read_cache(cache_key)
        if cached is not None:
            logger.debug("Geocoding cache hit for %r", normalized)
            return cached

        await self._rate_limiter.acquire()

        body = await self._client.fetch(
            self._provider_url,
            use_proxy=self._use_proxy,
            max_attempts=self._max_attempts,
            timeout=self._timeout,
            base_delay=self._retry_delay,
            params={"q": " ".join(address.split()), "format": "json", "limit": "1"},
        )

        coordinates = self._parse(body, normalized)
        if coordinates is None:
            return None

        await self._store.set_with_expiry(
            cache_key, json.dumps(coordinates.to_dict()), self._cache_ttl_seconds
        )
        return coordinates

    async def stats(self) -> dict:
        """Read-only quota snapshot: daily_requests, remaining_requests, last_request_at."""
        return await self._rate_limiter.get_stats()

    async def _read_cache(self, cache_key: str) -> Coordinates | None:
        raw = await self._store.get(cache_key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            return Coordinates(lat=float(data["lat"]), lng=float(data["lng"]))
        except (ValueError, KeyError, TypeError):
            logger.warning("Ignoring corrupt geocoding cache entry %s", cache_key)
            return None

    @staticmethod
    def _parse(body: str, normalized: str) -> Coordinates | None:
        try:
            data = json.loads(body)
        except ValueError:
            logger.warning("Geocoding provider returned non-JSON body for %r", normalized)
            return None

        if not isinstance(data, list) or not data:
            logger.info("No geocoding match for %r", normalized)
            return None

        try:
            return Coordinates(lat=float(data[0]["lat"]), lng=float(data[0]["lon"]))
        except (KeyError, TypeError, ValueError):
            logger.warning("Geocoding provider returned a malformed match for %r", normalized)
            return None
