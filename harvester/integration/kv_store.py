"""Persisted key-value store used for the geocoding quota counter and cache.

The geocoding gateway only needs ``get``, ``set``, ``set_with_expiry`` and the
atomic ``incr``/``decr`` counter operations; keeping the daily counter outside
the process means quota state survives a restart and can be shared between
instances. ``RedisStore`` is the production implementation.
"""

from __future__ import annotations

import logging
from typing import Protocol

import redis.asyncio as redis

from harvester.middleware.error_handler import StoreUnavailableError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Minimal async string store."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def incr(self, key: str) -> int: ...

    async def decr(self, key: str) -> int: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class RedisStore:
    """``KeyValueStore`` backed by Redis.

    Redis errors surface as ``StoreUnavailableError``.

    Parameters
    ----------
    url:
        Redis connection URL, e.g. ``redis://localhost:6379/0``.
    """

    def __init__(self, url: str) -> None:
        self._client = redis.from_url(url, decode_responses=True)

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except redis.RedisError as exc:
            raise StoreUnavailableError(f"Redis GET {key} failed: {exc}", key=key) from exc

    async def set(self, key: str, value: str) -> None:
        try:
            await self._client.set(key, value)
        except redis.RedisError as exc:
            raise StoreUnavailableError(f"Redis SET {key} failed: {exc}", key=key) from exc

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except redis.RedisError as exc:
            raise StoreUnavailableError(f"Redis SET {key} failed: {exc}", key=key) from exc

    async def incr(self, key: str) -> int:
        try:
            return int(await self._client.incr(key))
        except redis.RedisError as exc:
            raise StoreUnavailableError(f"Redis INCR {key} failed: {exc}", key=key) from exc

    async def decr(self, key: str) -> int:
        try:
            return int(await self._client.decr(key))
        except redis.RedisError as exc:
            raise StoreUnavailableError(f"Redis DECR {key} failed: {exc}", key=key) from exc

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except redis.RedisError as exc:
            logger.warning("Redis ping failed: %s", exc)
            return False

    async def close(self) -> None:
        await self._client.aclose()
