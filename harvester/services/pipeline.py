"""Harvest pipeline — fetch, extract, geocode and upsert, one source at a time.

Sources are processed strictly sequentially with a randomized pause between
them. A failure inside one source (fetch exhaustion, persistence error) is
logged and the run moves on to the next source; any failure to geocode one
record, a store outage included, only costs that record its coordinates.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from harvester.client.http import ResilientClient
from harvester.config.sources import ScrapingSource
from harvester.extractors.listing import ListingExtractor
from harvester.integration.company_store import CompanyRepository
from harvester.integration.geocoding import GeocodingGateway
from harvester.middleware.error_handler import HarvesterError, PersistenceError
from harvester.models.company import Coordinates, PartialCompanyRecord, Prices
from harvester.proxy.pool import ProxyPool

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HarvestPipeline:
    """Runs one complete harvest over the configured sources.

    Parameters
    ----------
    sources:
        Declarative source rules, processed in order.
    client / extractor / geocoder / repository / proxy_pool:
        Collaborators, injected once at startup.
    max_attempts / timeout / request_delay:
        Fetch options for source pages (seconds for the last two).
    source_delay:
        ``(min, max)`` seconds slept after each source.
    """

    def __init__(
        self,
        *,
        sources: list[ScrapingSource],
        client: ResilientClient,
        extractor: ListingExtractor,
        geocoder: GeocodingGateway,
        repository: CompanyRepository,
        proxy_pool: ProxyPool,
        max_attempts: int = 3,
        timeout: float = 10.0,
        request_delay: float = 2.0,
        source_delay: tuple[float, float] = (5.0, 15.0),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._sources = list(sources)
        self._client = client
        self._extractor = extractor
        self._geocoder = geocoder
        self._repository = repository
        self._proxy_pool = proxy_pool
        self._max_attempts = max_attempts
        self._timeout = timeout
        self._request_delay = request_delay
        self._source_delay = source_delay
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._now = now

    @property
    def sources(self) -> list[ScrapingSource]:
        return list(self._sources)

    async def run(self) -> dict[str, Any]:
        """Harvest every source and return ``{status, companies_scraped, proxy_stats}``."""
        started = time.monotonic()
        logger.info(
            "Harvest run starting over %d sources",
            len(self._sources),
            extra={"proxy_stats": self._proxy_pool.get_stats()},
        )

        total = 0
        for index, source in enumerate(self._sources):
            try:
                total += await self._process_source(source)
            except HarvesterError as exc:
                logger.error(
                    "Source %s failed: %s",
                    source.name,
                    exc.message,
                    extra={"source": source.name, "error_reason": exc.message},
                )
            except Exception:
                logger.exception("Source %s failed unexpectedly", source.name, extra={"source": source.name})

            if index < len(self._sources) - 1:
                low, high = self._source_delay
                await self._sleep(self._rng.uniform(low, high))

        proxy_stats = self._proxy_pool.get_stats()
        logger.info(
            "Harvest run finished: %d companies",
            total,
            extra={
                "companies": total,
                "duration_ms": int((time.monotonic() - started) * 1000),
                "proxy_stats": proxy_stats,
            },
        )
        return {"status": "completed", "companies_scraped": total, "proxy_stats": proxy_stats}

    async def _process_source(self, source: ScrapingSource) -> int:
        logger.info("Scraping %s", source.name, extra={"source": source.name, "target_url": source.url})
        body = await self._client.fetch(
            source.url,
            max_attempts=self._max_attempts,
            timeout=self._timeout,
            base_delay=self._request_delay,
        )

        saved = 0
        for record in self._extractor.extract(source, body):
            coordinates = await self._geocode(record) if record.address else None
            try:
                await self.upsert(record, coordinates)
            except PersistenceError as exc:
                logger.error(
                    "Skipping %r: %s",
                    record.name,
                    exc.message,
                    extra={"source": source.name, "error_reason": exc.message},
                )
                continue
            saved += 1

        logger.info(
            "Saved %d companies from %s",
            saved,
            source.name,
            extra={"source": source.name, "companies": saved},
        )
        return saved

    async def _geocode(self, record: PartialCompanyRecord) -> Coordinates | None:
        try:
            return await self._geocoder.resolve(record.address or "")
        except HarvesterError as exc:
            logger.warning(
                "Storing %r without coordinates: %s",
                record.name,
                exc.message,
                extra={"error_reason": exc.message},
            )
            return None
        except Exception as exc:
            logger.exception(
                "Geocoding %r failed unexpectedly; storing without coordinates",
                record.name,
                extra={"error_reason": str(exc)},
            )
            return None

    async def upsert(self, record: PartialCompanyRecord, coordinates: Coordinates | None = None) -> str:
        """Insert or merge *record* keyed by exact business name; returns the row id.

        Raises
        ------
        PersistenceError
            If the repository call fails.
        """
        now = self._now()
        try:
            existing = await self._repository.find_by_name(record.name)
            if existing is not None:
                fields = self._merge_fields(existing, record, coordinates)
                fields["updated_at"] = now
                await self._repository.update(existing["id"], fields)
                return existing["id"]

            return await self._repository.insert({
                "name": record.name,
                "address": record.address,
                "coordinates": coordinates.to_dict() if coordinates else None,
                "services": sorted(record.services),
                "prices": (record.prices or Prices()).to_dict(),
                "contact": record.contact.to_dict(),
                "created_at": now,
                "updated_at": now,
            })
        except HarvesterError:
            raise
        except Exception as exc:
            raise PersistenceError(
                f"Could not store company '{record.name}': {exc}", company=record.name
            ) from exc

    @staticmethod
    def _merge_fields(
        existing: dict[str, Any], record: PartialCompanyRecord, coordinates: Coordinates | None
    ) -> dict[str, Any]:
        """Fields of *record* that carry a value; empty ones leave the stored row untouched."""
        fields: dict[str, Any] = {}
        if record.address:
            fields["address"] = record.address
        if coordinates is not None:
            fields["coordinates"] = coordinates.to_dict()
        if record.services:
            fields["services"] = sorted(record.services)
        if record.prices is not None:
            fields["prices"] = record.prices.to_dict()
        contact = record.contact.to_dict()
        if contact:
            fields["contact"] = {**(existing.get("contact") or {}), **contact}
        return fields
