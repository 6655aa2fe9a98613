"""The harvester service object.

``HarvestService`` is constructed once at process start from
``HarvesterSettings`` and handed to every consumer (routers, lifespan).
It owns the proxy pool, HTTP client, key-value store, geocoding gateway,
extractor, company repository, pipeline and scheduler, and exposes the
operations the admin API calls.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from harvester.client.http import ResilientClient
from harvester.client.identity import IdentityRotator
from harvester.config.settings import HarvesterSettings
from harvester.config.sources import ScrapingSource, load_sources
from harvester.extractors.listing import ListingExtractor
from harvester.integration.company_store import CompanyRepository, InMemoryCompanyRepository
from harvester.integration.geocoding import GeocodingGateway
from harvester.integration.kv_store import KeyValueStore, RedisStore
from harvester.proxy.pool import ProxyPool
from harvester.resilience.rate_limiter import DailyQuotaRateLimiter
from harvester.services.pipeline import HarvestPipeline
from harvester.services.scheduler import HarvestScheduler

logger = logging.getLogger(__name__)


class HarvestService:
    """Composition root for the harvesting engine.

    Parameters
    ----------
    settings:
        Validated service configuration.
    store:
        Key-value store for the geocoding counter and cache. Defaults to
        ``RedisStore(settings.redis_url)``.
    repository:
        Company storage collaborator. Defaults to the in-memory repository.
    sources:
        Scraping sources. Defaults to ``load_sources(settings.sources_path)``.
    """

    def __init__(
        self,
        settings: HarvesterSettings,
        *,
        store: KeyValueStore | None = None,
        repository: CompanyRepository | None = None,
        sources: list[ScrapingSource] | None = None,
    ) -> None:
        self.settings = settings
        self.store = store if store is not None else RedisStore(settings.redis_url)
        self.repository = repository if repository is not None else InMemoryCompanyRepository()

        self.proxy_pool = ProxyPool(
            settings.proxy_list,
            enabled=settings.proxy_enabled,
            block_duration_seconds=settings.proxy_block_duration_seconds,
            maintenance_interval_seconds=settings.proxy_maintenance_interval_seconds,
            check_url=settings.proxy_check_url,
            check_timeout_seconds=settings.proxy_timeout_ms / 1000,
        )
        self.client = ResilientClient(
            self.proxy_pool,
            IdentityRotator(),
            max_attempts=settings.proxy_retry_attempts,
            timeout=settings.proxy_timeout_ms / 1000,
        )
        self.rate_limiter = DailyQuotaRateLimiter(
            self.store,
            requests_per_second=settings.geocoding_requests_per_second,
            requests_per_day=settings.geocoding_requests_per_day,
        )
        self.geocoder = GeocodingGateway(
            self.client,
            self.store,
            self.rate_limiter,
            provider_url=settings.geocoding_provider_url,
            use_proxy=settings.geocoding_use_proxy,
            max_attempts=settings.geocoding_max_retries,
            timeout=settings.geocoding_timeout_ms / 1000,
            retry_delay=settings.geocoding_retry_delay_ms / 1000,
            cache_ttl_seconds=settings.geocoding_cache_ttl_days * 24 * 60 * 60,
        )
        self.pipeline = HarvestPipeline(
            sources=sources if sources is not None else load_sources(settings.sources_path),
            client=self.client,
            extractor=ListingExtractor(),
            geocoder=self.geocoder,
            repository=self.repository,
            proxy_pool=self.proxy_pool,
            max_attempts=settings.scraper_max_retries,
            timeout=settings.scraper_timeout_ms / 1000,
            request_delay=settings.scraper_request_delay_ms / 1000,
            source_delay=(settings.source_delay_min_seconds, settings.source_delay_max_seconds),
        )
        self.scheduler = HarvestScheduler(
            self.pipeline.run,
            initial_delay=settings.scheduler_initial_delay_seconds,
            interval=settings.scheduler_interval_seconds,
        )
        self._maintenance_task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Probe proxies, then start the maintenance sweep and the scheduler."""
        if self.proxy_pool.enabled and self.settings.proxy_check_on_startup:
            await self.proxy_pool.probe_all()

        self._maintenance_task = asyncio.create_task(
            self.proxy_pool.maintenance_loop(), name="proxy-maintenance"
        )
        if self.settings.scheduler_enabled:
            self.scheduler.start()
        else:
            logger.info("Harvest scheduler disabled")

    async def stop(self) -> None:
        """Stop background tasks and close the key-value store."""
        await self.scheduler.stop(timeout=self.settings.graceful_shutdown_seconds)

        task, self._maintenance_task = self._maintenance_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        await self.store.close()

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    async def run_scrape_now(self) -> dict[str, Any]:
        """Run a harvest immediately. Raises ``RunInProgressError`` if one is active."""
        return await self.scheduler.run_now()

    def get_proxy_stats(self) -> list[dict]:
        return self.proxy_pool.get_stats()

    async def test_proxies(self) -> list[dict]:
        return await self.proxy_pool.test_proxies()

    async def geocoding_stats(self) -> dict:
        return await self.geocoder.stats()

    async def is_ready(self) -> bool:
        """Store answers and, when enabled, the scheduler task is alive."""
        if not await self.store.ping():
            return False
        if self.settings.scheduler_enabled and not self.scheduler.is_alive:
            return False
        return True
