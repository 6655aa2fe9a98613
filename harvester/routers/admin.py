"""Administrative endpoints (require X-Service-Key).

- POST /admin/scrape — run a harvest now; 409 while one is in progress
- GET  /admin/proxy-stats — per-proxy usage and status
- POST /admin/test-proxies — probe every configured proxy
- GET  /admin/geocoding-stats — geocoding quota usage
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter

from harvester.models.responses import ApiResponse

if TYPE_CHECKING:
    from harvester.services.harvest_service import HarvestService

logger = logging.getLogger(__name__)


def create_admin_router(service: HarvestService) -> APIRouter:
    """Factory that creates the admin router bound to *service*."""
    admin_router = APIRouter(prefix="/admin", tags=["admin"])

    @admin_router.post("/scrape")
    async def scrape() -> dict:
        """Run the pipeline over every source and wait for it to finish."""
        logger.info("Manual harvest requested")
        result = await service.run_scrape_now()
        return ApiResponse.ok(result)

    @admin_router.get("/proxy-stats")
    async def proxy_stats() -> dict:
        return ApiResponse.ok(service.get_proxy_stats())

    @admin_router.post("/test-proxies")
    async def test_proxies() -> dict:
        results = await service.test_proxies()
        return ApiResponse.ok(
            results,
            meta={"working": sum(1 for r in results if r["working"]), "total": len(results)},
        )

    @admin_router.get("/geocoding-stats")
    async def geocoding_stats() -> dict:
        return ApiResponse.ok(await service.geocoding_stats())

    return admin_router
