"""Health and readiness endpoints.

These endpoints do NOT require X-Service-Key authentication.
- GET /health — service status, proxy pool summary, scheduler state
- GET /readiness — 200 only when the key-value store answers and the
  scheduler is alive (if enabled)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Response

from harvester.models.responses import ApiResponse

if TYPE_CHECKING:
    from harvester.services.harvest_service import HarvestService


def create_health_router(service: HarvestService) -> APIRouter:
    """Factory that creates the health router bound to *service*."""

    health_router = APIRouter(tags=["health"])

    @health_router.get("/health")
    async def health() -> dict:
        proxy_stats = service.get_proxy_stats()
        return ApiResponse.ok(
            {
                "status": "healthy",
                "proxy_pool": {
                    "enabled": service.proxy_pool.enabled,
                    "total": len(proxy_stats),
                    "available": sum(1 for p in proxy_stats if p["status"] == "available"),
                    "blocked": sum(1 for p in proxy_stats if p["status"] == "blocked"),
                },
                "scheduler": service.scheduler.get_state(),
            }
        )

    @health_router.get("/readiness")
    async def readiness(response: Response) -> dict:
        """Readiness probe: 200 iff the store pings and the scheduler runs when enabled."""
        is_ready = await service.is_ready()
        if not is_ready:
            response.status_code = 503
            return ApiResponse.failure("Service not ready", data={"ready": False})
        return ApiResponse.ok({"ready": True})

    return health_router
