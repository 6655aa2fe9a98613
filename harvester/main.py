"""FastAPI application entry point with lifespan management.

Startup: configure logging, probe proxies, start the proxy maintenance
sweep and the harvest scheduler.
Shutdown: stop the scheduler (cancelling an in-progress scheduled run),
cancel the maintenance sweep, close the key-value store.

Serve with an ASGI server in factory mode, e.g.
``uvicorn harvester.main:create_app --factory``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from harvester.config.settings import HarvesterSettings
from harvester.logging_config import configure_logging
from harvester.middleware.auth import ServiceKeyAuthMiddleware
from harvester.middleware.error_handler import register_error_handlers
from harvester.middleware.request_id import RequestIdMiddleware
from harvester.routers.admin import create_admin_router
from harvester.routers.health import create_health_router
from harvester.services.harvest_service import HarvestService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: start and stop the harvest service."""
    service: HarvestService = app.state.service
    configure_logging(service.settings.log_level)

    logger.info("Starting harvester service")
    await service.start()
    logger.info("Harvester service started successfully")

    yield

    logger.info("Shutting down harvester service…")
    await service.stop()
    logger.info("Harvester service shut down")


def create_app(
    settings: HarvesterSettings | None = None,
    service: HarvestService | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Loads ``HarvesterSettings`` eagerly so that a missing
    ``HARVESTER_SERVICE_KEY`` environment variable causes an immediate
    startup failure rather than silently falling back to a placeholder value.
    """
    if settings is None:
        settings = service.settings if service is not None else HarvesterSettings()  # type: ignore[call-arg]
    if service is None:
        service = HarvestService(settings)

    app = FastAPI(
        title="Harvester Service",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.service = service

    register_error_handlers(app)

    # Starlette applies middleware in reverse order of add_middleware calls
    app.add_middleware(ServiceKeyAuthMiddleware, service_key=settings.service_key)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(create_health_router(service))
    app.include_router(create_admin_router(service))

    return app
