"""X-Service-Key authentication middleware for the admin API.

Validates the X-Service-Key header against ``HarvesterSettings.service_key``.
The probe endpoints (/health, /readiness) are excluded from authentication.
"""

from __future__ import annotations

import hmac
import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from harvester.middleware.error_handler import AuthenticationError, _envelope

logger = logging.getLogger(__name__)

_PUBLIC_PATHS: set[str] = {"/health", "/readiness"}


class ServiceKeyAuthMiddleware(BaseHTTPMiddleware):
    """Rejects non-public requests whose ``X-Service-Key`` does not match.

    The comparison is constant-time (``hmac.compare_digest``).
    """

    def __init__(self, app, service_key: str) -> None:  # noqa: ANN001
        super().__init__(app)
        self._service_key = service_key

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in _PUBLIC_PATHS:
            return await call_next(request)

        provided_key = request.headers.get("x-service-key")
        if provided_key and hmac.compare_digest(provided_key, self._service_key):
            return await call_next(request)

        logger.warning(
            "Rejected admin request to %s",
            request.url.path,
            extra={
                "error_reason": "missing_service_key" if not provided_key else "invalid_service_key",
                "target_url": request.url.path,
            },
        )
        return _envelope(
            status_code=AuthenticationError.status_code,
            error=AuthenticationError.message,
        )
