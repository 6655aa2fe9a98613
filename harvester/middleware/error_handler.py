"""Global error hierarchy and FastAPI exception handlers.

All harvester-specific errors extend HarvesterError. Inside a harvest run
these errors are caught per record or per source and logged; at the API
edge the FastAPI exception handlers render them (plus Pydantic's
RequestValidationError and unhandled exceptions) as a consistent JSON
envelope: { success, data, error, meta }.
"""

from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Error hierarchy
# ---------------------------------------------------------------------------


class HarvesterError(Exception):
    """Base error for all harvester-specific errors."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, **kwargs: object) -> None:
        self.message = message or self.__class__.message
        self.details = kwargs
        super().__init__(self.message)


class AuthenticationError(HarvesterError):
    """Invalid or missing service key."""

    status_code = 401
    message = "Invalid or missing service key"


class FetchExhausted(HarvesterError):
    """Every attempt of a resilient fetch failed."""

    status_code = 502
    message = "Fetch failed after all retry attempts"

    def __init__(self, url: str, last_error: str | None = None) -> None:
        self.url = url
        self.last_error = last_error
        super().__init__(
            f"Fetch of {url} failed after all retry attempts: {last_error}",
            url=url,
            last_error=last_error,
        )


class RateLimitExceeded(HarvesterError):
    """A request quota (geocoding daily quota, proxy quota) is exhausted."""

    status_code = 429
    message = "Rate limit exceeded"


class PersistenceError(HarvesterError):
    """The company storage collaborator rejected a read or write."""

    status_code = 500
    message = "Failed to persist company record"


class StoreUnavailableError(HarvesterError):
    """The key-value store could not be reached."""

    status_code = 503
    message = "Key-value store unavailable"


class RunInProgressError(HarvesterError):
    """A harvest run is already in progress."""

    status_code = 409
    message = "A harvest run is already in progress"


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------


def _envelope(
    status_code: int,
    error: str,
    meta: dict | None = None,
) -> JSONResponse:
    """Build a JSON envelope error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "data": None,
            "error": error,
            "meta": meta,
        },
    )


async def _harvester_error_handler(_request: Request, exc: HarvesterError) -> JSONResponse:
    """Handle HarvesterError subclasses."""
    meta = exc.details if exc.details else None
    return _envelope(exc.status_code, exc.message, meta=meta)


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI / Pydantic RequestValidationError (422)."""
    field_errors = [
        {
            "field": " -> ".join(str(loc) for loc in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    return _envelope(
        status_code=422,
        error="Validation error",
        meta={"fields": field_errors},
    )


async def _unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log traceback, return generic 500."""
    logger.error(
        "Unhandled exception: %s\n%s",
        exc,
        traceback.format_exc(),
    )
    return _envelope(status_code=500, error="Internal server error")


def register_error_handlers(app: FastAPI) -> None:
    """Wire up all exception handlers on the FastAPI application."""
    app.add_exception_handler(HarvesterError, _harvester_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)  # type: ignore[arg-type]
