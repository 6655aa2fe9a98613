"""Middleware package — error hierarchy, auth, and request ID."""

from harvester.middleware.auth import ServiceKeyAuthMiddleware
from harvester.middleware.error_handler import (
    AuthenticationError,
    FetchExhausted,
    HarvesterError,
    PersistenceError,
    RateLimitExceeded,
    RunInProgressError,
    StoreUnavailableError,
    register_error_handlers,
)
from harvester.middleware.request_id import RequestIdMiddleware

__all__ = [
    "AuthenticationError",
    "FetchExhausted",
    "HarvesterError",
    "PersistenceError",
    "RateLimitExceeded",
    "RequestIdMiddleware",
    "RunInProgressError",
    "ServiceKeyAuthMiddleware",
    "StoreUnavailableError",
    "register_error_handlers",
]
