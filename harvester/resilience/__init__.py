"""Resilience components for the harvester: retry outcomes and the geocoding rate limiter."""

from harvester.resilience.rate_limiter import DailyQuotaRateLimiter, RateLimitState
from harvester.resilience.retry import (
    FatalFailure,
    Outcome,
    RetriableFailure,
    RetryPolicy,
    Success,
    run_with_retry,
)

__all__ = [
    "DailyQuotaRateLimiter",
    "FatalFailure",
    "Outcome",
    "RateLimitState",
    "RetriableFailure",
    "RetryPolicy",
    "Success",
    "run_with_retry",
]
