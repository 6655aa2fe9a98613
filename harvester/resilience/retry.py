"""Explicit attempt outcomes and a bounded retry driver.

An attempt function returns one of three outcomes instead of raising:

- ``Success(value)`` — stop and return the value
- ``RetriableFailure(reason)`` — back off and try again while attempts remain
- ``FatalFailure(reason)`` — stop immediately, retrying cannot help

Retry behaviour lives in ``RetryPolicy`` (attempt count, base delay) so the
same driver serves page fetches and geocoding lookups.

Backoff before attempt ``n + 1`` is ``base_delay * 2**n + uniform(0, base_delay)``.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class RetriableFailure:
    reason: str


@dataclass(frozen=True)
class FatalFailure:
    reason: str


Outcome = Union[Success[T], RetriableFailure, FatalFailure]


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff with jitter.

    Args:
        max_attempts: Total attempts, including the first.
        base_delay: Base delay in seconds.
    """

    max_attempts: int = 3
    base_delay: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be non-negative")

    def backoff(self, attempt: int, rng: random.Random) -> float:
        """Delay in seconds to wait after failed attempt number *attempt* (0-based)."""
        return self.base_delay * (2**attempt) + rng.uniform(0, self.base_delay)


async def run_with_retry(
    attempt_fn: Callable[[int], Awaitable[Outcome[T]]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rng: random.Random | None = None,
    label: str = "operation",
) -> Outcome[T]:
    """Drive *attempt_fn* until success, a fatal failure, or the attempt budget runs out.

    *attempt_fn* receives the 0-based attempt number. Returns the final
    outcome; a ``RetriableFailure`` return means every attempt failed.
    """
    rng = rng or random.Random()
    outcome: Outcome[T] = RetriableFailure("no attempt made")

    for attempt in range(policy.max_attempts):
        outcome = await attempt_fn(attempt)

        if isinstance(outcome, (Success, FatalFailure)):
            return outcome

        logger.warning(
            "%s attempt %d/%d failed: %s",
            label,
            attempt + 1,
            policy.max_attempts,
            outcome.reason,
            extra={"attempt": attempt + 1, "error_reason": outcome.reason},
        )

        if attempt < policy.max_attempts - 1:
            await sleep(policy.backoff(attempt, rng))

    return outcome
