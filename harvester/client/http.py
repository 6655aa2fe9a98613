"""Resilient HTTP client — identity rotation, proxy reservation, bounded retry.

One ``fetch`` is one logical GET. Every attempt reserves a proxy from the
pool (when asked to and when one is eligible), presents the next rotating
browser identity, and is bounded by its own timeout. Attempt results are
classified into explicit outcomes and driven by ``run_with_retry``:

- 2xx → success; the proxy is credited and a randomized pause in
  ``[base_delay, 2 * base_delay)`` precedes the return so request cadence
  is not regular
- non-2xx, timeout, connection failure → retriable; the proxy is debited
- malformed URL / unsupported scheme → fatal, no further attempts

When every attempt fails the caller receives ``FetchExhausted``.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

import httpx

from harvester.client.identity import IdentityRotator
from harvester.middleware.error_handler import FetchExhausted
from harvester.proxy.pool import ProxyPool
from harvester.resilience.retry import (
    FatalFailure,
    Outcome,
    RetriableFailure,
    RetryPolicy,
    Success,
    run_with_retry,
)

logger = logging.getLogger(__name__)


class ResilientClient:
    """HTTP GET client built on the proxy pool.

    Parameters
    ----------
    proxy_pool:
        Pool to reserve proxies from. A disabled pool means direct requests.
    identity:
        Rotating browser identity source.
    max_attempts / timeout / base_delay:
        Defaults for ``fetch`` (attempt count, seconds, seconds).
    sleep / rng:
        Injectable for tests.
    """

    def __init__(
        self,
        proxy_pool: ProxyPool,
        identity: IdentityRotator | None = None,
        *,
        max_attempts: int = 3,
        timeout: float = 10.0,
        base_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._pool = proxy_pool
        self._identity = identity or IdentityRotator()
        self._max_attempts = max_attempts
        self._timeout = timeout
        self._base_delay = base_delay
        self._sleep = sleep
        self._rng = rng or random.Random()

    async def fetch(
        self,
        url: str,
        *,
        use_proxy: bool = True,
        max_attempts: int | None = None,
        timeout: float | None = None,
        base_delay: float | None = None,
        params: dict[str, str] | None = None,
    ) -> str:
        """GET *url* and return the response body.

        Raises
        ------
        FetchExhausted
            If no attempt produced a 2xx response.
        """
        policy = RetryPolicy(
            max_attempts=max_attempts if max_attempts is not None else self._max_attempts,
            base_delay=base_delay if base_delay is not None else self._base_delay,
        )
        attempt_timeout = timeout if timeout is not None else self._timeout

        async def attempt(number: int) -> Outcome[str]:
            return await self._attempt(url, number, use_proxy, attempt_timeout, params)

        outcome = await run_with_retry(
            attempt, policy, sleep=self._sleep, rng=self._rng, label=f"GET {url}"
        )

        if isinstance(outcome, Success):
            await self._sleep(self._rng.uniform(policy.base_delay, 2 * policy.base_delay))
            return outcome.value

        logger.error(
            "Giving up on %s: %s",
            url,
            outcome.reason,
            extra={"target_url": url, "error_reason": outcome.reason},
        )
        raise FetchExhausted(url, outcome.reason)

    async def _attempt(
        self,
        url: str,
        number: int,
        use_proxy: bool,
        timeout: float,
        params: dict[str, str] | None,
    ) -> Outcome[str]:
        proxy = self._pool.next() if use_proxy else None
        headers = self._identity.next_headers()
        proxy_label = proxy.label if proxy else None

        try:
            async with httpx.AsyncClient(
                proxy=proxy.url if proxy else None,
                timeout=httpx.Timeout(timeout),
                follow_redirects=True,
            ) as client:
                response = await client.get(url, headers=headers, params=params)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            return FatalFailure(f"invalid URL: {exc}")
        except httpx.TimeoutException as exc:
            if proxy:
                self._pool.report_failure(proxy)
            return RetriableFailure(f"timeout after {timeout}s: {exc.__class__.__name__}")
        except httpx.HTTPError as exc:
            if proxy:
                self._pool.report_failure(proxy)
            return RetriableFailure(f"{exc.__class__.__name__}: {exc}")

        if not response.is_success:
            if proxy:
                self._pool.report_failure(proxy)
            return RetriableFailure(f"HTTP {response.status_code}")

        if proxy:
            self._pool.report_success(proxy)
        logger.debug(
            "GET %s succeeded on attempt %d",
            url,
            number + 1,
            extra={"target_url": url, "proxy_used": proxy_label, "attempt": number + 1},
        )
        return Success(response.text)
