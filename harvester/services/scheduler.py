"""Cancellable recurring harvest scheduler.

The scheduler owns one background asyncio task bound to the application
lifespan: it waits ``initial_delay`` seconds after ``start()``, runs a
harvest, then repeats every ``interval`` seconds until ``stop()``.

Scheduled runs and manual triggers share one asyncio lock, so at most one
harvest touches the proxy pool and geocoding quota at a time. A manual
trigger while a run holds the lock is rejected with ``RunInProgressError``;
a scheduled tick simply waits for the active run to finish.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from harvester.middleware.error_handler import RunInProgressError

logger = logging.getLogger(__name__)


class HarvestScheduler:
    """Start/stop wrapper around a recurring harvest coroutine.

    Parameters
    ----------
    run:
        Coroutine function performing one complete harvest.
    initial_delay:
        Seconds between ``start()`` and the first scheduled run.
    interval:
        Seconds between the end of one scheduled run and the next.
    sleep:
        Async sleep, injectable for tests.
    """

    def __init__(
        self,
        run: Callable[[], Awaitable[dict[str, Any]]],
        *,
        initial_delay: float = 300.0,
        interval: float = 86_400.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._run = run
        self._initial_delay = initial_delay
        self._interval = interval
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self.last_run_at: datetime | None = None
        self.last_result: dict[str, Any] | None = None
        self.runs_completed = 0

    @property
    def is_running(self) -> bool:
        """True while a harvest (scheduled or manual) holds the run lock."""
        return self._lock.locked()

    @property
    def is_alive(self) -> bool:
        """True while the background timer task exists and has not finished."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_alive:
            logger.warning("Scheduler already started, skipping")
            return
        self._task = asyncio.create_task(self._loop(), name="harvest-scheduler")
        logger.info(
            "Harvest scheduler started (first run in %.0fs, then every %.0fs)",
            self._initial_delay,
            self._interval,
        )

    async def stop(self, timeout: float = 30.0) -> None:
        """Cancel the timer task, interrupting an in-progress scheduled run."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await asyncio.wait_for(task, timeout=timeout)
        except (asyncio.CancelledError, asyncio.TimeoutError):
            pass
        logger.info("Harvest scheduler stopped")

    async def run_now(self) -> dict[str, Any]:
        """Run a harvest immediately.

        Raises
        ------
        RunInProgressError
            If another run currently holds the run lock.
        """
        if self._lock.locked():
            raise RunInProgressError("A harvest run is already in progress")
        async with self._lock:
            return await self._execute("manual")

    async def _loop(self) -> None:
        await self._sleep(self._initial_delay)
        while True:
            async with self._lock:
                try:
                    await self._execute("scheduled")
                except Exception:
                    logger.exception("Scheduled harvest run failed")
            await self._sleep(self._interval)

    async def _execute(self, trigger: str) -> dict[str, Any]:
        logger.info("Starting %s harvest run", trigger)
        result = await self._run()
        self.last_run_at = datetime.now(timezone.utc)
        self.last_result = result
        self.runs_completed += 1
        return result

    def get_state(self) -> dict[str, Any]:
        return {
            "alive": self.is_alive,
            "running": self.is_running,
            "runs_completed": self.runs_completed,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
        }
