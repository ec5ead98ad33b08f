from __future__ import annotations

import asyncio
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from trucktracker.config import settings
from trucktracker.exceptions import IngestionError
from trucktracker.services.ingestion import CycleResult, IngestionPipeline

logger = logging.getLogger("trucktracker.scheduler")


class RefreshScheduler:
    """Owns every way an ingestion cycle gets started.

    - once at process start (background task)
    - every ``refresh_interval_minutes`` on the wall clock (APScheduler cron)
    - on demand from ``POST /api/refresh``

    A single-slot lock keeps cycles from overlapping. Timer-driven triggers
    skip when a cycle is in flight; on-demand callers wait their turn.
    """

    def __init__(
        self,
        pipeline: IngestionPipeline,
        interval_minutes: Optional[int] = None,
        refresh_on_startup: Optional[bool] = None,
    ):
        self.pipeline = pipeline
        self.interval_minutes = interval_minutes or settings.refresh_interval_minutes
        self.refresh_on_startup = (
            settings.refresh_on_startup if refresh_on_startup is None else refresh_on_startup
        )
        self._lock = asyncio.Lock()
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._startup_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return bool(self._scheduler and self._scheduler.running)

    @property
    def cron_minute(self) -> str:
        # APScheduler rejects */60, hourly means on the hour
        if self.interval_minutes >= 60:
            return "0"
        return f"*/{self.interval_minutes}"

    @property
    def cycle_in_flight(self) -> bool:
        return self._lock.locked()

    async def refresh_now(self) -> CycleResult:
        """On-demand cycle. Errors propagate to the caller."""
        async with self._lock:
            return await self.pipeline.run_cycle()

    async def run_scheduled(self, trigger: str = "scheduled") -> Optional[CycleResult]:
        """Timer-driven cycle. Never raises."""
        if self._lock.locked():
            logger.info("Skipping %s refresh: a cycle is already running", trigger)
            return None
        try:
            async with self._lock:
                result = await self.pipeline.run_cycle()
        except IngestionError as e:
            logger.error("Error in %s refresh: %s", trigger, e)
            return None
        except Exception:
            logger.exception("Unexpected error in %s refresh", trigger)
            return None
        logger.info("Data refreshed successfully (%s)", trigger)
        return result

    def start(self) -> None:
        """Must be called from inside the running event loop."""
        if self.running:
            return
        self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._scheduler.add_job(
            self.run_scheduled,
            CronTrigger(minute=self.cron_minute, timezone="UTC"),
            id="optimus-refresh",
            kwargs={"trigger": "scheduled"},
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info("Refresh scheduled every %d minutes", self.interval_minutes)

        if self.refresh_on_startup:
            self._startup_task = asyncio.create_task(self.run_scheduled("startup"))

    async def shutdown(self) -> None:
        if self._scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        if self._startup_task and not self._startup_task.done():
            self._startup_task.cancel()
            await asyncio.gather(self._startup_task, return_exceptions=True)
        self._startup_task = None
        # A cron-launched cycle may still be running; let it finish
        async with self._lock:
            pass
