"""Sweep scheduler built on APScheduler.

Runs ``BatchOrchestrator.run`` on an interval or a crontab expression.
Sweeps never overlap and missed fire times collapse into one sweep.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from tenant_sync.logging import get_logger

from .orchestrator import BatchOrchestrator
from .results import OrchestratorResult

logger = get_logger(__name__)

SYNC_JOB_ID = "tenant_sync_sweep"


class SyncScheduler:
    """Run orchestrator sweeps on a schedule.

    A failed sweep is logged and the schedule keeps going. ``stop()``
    ends ``run_forever`` once the sweep in progress has finished.

    Usage:
        scheduler = SyncScheduler(orchestrator, cron="*/15 * * * *")
        await scheduler.run_forever()
    """

    def __init__(
        self,
        orchestrator: BatchOrchestrator,
        *,
        interval: timedelta = timedelta(minutes=15),
        cron: str | None = None,
        run_on_start: bool = True,
        triggered_by: str = "scheduler",
    ) -> None:
        """Initialize the scheduler.

        Args:
            orchestrator: Orchestrator whose sweeps are scheduled
            interval: Time between sweeps when no cron is given
            cron: Crontab expression, evaluated in UTC
            run_on_start: Fire the first sweep immediately
            triggered_by: Trigger name recorded on each batch
        """
        self._orchestrator = orchestrator
        self._trigger: BaseTrigger = (
            CronTrigger.from_crontab(cron, timezone=UTC)
            if cron
            else IntervalTrigger(seconds=interval.total_seconds(), timezone=UTC)
        )
        self._run_on_start = run_on_start
        self._triggered_by = triggered_by
        self._scheduler = AsyncIOScheduler(timezone=UTC)
        self._stop = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._max_runs: int | None = None
        self._runs_completed = 0

    @property
    def trigger(self) -> BaseTrigger:
        return self._trigger

    @property
    def runs_completed(self) -> int:
        return self._runs_completed

    @property
    def is_stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    async def run_once(self) -> OrchestratorResult | None:
        """Run one sweep, logging instead of raising on failure."""
        try:
            result = await self._orchestrator.run(triggered_by=self._triggered_by)
        except Exception:
            logger.exception("Scheduled sync failed")
            return None
        finally:
            self._runs_completed += 1

        if not result.lock_acquired:
            logger.info("Scheduled sync skipped: another sweep holds the global lock")
        else:
            logger.info(
                "Scheduled sync complete: {} executed, {} failed, {} skipped ({}ms)",
                result.scripts_executed,
                result.scripts_failed,
                result.scripts_skipped,
                result.execution_time_ms,
            )
        return result

    async def run_forever(self, max_runs: int | None = None) -> None:
        """Schedule sweeps until ``stop()`` is called or ``max_runs`` have run."""
        self._max_runs = max_runs
        job_options: dict[str, Any] = {}
        if self._run_on_start:
            job_options["next_run_time"] = datetime.now(UTC)

        self._scheduler.add_job(
            self._scheduled_sweep,
            trigger=self._trigger,
            id=SYNC_JOB_ID,
            name="Tenant sync sweep",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
            **job_options,
        )
        self._scheduler.start()
        logger.info("Scheduler started ({})", self._trigger)

        try:
            await self._stop.wait()
        finally:
            # Shutdown cancels running jobs, so let the current sweep finish first
            self._scheduler.pause()
            await self._idle.wait()
            self._scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped after {} run(s)", self._runs_completed)

    async def _scheduled_sweep(self) -> None:
        if self._stop.is_set():
            return
        self._idle.clear()
        try:
            await self.run_once()
        finally:
            self._idle.set()
        if self._max_runs is not None and self._runs_completed >= self._max_runs:
            self.stop()
