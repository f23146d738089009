"""Per-script unit of work.

One execution takes the script's lock, claims its run record, computes
the date windows, invokes the connector for the forward window and then
the backfill window, and records the outcome. The lock is released on
every exit path.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
from typing import Literal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenant_sync.db.types import utc_now
from tenant_sync.logging import bind_script

from .date_range import DateRange, DateRangeCalculator, DateRanges
from .enums import ExecutionState, SkipReason
from .locks import LockManager
from .results import ScriptExecutionResult, describe_error
from .run_tracker import RunTracker
from .scripts import ExecutionContext, SyncScript, TenantDataSource

LockScope = Literal["script", "data_source"]


class ScriptExecutor:
    """Run one script for one data source under its distributed lock.

    Connector errors never escape ``execute``: they are recorded on the
    run and returned as a FAILED result. Store errors while recording
    the outcome do propagate, after the lock has been released.

    Usage:
        executor = ScriptExecutor(locks, tracker, calculator, session_factory)
        result = await executor.execute(script, source, batch_id)
    """

    def __init__(
        self,
        lock_manager: LockManager,
        run_tracker: RunTracker,
        calculator: DateRangeCalculator,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Callable[[], datetime] = utc_now,
        connector_timeout: float | None = None,
        lock_scope: LockScope = "script",
    ) -> None:
        """Initialize the executor.

        Args:
            lock_manager: Distributed try-lock backend
            run_tracker: Run record writer
            calculator: Date window calculator
            session_factory: Factory for the sessions handed to connectors
            clock: Source of the current time
            connector_timeout: Seconds allowed per connector invocation
            lock_scope: "script" locks provider:resource across all data
                sources; "data_source" prefixes the data source id
        """
        self._locks = lock_manager
        self._runs = run_tracker
        self._calculator = calculator
        self._session_factory = session_factory
        self._clock = clock
        self._connector_timeout = connector_timeout
        self._lock_scope = lock_scope

    def lock_key_for(self, script: SyncScript, source: TenantDataSource) -> str:
        if self._lock_scope == "data_source":
            return f"{source.data_source_id}:{script.lock_key}"
        return script.lock_key

    async def execute(
        self,
        script: SyncScript,
        source: TenantDataSource,
        batch_id: str,
    ) -> ScriptExecutionResult:
        """Execute a script for a data source.

        Args:
            script: Script descriptor
            source: Data source with its resolved env map
            batch_id: Current batch identifier

        Returns:
            COMPLETED, FAILED or SKIPPED result
        """
        log = bind_script(source.data_source_id, script.identity)
        lock_key = self.lock_key_for(script, source)

        if not await self._locks.acquire(lock_key):
            log.info("Skipping {}: lock {} is held by another worker", script.identity, lock_key)
            return ScriptExecutionResult.skip(
                script.identity, source.data_source_id, SkipReason.LOCK_CONTENTION
            )

        try:
            run_id = await self._runs.create_run(source.data_source_id, script.identity, batch_id)
            if run_id is None:
                log.info("Skipping {}: run record could not be claimed", script.identity)
                return ScriptExecutionResult.skip(
                    script.identity, source.data_source_id, SkipReason.RUN_NOT_CLAIMED
                )
            return await self._execute_run(script, source, batch_id, run_id)
        finally:
            await self._locks.release(lock_key)

    async def _execute_run(
        self,
        script: SyncScript,
        source: TenantDataSource,
        batch_id: str,
        run_id: int,
    ) -> ScriptExecutionResult:
        log = bind_script(source.data_source_id, script.identity)
        result = ScriptExecutionResult(
            script=script.identity,
            data_source_id=source.data_source_id,
            state=ExecutionState.LOCK_HELD,
            run_id=run_id,
        )

        try:
            now = self._clock()
            ranges = await self._calculator.calculate(
                source.data_source_id, script.identity, script.retention_window, now=now
            )
            result.ranges = ranges
            result.state = ExecutionState.RANGES_COMPUTED

            result.state = ExecutionState.RUNNING
            for segment in ranges.segments():
                result.records_imported += await self._invoke(
                    script, source, segment, run_id, batch_id
                )
        except Exception as e:
            message = describe_error(e)
            log.opt(exception=e).error("Script {} failed: {}", script.identity, message)
            await self._runs.fail_run(run_id, message)
            result.state = ExecutionState.FAILED
            result.error = e
            return result

        last_fetched, earliest_fetched = self._watermarks(ranges, now)
        await self._runs.complete_run(
            run_id, result.records_imported, last_fetched, earliest_fetched
        )
        result.state = ExecutionState.COMPLETED
        log.info(
            "Script {} completed: {} records (backfill complete: {})",
            script.identity,
            result.records_imported,
            ranges.backfill_complete,
        )
        return result

    async def _invoke(
        self,
        script: SyncScript,
        source: TenantDataSource,
        segment: DateRange,
        run_id: int,
        batch_id: str,
    ) -> int:
        context = ExecutionContext.for_range(
            source,
            start_date=segment.start,
            end_date=segment.end,
            run_id=run_id,
            batch_id=batch_id,
        )
        async with self._session_factory() as session:
            if self._connector_timeout is not None:
                count = await asyncio.wait_for(
                    script.run(session, context), timeout=self._connector_timeout
                )
            else:
                count = await script.run(session, context)
            await session.commit()
        return count or 0

    @staticmethod
    def _watermarks(ranges: DateRanges, now: datetime) -> tuple[datetime, datetime]:
        """New (last, earliest) watermarks after a successful attempt."""
        if ranges.forward is None:
            return now, ranges.backfill.start if ranges.backfill else now
        earliest = ranges.backfill.start if ranges.backfill else ranges.forward.start
        return ranges.forward.end, earliest
