"""Persistence of script run lifecycles and watermarks."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenant_sync.db.models import DataSourceRun, RunStatus
from tenant_sync.db.repositories import DataSourceRunRepository
from tenant_sync.db.types import utc_now
from tenant_sync.exceptions import RunNotFoundError
from tenant_sync.logging import get_logger

logger = get_logger(__name__)

STALE_RUN_MESSAGE = "Run timed out - marked as failed after being stuck in RUNNING state"


def _duration_ms(started_at: datetime, completed_at: datetime) -> int:
    return max(0, int((completed_at - started_at).total_seconds() * 1000))


class RunTracker:
    """Writes the run record for each (data source, script) pair.

    Every method opens and commits its own session so concurrent
    scripts never share a transaction.

    Watermarks only move outward: ``last_fetched_data_at`` never goes
    backwards and ``earliest_fetched_data_at`` never moves forward.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Callable[[], datetime] = utc_now,
        stale_threshold: timedelta = timedelta(minutes=30),
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._stale_threshold = stale_threshold

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def create_run(
        self,
        data_source_id: str,
        script_name: str,
        batch_id: str,
    ) -> int | None:
        """Claim the run record for this attempt.

        Creates the record or resets an existing one to RUNNING with a
        fresh ``started_at``. Watermarks are preserved.

        Returns:
            Run id, or None if the record could not be created or claimed.
            Callers treat None as a skip.
        """
        try:
            async with self._session_factory() as session:
                run = await DataSourceRunRepository(session).upsert_running(
                    data_source_id, script_name, batch_id, self._clock()
                )
                await session.commit()
                return run.id
        except SQLAlchemyError as e:
            logger.warning(
                "Could not claim run for {} on data source {}: {}",
                script_name,
                data_source_id,
                e,
            )
            return None

    async def complete_run(
        self,
        run_id: int,
        records_imported: int,
        last_fetched_data_at: datetime,
        earliest_fetched_data_at: datetime | None = None,
    ) -> DataSourceRun:
        """Mark a run COMPLETED and advance its watermarks.

        Args:
            run_id: Run record id from create_run
            records_imported: Total records across all invocations
            last_fetched_data_at: End of the forward range
            earliest_fetched_data_at: Start of the oldest range fetched

        Returns:
            Updated run record

        Raises:
            RunNotFoundError: If the run id is unknown
        """
        async with self._session_factory() as session:
            run = await DataSourceRunRepository(session).get_by_id(run_id)
            if run is None:
                raise RunNotFoundError(run_id)

            completed_at = self._clock()
            run.status = RunStatus.COMPLETED
            run.completed_at = completed_at
            run.duration_ms = _duration_ms(run.started_at, completed_at)
            run.records_imported = records_imported
            run.error_message = None

            if run.last_fetched_data_at is None or last_fetched_data_at > run.last_fetched_data_at:
                run.last_fetched_data_at = last_fetched_data_at
            if earliest_fetched_data_at is not None and (
                run.earliest_fetched_data_at is None
                or earliest_fetched_data_at < run.earliest_fetched_data_at
            ):
                run.earliest_fetched_data_at = earliest_fetched_data_at

            await session.commit()
            logger.debug(
                "Run {} completed: {} records, watermarks [{}, {}]",
                run_id,
                records_imported,
                run.earliest_fetched_data_at,
                run.last_fetched_data_at,
            )
            return run

    async def fail_run(self, run_id: int, error_message: str) -> DataSourceRun:
        """Mark a run FAILED. Watermarks are left as they were.

        Raises:
            RunNotFoundError: If the run id is unknown
        """
        async with self._session_factory() as session:
            run = await DataSourceRunRepository(session).get_by_id(run_id)
            if run is None:
                raise RunNotFoundError(run_id)

            completed_at = self._clock()
            run.status = RunStatus.FAILED
            run.completed_at = completed_at
            run.duration_ms = _duration_ms(run.started_at, completed_at)
            run.error_message = error_message
            await session.commit()
            return run

    # -------------------------------------------------------------------------
    # Recovery
    # -------------------------------------------------------------------------

    async def cleanup_stale_runs(
        self,
        threshold: timedelta | None = None,
        now: datetime | None = None,
    ) -> int:
        """Fail RUNNING records left behind by crashed workers.

        Args:
            threshold: Age after which a RUNNING record is stale
            now: Current instant (defaults to the injected clock)

        Returns:
            Number of records marked FAILED
        """
        now = now or self._clock()
        cutoff = now - (threshold or self._stale_threshold)
        async with self._session_factory() as session:
            stale = await DataSourceRunRepository(session).get_stale(cutoff)
            for run in stale:
                run.status = RunStatus.FAILED
                run.completed_at = now
                run.duration_ms = _duration_ms(run.started_at, now)
                run.error_message = STALE_RUN_MESSAGE
            await session.commit()

        if stale:
            logger.warning("Marked {} stale run(s) as failed", len(stale))
        return len(stale)
