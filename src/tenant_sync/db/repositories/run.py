"""Repository for DataSourceRun (run tracking) records."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_sync.db.models import DataSourceRun, RunStatus

from .base import BaseRepository


class DataSourceRunRepository(BaseRepository[DataSourceRun]):
    """Repository for per-(data source, script) run records."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, DataSourceRun)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    async def get_by_key(self, data_source_id: str, script_name: str) -> DataSourceRun | None:
        """Get the run record for a (data source, script) pair.

        Args:
            data_source_id: Data source identifier
            script_name: Script identity (e.g., "github:commit")

        Returns:
            Run record or None if the script never ran for this data source
        """
        stmt = select(DataSourceRun).where(
            DataSourceRun.data_source_id == data_source_id,
            DataSourceRun.script_name == script_name,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_runs(
        self,
        *,
        data_source_id: str | None = None,
        status: RunStatus | None = None,
    ) -> list[DataSourceRun]:
        """List run records, optionally filtered."""
        stmt = select(DataSourceRun).order_by(
            DataSourceRun.data_source_id, DataSourceRun.script_name
        )
        if data_source_id is not None:
            stmt = stmt.where(DataSourceRun.data_source_id == data_source_id)
        if status is not None:
            stmt = stmt.where(DataSourceRun.status == status)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_stale(self, started_before: datetime) -> list[DataSourceRun]:
        """Get RUNNING records that started before the cutoff.

        Args:
            started_before: Cutoff instant

        Returns:
            List of stuck run records
        """
        stmt = select(DataSourceRun).where(
            DataSourceRun.status == RunStatus.RUNNING,
            DataSourceRun.started_at < started_before,
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    # -------------------------------------------------------------------------
    # Create/Update Methods
    # -------------------------------------------------------------------------

    async def upsert_running(
        self,
        data_source_id: str,
        script_name: str,
        batch_id: str,
        started_at: datetime,
    ) -> DataSourceRun:
        """Create the run record or reset an existing one to RUNNING.

        Watermark columns are left untouched on reset.

        Raises:
            sqlalchemy.exc.IntegrityError: If a concurrent writer inserted
                the same (data source, script) pair first
        """
        run = await self.get_by_key(data_source_id, script_name)
        if run is None:
            run = DataSourceRun(
                data_source_id=data_source_id,
                script_name=script_name,
            )
            self.add(run)

        run.import_batch_id = batch_id
        run.status = RunStatus.RUNNING
        run.started_at = started_at
        run.completed_at = None
        run.duration_ms = None
        run.error_message = None
        run.records_imported = 0
        await self.flush()
        return run
