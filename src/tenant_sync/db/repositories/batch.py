"""Repository for ImportBatch records."""

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_sync.db.models import BatchStatus, ImportBatch

from .base import BaseRepository


class ImportBatchRepository(BaseRepository[ImportBatch]):
    """Repository for orchestrator sweep records."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, ImportBatch)

    async def create(
        self,
        batch_id: str,
        triggered_by: str,
        started_at: datetime,
    ) -> ImportBatch:
        """Create a RUNNING batch record."""
        batch = ImportBatch(
            id=batch_id,
            triggered_by=triggered_by,
            status=BatchStatus.RUNNING,
            started_at=started_at,
        )
        self.add(batch)
        await self.flush()
        return batch

    async def finalize(
        self,
        batch_id: str,
        *,
        status: BatchStatus,
        completed_at: datetime,
        scripts_executed: int = 0,
        scripts_failed: int = 0,
        scripts_skipped: int = 0,
        errors: list[dict[str, Any]] | None = None,
    ) -> ImportBatch | None:
        """Record the final status and counts of a batch.

        Returns:
            Updated batch or None if not found
        """
        batch = await self.get_by_id(batch_id)
        if batch is None:
            return None
        batch.status = status
        batch.completed_at = completed_at
        batch.scripts_executed = scripts_executed
        batch.scripts_failed = scripts_failed
        batch.scripts_skipped = scripts_skipped
        batch.errors = list(errors or [])
        await self.flush()
        return batch

    async def get_recent(self, limit: int = 20) -> list[ImportBatch]:
        stmt = select(ImportBatch).order_by(ImportBatch.started_at.desc()).limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
