"""Repository for SyncLock lease rows."""

from datetime import datetime

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_sync.db.models import SyncLock

from .base import BaseRepository


class SyncLockRepository(BaseRepository[SyncLock]):
    """Repository for lease locks.

    Each method is a single statement so callers can run them in
    short, independently committed sessions.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, SyncLock)

    async def delete_expired(self, lock_key: str, now: datetime) -> int:
        """Remove the lease for ``lock_key`` if it has expired."""
        stmt = delete(SyncLock).where(
            SyncLock.lock_key == lock_key,
            SyncLock.expires_at <= now,
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def insert(
        self,
        lock_key: str,
        holder_id: str,
        acquired_at: datetime,
        expires_at: datetime,
    ) -> SyncLock:
        """Insert a lease row.

        Raises:
            sqlalchemy.exc.IntegrityError: If the key is already leased
        """
        lease = SyncLock(
            lock_key=lock_key,
            holder_id=holder_id,
            acquired_at=acquired_at,
            expires_at=expires_at,
        )
        self.add(lease)
        await self.flush()
        return lease

    async def renew(self, lock_key: str, holder_id: str, expires_at: datetime) -> bool:
        """Extend a lease still owned by ``holder_id``."""
        stmt = (
            update(SyncLock)
            .where(SyncLock.lock_key == lock_key, SyncLock.holder_id == holder_id)
            .values(expires_at=expires_at)
        )
        result = await self._session.execute(stmt)
        return bool(result.rowcount)

    async def release(self, lock_key: str, holder_id: str) -> bool:
        """Delete a lease owned by ``holder_id``."""
        stmt = delete(SyncLock).where(
            SyncLock.lock_key == lock_key,
            SyncLock.holder_id == holder_id,
        )
        result = await self._session.execute(stmt)
        return bool(result.rowcount)
