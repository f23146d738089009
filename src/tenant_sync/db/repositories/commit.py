"""Repository for imported Commit records."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_sync.db.models import Commit

from .base import BaseRepository


class CommitRepository(BaseRepository[Commit]):
    """Repository for commits, keyed by (repository, sha)."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Commit)

    async def get_by_sha(self, repository_id: int, sha: str) -> Commit | None:
        stmt = select(Commit).where(Commit.repository_id == repository_id, Commit.sha == sha)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_repository(self, repository_id: int) -> list[Commit]:
        stmt = (
            select(Commit)
            .where(Commit.repository_id == repository_id)
            .order_by(Commit.committed_at)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def upsert(self, repository_id: int, sha: str, **fields: Any) -> tuple[Commit, bool]:
        """Insert or update a commit by natural key.

        Returns:
            Tuple of (commit, created)
        """
        commit = await self.get_by_sha(repository_id, sha)
        created = commit is None
        if commit is None:
            commit = Commit(repository_id=repository_id, sha=sha)
            self.add(commit)
        for key, value in fields.items():
            setattr(commit, key, value)
        await self.flush()
        return commit, created
