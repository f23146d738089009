"""Repository for imported source-code Repository records."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_sync.db.models import Repository

from .base import BaseRepository


class RepositoryRepository(BaseRepository[Repository]):
    """Repository for provider repositories.

    Rows are keyed by (data source, full name) so connectors can
    re-import the same range without creating duplicates.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Repository)

    async def get_by_full_name(self, data_source_id: str, full_name: str) -> Repository | None:
        """Get a repository by its full name within a data source.

        Args:
            data_source_id: Owning data source
            full_name: Full repository name (e.g., "acme/widgets")

        Returns:
            Repository or None if not found
        """
        stmt = select(Repository).where(
            Repository.data_source_id == data_source_id,
            Repository.full_name == full_name,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_data_source(self, data_source_id: str) -> list[Repository]:
        stmt = (
            select(Repository)
            .where(Repository.data_source_id == data_source_id)
            .order_by(Repository.full_name)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def upsert(
        self,
        data_source_id: str,
        owner: str,
        name: str,
        **fields: Any,
    ) -> tuple[Repository, bool]:
        """Insert or update a repository by natural key.

        Args:
            data_source_id: Owning data source
            owner: Repository owner
            name: Repository name
            **fields: Column values to set (description, stars, ...)

        Returns:
            Tuple of (repository, created)
        """
        full_name = f"{owner}/{name}"
        repo = await self.get_by_full_name(data_source_id, full_name)
        created = repo is None
        if repo is None:
            repo = Repository(
                data_source_id=data_source_id,
                owner=owner,
                name=name,
                full_name=full_name,
            )
            self.add(repo)
        for key, value in fields.items():
            setattr(repo, key, value)
        await self.flush()
        return repo, created
