"""Base repository pattern implementation for async SQLAlchemy.

Provides the session handling and lookups shared by every repository.
"""

from typing import Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_sync.db.models import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Base repository with common async session handling.

    Repositories never commit; the caller owns the session lifecycle.

    Usage:
        class TenantRepository(BaseRepository[Tenant]):
            def __init__(self, session: AsyncSession) -> None:
                super().__init__(session, Tenant)

            async def get_by_name(self, name: str) -> Tenant | None:
                return await self._get_by_field("name", name)
    """

    def __init__(self, session: AsyncSession, model_class: type[ModelT]) -> None:
        """Initialize the repository with a session.

        Args:
            session: Async SQLAlchemy session (caller manages lifecycle)
            model_class: The SQLAlchemy model class this repository manages
        """
        self._session = session
        self._model_class = model_class

    async def get_by_id(self, id: int | str) -> ModelT | None:
        """Get an entity by its primary key.

        Args:
            id: Primary key (integer or UUID string)

        Returns:
            Entity or None if not found
        """
        return await self._session.get(self._model_class, id)

    async def _get_by_field(self, field_name: str, value: object) -> ModelT | None:
        stmt = select(self._model_class).where(
            getattr(self._model_class, field_name) == value
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    def add(self, entity: ModelT) -> ModelT:
        """Add an entity to the session (does not flush)."""
        self._session.add(entity)
        return entity

    async def flush(self) -> None:
        await self._session.flush()

    async def count(self) -> int:
        """Count total entities of this type."""
        stmt = select(func.count()).select_from(self._model_class)
        result = await self._session.execute(stmt)
        return result.scalar() or 0
