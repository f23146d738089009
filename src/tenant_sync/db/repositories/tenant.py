"""Repository for Tenant and DataSource model operations."""

from collections.abc import Iterable, Mapping
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tenant_sync.db.models import DataSource, DataSourceConfig, Tenant

from .base import BaseRepository


class TenantRepository(BaseRepository[Tenant]):
    """Repository for Tenant entities."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Tenant)

    async def create(self, name: str, *, is_active: bool = True) -> Tenant:
        """Create a new tenant (flushed, not committed)."""
        tenant = Tenant(name=name, is_active=is_active)
        self.add(tenant)
        await self.flush()
        return tenant

    async def get_by_name(self, name: str) -> Tenant | None:
        return await self._get_by_field("name", name)


class DataSourceRepository(BaseRepository[DataSource]):
    """Repository for DataSource entities and their key/value configs."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, DataSource)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    async def get_enabled_with_configs(self) -> list[DataSource]:
        """Get every enabled data source belonging to an active tenant.

        Configs are eagerly loaded. Ordering is stable (tenant, then
        creation time) so batch scheduling is deterministic.

        Returns:
            List of data sources with ``configs`` populated
        """
        stmt = (
            select(DataSource)
            .join(Tenant, Tenant.id == DataSource.tenant_id)
            .where(DataSource.is_enabled.is_(True), Tenant.is_active.is_(True))
            .options(selectinload(DataSource.configs))
            .order_by(DataSource.tenant_id, DataSource.created_at, DataSource.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_tenant(self, tenant_id: str) -> list[DataSource]:
        stmt = select(DataSource).where(DataSource.tenant_id == tenant_id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    # -------------------------------------------------------------------------
    # Create/Update Methods
    # -------------------------------------------------------------------------

    async def create(
        self,
        tenant_id: str,
        provider: str,
        name: str,
        *,
        is_enabled: bool = True,
        configs: Mapping[str, str] | None = None,
        secret_keys: Iterable[str] = (),
    ) -> DataSource:
        """Create a data source with optional config entries.

        Args:
            tenant_id: Owning tenant
            provider: Provider name (lower-cased, e.g. "github")
            name: Display name
            is_enabled: Whether the orchestrator should sync it
            configs: Initial key/value configuration
            secret_keys: Config keys to flag as secrets

        Returns:
            Created data source (flushed, not committed)
        """
        secrets = set(secret_keys)
        data_source = DataSource(
            tenant_id=tenant_id,
            provider=provider.lower(),
            name=name,
            is_enabled=is_enabled,
        )
        for key, value in (configs or {}).items():
            data_source.configs.append(
                DataSourceConfig(key=key, value=value, is_secret=key in secrets)
            )
        self.add(data_source)
        await self.flush()
        return data_source

    async def set_config(
        self,
        data_source_id: str,
        key: str,
        value: str,
        *,
        is_secret: bool = False,
    ) -> DataSourceConfig:
        """Create or replace a single config entry."""
        stmt = select(DataSourceConfig).where(
            DataSourceConfig.data_source_id == data_source_id,
            DataSourceConfig.key == key,
        )
        result = await self._session.execute(stmt)
        config = result.scalar_one_or_none()
        if config is None:
            config = DataSourceConfig(
                data_source_id=data_source_id, key=key, value=value, is_secret=is_secret
            )
            self._session.add(config)
        else:
            config.value = value
            config.is_secret = is_secret
        await self.flush()
        return config

    async def update_last_sync_at(
        self,
        data_source_ids: Iterable[str],
        synced_at: datetime,
    ) -> int:
        """Stamp ``last_sync_at`` on the given data sources.

        Returns:
            Number of rows updated
        """
        ids = list(data_source_ids)
        if not ids:
            return 0
        stmt = (
            update(DataSource)
            .where(DataSource.id.in_(ids))
            .values(last_sync_at=synced_at)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0
