"""Read-only lookup of enabled tenant data sources and their env maps."""

from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tenant_sync.db.models import DataSourceConfig
from tenant_sync.db.repositories import DataSourceRepository

from .scripts import TenantDataSource


def build_environment(configs: Iterable[DataSourceConfig]) -> dict[str, str]:
    """Fold config rows into a key/value env map (later keys win)."""
    return {config.key: config.value for config in configs}


class TenantConfigLookup:
    """Loads every enabled data source of every active tenant.

    Store errors propagate: without the tenant list a batch cannot
    make any progress.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def load(self) -> list[TenantDataSource]:
        async with self._session_factory() as session:
            data_sources = await DataSourceRepository(session).get_enabled_with_configs()
            return [
                TenantDataSource(
                    tenant_id=ds.tenant_id,
                    data_source_id=ds.id,
                    provider=ds.provider.lower(),
                    env=build_environment(ds.configs),
                    name=ds.name,
                )
                for ds in data_sources
            ]
