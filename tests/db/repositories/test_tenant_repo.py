"""Tests for TenantRepository and DataSourceRepository."""

from tenant_sync.db.models import DataSource
from tenant_sync.db.repositories import DataSourceRepository, TenantRepository
from tests.conftest import MAR_01
from tests.factories import make_data_source, make_tenant


class TestTenantRepository:
    async def test_create_and_get_by_name(self, db_session):
        repository = TenantRepository(db_session)
        tenant = await repository.create("Acme")

        assert (await repository.get_by_name("Acme")).id == tenant.id
        assert await repository.get_by_name("Globex") is None


class TestDataSourceRepository:
    """Tests for data source lookups and config writes."""

    async def test_create_with_configs(self, db_session):
        tenant = await TenantRepository(db_session).create("Acme")
        repository = DataSourceRepository(db_session)

        data_source = await repository.create(
            tenant.id,
            "GitHub",
            "Acme GitHub",
            configs={"GITHUB_ORG": "acme", "GITHUB_TOKEN": "ghp_x"},
            secret_keys=["GITHUB_TOKEN"],
        )

        assert data_source.provider == "github"
        secrets = {c.key: c.is_secret for c in data_source.configs}
        assert secrets == {"GITHUB_ORG": False, "GITHUB_TOKEN": True}

    async def test_get_enabled_with_configs_filters(self, db_session, session_factory):
        active = make_tenant(db_session, name="Active")
        inactive = make_tenant(db_session, name="Inactive", is_active=False)
        enabled = make_data_source(db_session, active, name="enabled")
        make_data_source(db_session, active, name="disabled", is_enabled=False)
        make_data_source(db_session, inactive, name="orphaned")
        await db_session.commit()

        async with session_factory() as fresh:
            sources = await DataSourceRepository(fresh).get_enabled_with_configs()

        assert [s.id for s in sources] == [enabled.id]
        assert {c.key for c in sources[0].configs} == {"GITHUB_TOKEN", "GITHUB_ORG"}

    async def test_set_config_replaces_value(self, db_session):
        data_source = make_data_source(db_session, make_tenant(db_session), configs={})
        await db_session.flush()
        repository = DataSourceRepository(db_session)

        await repository.set_config(data_source.id, "GITHUB_ORG", "acme")
        config = await repository.set_config(data_source.id, "GITHUB_ORG", "globex")

        assert config.value == "globex"

    async def test_get_by_tenant(self, db_session):
        tenant = make_tenant(db_session)
        make_data_source(db_session, tenant, name="one")
        make_data_source(db_session, tenant, name="two")
        make_data_source(db_session, make_tenant(db_session, name="Other"))
        await db_session.flush()

        sources = await DataSourceRepository(db_session).get_by_tenant(tenant.id)

        assert sorted(s.name for s in sources) == ["one", "two"]

    async def test_update_last_sync_at(self, db_session):
        tenant = make_tenant(db_session)
        first = make_data_source(db_session, tenant, name="one")
        second = make_data_source(db_session, tenant, name="two")
        await db_session.flush()
        repository = DataSourceRepository(db_session)

        first_id, second_id = first.id, second.id

        updated = await repository.update_last_sync_at([first_id], MAR_01)
        await db_session.commit()
        db_session.expire_all()

        assert updated == 1
        assert (await db_session.get(DataSource, first_id)).last_sync_at == MAR_01
        assert (await db_session.get(DataSource, second_id)).last_sync_at is None
        assert await repository.update_last_sync_at([], MAR_01) == 0
