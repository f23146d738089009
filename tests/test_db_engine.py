"""Tests for database engine and session management."""

from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy import pool, text

from tenant_sync.config import OrchestratorConfig
from tenant_sync.db import engine as engine_module
from tenant_sync.db.engine import build_engine, build_session_factory
from tenant_sync.db.models import Tenant

from tests.conftest import MAR_01


class TestDatabaseEngine:
    """Tests for async SQLAlchemy engine operations."""

    async def test_create_tables(self, test_engine):
        """Test that all tables are created successfully."""
        async with test_engine.connect() as conn:
            result = await conn.execute(text("SELECT name FROM sqlite_master WHERE type='table'"))
            tables = {row[0] for row in result.fetchall()}

        assert {
            "tenants",
            "data_sources",
            "data_source_configs",
            "data_source_runs",
            "import_batches",
            "sync_locks",
            "repositories",
            "commits",
        } <= tables

    def test_sqlite_engine_uses_null_pool(self, tmp_path):
        """SQLite engines do not share pooled connections."""
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'pool.db'}")
        assert isinstance(engine.pool, pool.NullPool)

    async def test_session_commits_on_success(self, session_factory):
        """Committed rows are visible from a new session."""
        async with session_factory() as session:
            tenant = Tenant(name="Acme")
            session.add(tenant)
            await session.commit()
            tenant_id = tenant.id

        async with session_factory() as session:
            result = await session.get(Tenant, tenant_id)
            assert result is not None
            assert result.name == "Acme"

    async def test_session_rollbacks_on_error(self, session_factory):
        """Rolled back rows are not persisted."""
        async with session_factory() as session:
            tenant = Tenant(name="Ghost")
            session.add(tenant)
            await session.flush()
            tenant_id = tenant.id
            await session.rollback()

        async with session_factory() as session:
            assert await session.get(Tenant, tenant_id) is None


def test_build_session_factory_keeps_objects_loaded(tmp_path):
    factory = build_session_factory(build_engine(f"sqlite+aiosqlite:///{tmp_path / 'f.db'}"))
    assert factory.kw["expire_on_commit"] is False


def test_server_pool_sized_for_held_locks():
    config = OrchestratorConfig(max_concurrent_graphs=10, max_concurrent_scripts=5)

    with patch.object(engine_module, "create_async_engine") as create:
        build_engine("postgresql+asyncpg://u:p@db/sync", pool_size=config.connection_pool_size)

    kwargs = create.call_args.kwargs
    assert kwargs["pool_size"] == 102
    assert kwargs["max_overflow"] == 10
    assert kwargs["pool_pre_ping"] is True


def test_sqlite_ignores_pool_size():
    with patch.object(engine_module, "create_async_engine") as create:
        build_engine("sqlite+aiosqlite:///x.db", pool_size=50)

    kwargs = create.call_args.kwargs
    assert kwargs["poolclass"] is pool.NullPool
    assert "pool_size" not in kwargs


class TestUTCDateTime:
    """Datetimes round-trip through SQLite as aware UTC values."""

    async def test_aware_datetimes_round_trip(self, session_factory):
        async with session_factory() as session:
            tenant = Tenant(name="Acme", created_at=MAR_01)
            session.add(tenant)
            await session.commit()
            tenant_id = tenant.id

        async with session_factory() as session:
            fetched = await session.get(Tenant, tenant_id)

        assert fetched.created_at == MAR_01
        assert fetched.created_at.tzinfo is not None

    async def test_offsets_are_normalized_to_utc(self, session_factory):
        plus_two = datetime(2024, 3, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        async with session_factory() as session:
            tenant = Tenant(name="Acme", created_at=plus_two)
            session.add(tenant)
            await session.commit()
            tenant_id = tenant.id

        async with session_factory() as session:
            fetched = await session.get(Tenant, tenant_id)

        assert fetched.created_at == MAR_01
        assert fetched.created_at.utcoffset() == timedelta(0)
        assert fetched.created_at.tzinfo == UTC


class TestGlobalEngine:
    """Tests for the settings-driven engine singleton."""

    @pytest.fixture(autouse=True)
    async def _isolated_engine(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'global.db'}")
        await engine_module.dispose_engine()
        yield
        await engine_module.dispose_engine()

    async def test_get_engine_is_cached(self):
        assert engine_module.get_engine() is engine_module.get_engine()

    async def test_get_session_commits(self):
        await engine_module.create_tables()
        async with engine_module.get_session() as session:
            session.add(Tenant(name="Acme"))

        async with engine_module.get_session() as session:
            result = await session.execute(text("SELECT count(*) FROM tenants"))
            assert result.scalar() == 1

    async def test_get_session_rolls_back_on_error(self):
        await engine_module.create_tables()
        with pytest.raises(RuntimeError):
            async with engine_module.get_session() as session:
                session.add(Tenant(name="Acme"))
                await session.flush()
                raise RuntimeError("boom")

        async with engine_module.get_session() as session:
            result = await session.execute(text("SELECT count(*) FROM tenants"))
            assert result.scalar() == 0

    async def test_dispose_resets_singletons(self):
        first = engine_module.get_engine()
        await engine_module.dispose_engine()
        assert engine_module.get_engine() is not first

