"""Tests for RepositoryRepository and CommitRepository."""

from tenant_sync.db.repositories import CommitRepository, RepositoryRepository
from tests.conftest import JAN_08, JAN_15
from tests.factories import make_data_source, make_tenant


async def _data_source_id(db_session) -> str:
    data_source = make_data_source(db_session, make_tenant(db_session))
    await db_session.flush()
    return data_source.id


class TestRepositoryRepository:
    """Tests for provider repository storage."""

    async def test_upsert_creates(self, db_session):
        ds_id = await _data_source_id(db_session)
        repository = RepositoryRepository(db_session)

        repo, created = await repository.upsert(ds_id, "acme", "widgets", stars=5)

        assert created is True
        assert repo.full_name == "acme/widgets"
        assert repo.stars == 5

    async def test_upsert_updates_existing(self, db_session):
        ds_id = await _data_source_id(db_session)
        repository = RepositoryRepository(db_session)
        first, _ = await repository.upsert(ds_id, "acme", "widgets", stars=5)

        second, created = await repository.upsert(ds_id, "acme", "widgets", stars=8)

        assert created is False
        assert second.id == first.id
        assert second.stars == 8
        assert await repository.count() == 1

    async def test_get_by_full_name_scoped_to_data_source(self, db_session):
        ds_id = await _data_source_id(db_session)
        repository = RepositoryRepository(db_session)
        await repository.upsert(ds_id, "acme", "widgets")

        assert await repository.get_by_full_name(ds_id, "acme/widgets") is not None
        assert await repository.get_by_full_name("other-ds", "acme/widgets") is None

    async def test_list_for_data_source_sorted(self, db_session):
        ds_id = await _data_source_id(db_session)
        repository = RepositoryRepository(db_session)
        await repository.upsert(ds_id, "acme", "zeta")
        await repository.upsert(ds_id, "acme", "alpha")

        repos = await repository.list_for_data_source(ds_id)

        assert [r.full_name for r in repos] == ["acme/alpha", "acme/zeta"]


class TestCommitRepository:
    """Tests for commit storage."""

    async def test_upsert_is_idempotent(self, db_session):
        ds_id = await _data_source_id(db_session)
        repo, _ = await RepositoryRepository(db_session).upsert(ds_id, "acme", "widgets")
        commits = CommitRepository(db_session)

        _, created = await commits.upsert(repo.id, "a" * 40, message="first")
        commit, created_again = await commits.upsert(repo.id, "a" * 40, message="amended")

        assert created is True
        assert created_again is False
        assert commit.message == "amended"
        assert await commits.count() == 1

    async def test_list_for_repository_ordered_by_commit_time(self, db_session):
        ds_id = await _data_source_id(db_session)
        repo, _ = await RepositoryRepository(db_session).upsert(ds_id, "acme", "widgets")
        commits = CommitRepository(db_session)
        await commits.upsert(repo.id, "b" * 40, committed_at=JAN_15)
        await commits.upsert(repo.id, "a" * 40, committed_at=JAN_08)

        listed = await commits.list_for_repository(repo.id)

        assert [c.sha[0] for c in listed] == ["a", "b"]
        assert await commits.get_by_sha(repo.id, "c" * 40) is None
