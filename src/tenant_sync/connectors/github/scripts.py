"""GitHub connector scripts.

Both scripts upsert by natural key, so re-running a window after a
crash does not create duplicates.
"""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from tenant_sync.db.repositories import CommitRepository, RepositoryRepository
from tenant_sync.db.types import utc_now
from tenant_sync.logging import bind_script
from tenant_sync.sync.scripts import ExecutionContext, SyncScript

from .client import GitHubClient
from .exceptions import GitHubConfigurationError

PROVIDER = "github"


def _require(context: ExecutionContext, key: str) -> str:
    value = context.env.get(key)
    if not value:
        raise GitHubConfigurationError(f"Data source is missing config key {key}")
    return value


async def sync_repositories(session: AsyncSession, context: ExecutionContext) -> int:
    """Import every repository of the configured organization.

    Repositories are not time-bounded, so the date range is ignored.

    Env:
        GITHUB_TOKEN: Personal access token
        GITHUB_ORG: Organization login
    """
    org = _require(context, "GITHUB_ORG")
    repos = RepositoryRepository(session)
    synced_at = utc_now()
    count = 0

    async with GitHubClient(context.env.get("GITHUB_TOKEN")) as client:
        async for repo in client.iter_org_repositories(org):
            await repos.upsert(
                context.data_source_id,
                repo.owner.login,
                repo.name,
                last_synced_at=synced_at,
                **repo.to_columns(),
            )
            count += 1

    bind_script(context.data_source_id, f"{PROVIDER}:repository").debug(
        "Upserted {} repositories for {}", count, org
    )
    return count


async def sync_commits(session: AsyncSession, context: ExecutionContext) -> int:
    """Import commits in ``[start_date, end_date]`` for every known repository.

    Env:
        GITHUB_TOKEN: Personal access token
    """
    repos = await RepositoryRepository(session).list_for_data_source(context.data_source_id)
    commits = CommitRepository(session)
    log = bind_script(context.data_source_id, f"{PROVIDER}:commit")
    count = 0

    async with GitHubClient(context.env.get("GITHUB_TOKEN")) as client:
        for repo in repos:
            if repo.is_archived:
                continue
            async for commit in client.iter_commits(
                repo.owner,
                repo.name,
                since=context.start_date,
                until=context.end_date,
            ):
                await commits.upsert(repo.id, commit.sha, **commit.to_columns())
                count += 1
            log.debug("Synced commits for {}", repo.full_name)

    return count


repository_script = SyncScript(
    provider_name=PROVIDER,
    resource_name="repository",
    run=sync_repositories,
    retention_window=timedelta(days=365),
)

commit_script = SyncScript(
    provider_name=PROVIDER,
    resource_name="commit",
    run=sync_commits,
    depends_on=("repository", "contributor"),
    retention_window=timedelta(days=90),
)

SCRIPTS: list[SyncScript] = [repository_script, commit_script]
