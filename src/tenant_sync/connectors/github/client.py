"""Async GitHub API client wrapper using githubkit.

This module provides a typed async interface to the GitHub REST API
for the repository and commit connectors.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import Any

from githubkit import GitHub
from githubkit.exception import RequestFailed
from pydantic import ValidationError

from tenant_sync.logging import get_logger

from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)
from .schemas import GitHubCommit, GitHubRepository

logger = get_logger(__name__)


class GitHubClient:
    """Async GitHub API client for one data source's credentials.

    Usage:
        async with GitHubClient(token) as client:
            async for repo in client.iter_org_repositories("acme"):
                print(repo.full_name)
    """

    def __init__(self, token: str | None) -> None:
        """Initialize the GitHub client.

        Args:
            token: GitHub PAT from the data source config (GITHUB_TOKEN)

        Raises:
            GitHubAuthenticationError: If no token is available.
        """
        if not token:
            raise GitHubAuthenticationError(
                "GitHub token required. Set GITHUB_TOKEN on the data source."
            )
        self._token = token
        self._client: GitHub[Any] | None = None

    @property
    def _github(self) -> GitHub[Any]:
        """Get or create the githubkit client instance."""
        if self._client is None:
            self._client = GitHub(self._token)
        return self._client

    async def close(self) -> None:
        """Drop the underlying githubkit client."""
        self._client = None

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Repositories
    # -------------------------------------------------------------------------
    async def iter_org_repositories(
        self,
        org: str,
        *,
        per_page: int = 100,
    ) -> AsyncIterator[GitHubRepository]:
        """Iterate over every repository in an organization.

        Args:
            org: Organization login
            per_page: Results per page (max 100)

        Yields:
            GitHubRepository objects

        Raises:
            GitHubNotFoundError: If the organization doesn't exist
        """
        try:
            repo_data: Any
            async for repo_data in self._github.paginate(
                self._github.rest.repos.async_list_for_org,
                org=org,
                type="all",
                per_page=per_page,
            ):
                try:
                    yield GitHubRepository.model_validate(repo_data.model_dump())
                except ValidationError as e:
                    logger.debug("Skipping unparseable repository in {}: {}", org, e)
                    continue
        except RequestFailed as e:
            if e.response.status_code == 404:
                raise GitHubNotFoundError(f"Organization '{org}' not found") from e
            raise self._handle_error(e) from e

    # -------------------------------------------------------------------------
    # Commits
    # -------------------------------------------------------------------------
    async def iter_commits(
        self,
        owner: str,
        repo: str,
        *,
        since: datetime,
        until: datetime,
        per_page: int = 100,
    ) -> AsyncIterator[GitHubCommit]:
        """Iterate over commits in a time window.

        Empty repositories (409) yield nothing.

        Args:
            owner: Repository owner
            repo: Repository name
            since: Only commits after this instant
            until: Only commits before this instant
            per_page: Results per page (max 100)

        Yields:
            GitHubCommit objects, newest first
        """
        try:
            commit_data: Any
            async for commit_data in self._github.paginate(
                self._github.rest.repos.async_list_commits,
                owner=owner,
                repo=repo,
                since=since,
                until=until,
                per_page=per_page,
            ):
                try:
                    yield GitHubCommit.model_validate(commit_data.model_dump())
                except ValidationError as e:
                    logger.debug("Skipping unparseable commit in {}/{}: {}", owner, repo, e)
                    continue
        except RequestFailed as e:
            if e.response.status_code == 409:
                logger.debug("Repository {}/{} is empty", owner, repo)
                return
            if e.response.status_code == 404:
                raise GitHubNotFoundError(f"Repository {owner}/{repo} not found") from e
            raise self._handle_error(e) from e

    # -------------------------------------------------------------------------
    # Error Handling
    # -------------------------------------------------------------------------
    def _handle_error(self, error: RequestFailed) -> GitHubClientError:
        """Convert githubkit exceptions to our custom exceptions."""
        status = error.response.status_code

        if status == 401:
            return GitHubAuthenticationError("Invalid GitHub token")
        elif status == 403:
            headers = error.response.headers
            if "x-ratelimit-remaining" in headers:
                remaining = int(headers.get("x-ratelimit-remaining", "0"))
                if remaining == 0:
                    reset_ts = int(headers.get("x-ratelimit-reset", "0"))
                    reset_at = datetime.fromtimestamp(reset_ts, tz=UTC) if reset_ts else None
                    return GitHubRateLimitError(
                        "GitHub rate limit exceeded",
                        reset_at=reset_at,
                    )
            return GitHubClientError(f"Access forbidden: {error}")
        elif status == 404:
            return GitHubNotFoundError(str(error))
        else:
            return GitHubClientError(f"GitHub API error ({status}): {error}")
