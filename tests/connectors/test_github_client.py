"""Tests for the GitHub client wrapper."""

from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest
from githubkit.exception import RequestFailed

from tenant_sync.connectors.github import (
    GitHubAuthenticationError,
    GitHubClient,
    GitHubClientError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)
from tests.conftest import MAR_01, SEVEN_DAYS
from tests.factories import make_github_commit, make_github_repo


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
async def async_iter(items):
    """Convert a list to an async iterator for mocking paginate."""
    for item in items:
        yield item


async def failing_iter(error):
    """Async iterator that fails on first use, like a failed first page."""
    raise error
    yield  # pragma: no cover


def make_mock_data(data: dict) -> MagicMock:
    """Create a MagicMock that behaves like a githubkit response model."""
    mock = MagicMock()
    mock.model_dump.return_value = data
    return mock


def make_request_failed(status_code: int, headers: dict | None = None) -> RequestFailed:
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.headers = headers or {}
    return RequestFailed(mock_response)


@pytest.fixture
def mock_github():
    with patch("tenant_sync.connectors.github.client.GitHub") as mock_github_class:
        mock_github = MagicMock()
        mock_github_class.return_value = mock_github
        yield mock_github


class TestGitHubClientInit:
    """Tests for client initialization."""

    def test_init_with_token(self) -> None:
        client = GitHubClient("test-token")
        assert client._token == "test-token"

    @pytest.mark.parametrize("token", [None, ""])
    def test_init_without_token_raises(self, token) -> None:
        with pytest.raises(GitHubAuthenticationError) as exc_info:
            GitHubClient(token)
        assert "GITHUB_TOKEN" in str(exc_info.value)

    async def test_context_manager_clears_client(self) -> None:
        client = GitHubClient("test-token")
        client._client = MagicMock()

        async with client:
            assert client._client is not None

        assert client._client is None


class TestIterOrgRepositories:
    """Tests for organization repository listing."""

    async def test_yields_parsed_repositories(self, mock_github) -> None:
        mock_github.paginate.return_value = async_iter(
            [
                make_mock_data(make_github_repo(name="widgets")),
                make_mock_data(make_github_repo(name="gadgets")),
            ]
        )

        client = GitHubClient("test-token")
        repos = [repo async for repo in client.iter_org_repositories("acme")]

        assert [r.full_name for r in repos] == ["acme/widgets", "acme/gadgets"]
        call_kwargs = mock_github.paginate.call_args.kwargs
        assert call_kwargs["org"] == "acme"
        assert call_kwargs["type"] == "all"
        assert call_kwargs["per_page"] == 100

    async def test_skips_unparseable_items(self, mock_github) -> None:
        mock_github.paginate.return_value = async_iter(
            [make_mock_data({"name": "broken"}), make_mock_data(make_github_repo())]
        )

        client = GitHubClient("test-token")
        repos = [repo async for repo in client.iter_org_repositories("acme")]

        assert len(repos) == 1

    async def test_missing_org_raises_not_found(self, mock_github) -> None:
        mock_github.paginate.return_value = failing_iter(make_request_failed(404))

        client = GitHubClient("test-token")
        with pytest.raises(GitHubNotFoundError, match="acme"):
            [repo async for repo in client.iter_org_repositories("acme")]


class TestIterCommits:
    """Tests for commit listing."""

    async def test_passes_window(self, mock_github) -> None:
        mock_github.paginate.return_value = async_iter([make_mock_data(make_github_commit())])

        client = GitHubClient("test-token")
        commits = [
            c
            async for c in client.iter_commits(
                "acme", "widgets", since=MAR_01 - SEVEN_DAYS, until=MAR_01
            )
        ]

        assert commits[0].sha == "a" * 40
        assert commits[0].to_columns()["author_login"] == "octocat"
        call_kwargs = mock_github.paginate.call_args.kwargs
        assert call_kwargs["since"] == MAR_01 - SEVEN_DAYS
        assert call_kwargs["until"] == MAR_01
        assert (call_kwargs["owner"], call_kwargs["repo"]) == ("acme", "widgets")

    async def test_empty_repository_yields_nothing(self, mock_github) -> None:
        mock_github.paginate.return_value = failing_iter(make_request_failed(409))

        client = GitHubClient("test-token")
        commits = [
            c async for c in client.iter_commits("acme", "empty", since=MAR_01, until=MAR_01)
        ]

        assert commits == []

    async def test_missing_repository(self, mock_github) -> None:
        mock_github.paginate.return_value = failing_iter(make_request_failed(404))

        client = GitHubClient("test-token")
        with pytest.raises(GitHubNotFoundError, match="acme/gone"):
            [c async for c in client.iter_commits("acme", "gone", since=MAR_01, until=MAR_01)]


class TestErrorHandling:
    """Tests for _handle_error mapping."""

    def test_unauthorized(self) -> None:
        error = GitHubClient("t")._handle_error(make_request_failed(401))
        assert isinstance(error, GitHubAuthenticationError)

    def test_rate_limited(self) -> None:
        error = GitHubClient("t")._handle_error(
            make_request_failed(
                403, {"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1709294400"}
            )
        )

        assert isinstance(error, GitHubRateLimitError)
        assert error.reset_at == datetime(2024, 3, 1, 12, 0, tzinfo=UTC)

    def test_forbidden_without_rate_limit(self) -> None:
        error = GitHubClient("t")._handle_error(make_request_failed(403))
        assert type(error) is GitHubClientError

    def test_server_error(self) -> None:
        error = GitHubClient("t")._handle_error(make_request_failed(502))
        assert "502" in str(error)

    async def test_server_error_raised_from_iteration(self, mock_github) -> None:
        mock_github.paginate.return_value = failing_iter(make_request_failed(500))

        client = GitHubClient("test-token")
        with pytest.raises(GitHubClientError, match="500"):
            [repo async for repo in client.iter_org_repositories("acme")]
