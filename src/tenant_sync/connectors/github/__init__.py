"""GitHub connector: repositories and commits via githubkit."""

from .client import GitHubClient
from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubConfigurationError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)
from .scripts import SCRIPTS, commit_script, repository_script

__all__ = [
    "SCRIPTS",
    "GitHubAuthenticationError",
    "GitHubClient",
    "GitHubClientError",
    "GitHubConfigurationError",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "commit_script",
    "repository_script",
]
