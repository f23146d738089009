"""Pydantic schemas for parsing GitHub API responses.

These schemas map directly to the GitHub REST API response structure.
See: https://docs.github.com/en/rest/repos/repos
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class GitHubOwner(BaseModel):
    """GitHub user/org object from API responses."""

    login: str = Field(description="GitHub username or org name")
    id: int = Field(description="GitHub user ID")


class GitHubRepository(BaseModel):
    """GitHub repository object.

    Maps to: GET /orgs/{org}/repos
    """

    id: int = Field(description="Repository ID")
    name: str = Field(description="Repository name")
    full_name: str = Field(description="owner/name")
    owner: GitHubOwner = Field(description="Owning user or org")
    description: str | None = Field(default=None, description="Repository description")
    html_url: str = Field(description="GitHub repository URL")
    language: str | None = Field(default=None, description="Primary language")
    stargazers_count: int = Field(default=0, description="Stars")
    forks_count: int = Field(default=0, description="Forks")
    private: bool = Field(default=False, description="Whether the repository is private")
    archived: bool = Field(default=False, description="Whether the repository is archived")
    pushed_at: datetime | None = Field(default=None, description="Last push timestamp")

    def to_columns(self) -> dict[str, Any]:
        """Column values for RepositoryRepository.upsert."""
        return {
            "description": self.description,
            "url": self.html_url,
            "language": self.language,
            "stars": self.stargazers_count,
            "forks": self.forks_count,
            "is_private": self.private,
            "is_archived": self.archived,
            "pushed_at": self.pushed_at,
        }


class GitHubCommitAuthor(BaseModel):
    """Commit author info (from git, not GitHub user)."""

    name: str | None = Field(default=None, description="Author name")
    email: str | None = Field(default=None, description="Author email")
    date: datetime | None = Field(default=None, description="Commit date (UTC)")


class GitHubCommitDetail(BaseModel):
    """Nested commit detail object."""

    author: GitHubCommitAuthor | None = Field(default=None, description="Commit author info")
    message: str = Field(default="", description="Commit message")


class GitHubCommit(BaseModel):
    """GitHub commit object from the commits endpoint.

    Maps to: GET /repos/{owner}/{repo}/commits
    """

    sha: str = Field(description="Commit SHA")
    html_url: str | None = Field(default=None, description="GitHub commit URL")
    commit: GitHubCommitDetail = Field(description="Commit details")
    author: GitHubOwner | None = Field(default=None, description="Linked GitHub user")

    def to_columns(self) -> dict[str, Any]:
        """Column values for CommitRepository.upsert."""
        git_author = self.commit.author
        return {
            "message": self.commit.message,
            "author_name": git_author.name if git_author else None,
            "author_email": git_author.email if git_author else None,
            "author_login": self.author.login if self.author else None,
            "committed_at": git_author.date if git_author else None,
            "url": self.html_url,
        }
