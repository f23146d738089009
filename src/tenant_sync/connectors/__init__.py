"""Bundled connector scripts, keyed by provider."""

from tenant_sync.sync.scripts import SyncScript

from .github import SCRIPTS as GITHUB_SCRIPTS

PROVIDER_SCRIPTS: dict[str, list[SyncScript]] = {
    "github": GITHUB_SCRIPTS,
}

__all__ = ["PROVIDER_SCRIPTS"]
