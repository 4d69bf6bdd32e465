"""GitHub REST adapters: pooled client, versioned file store, branch resolver."""

from patchfleet.github.branches import BranchResolver
from patchfleet.github.client import GitHubClient
from patchfleet.github.store import GitHubFileStore

__all__ = ["BranchResolver", "GitHubClient", "GitHubFileStore"]
