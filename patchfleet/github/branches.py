"""Find-or-create of the working branch."""
from __future__ import annotations

from patchfleet.errors import NotFoundError
from patchfleet.github.client import GitHubClient
from patchfleet.models import BranchResolution, Repository
from patchfleet.utils.logger import log_info


class BranchResolver:
    """Ensures a named branch exists, creating it from a base branch if absent."""

    def __init__(self, client: GitHubClient):
        self.client = client

    def ensure_branch(self, repository: Repository, branch_name: str, base_ref: str) -> BranchResolution:
        """Return the existing branch, or create it at ``base_ref``'s head.

        Only a "not found" lookup leads to creation. After creating the ref the
        branch is fetched again, so callers always get the canonical record.
        Any other failure propagates.
        """
        owner, name = repository.owner, repository.name
        try:
            branch = self.client.get_branch(owner, name, branch_name)
            log_info("Reusing existing branch", repository=repository.full_name, branch=branch_name)
            return BranchResolution(branch=branch, created=False)
        except NotFoundError:
            pass

        log_info(
            "Branch does not exist, creating",
            repository=repository.full_name,
            branch=branch_name,
            base=base_ref,
        )
        base_sha = self.client.get_branch_head_sha(owner, name, base_ref)
        self.client.create_branch_ref(owner, name, branch_name, base_sha)
        branch = self.client.get_branch(owner, name, branch_name)
        return BranchResolution(branch=branch, created=True)
