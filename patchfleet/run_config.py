"""Immutable per-run configuration.

``RunConfig`` captures everything one invocation needs: the credential, the
target organization and query, the diff, the commit message and the branch.
It is built once from the parsed command line on top of the global
``Config`` and then passed down explicitly, so no layer reads ``os.environ``
or the global singleton for run-scoped values.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, TYPE_CHECKING

from patchfleet.errors import ConfigurationError

if TYPE_CHECKING:
    from patchfleet.config import Config


def default_branch_name(commit_message: str) -> str:
    """Branch name derived from the commit message.

    Deterministic so that re-running with the same message resumes on the
    same branch.
    """
    return commit_message.replace(" ", "-")


def resolve_token(
    token: Optional[str],
    token_variable: Optional[str],
    environ: Mapping[str, str] = os.environ,
) -> str:
    """Return the GitHub token given directly or via a named variable.

    Exactly one source must be provided.
    """
    if token and token_variable:
        raise ConfigurationError("--token and --token-variable are mutually exclusive")
    if token:
        return token
    if token_variable:
        value = environ.get(token_variable, "")
        if not value.strip():
            raise ConfigurationError(f"Environment variable {token_variable} is not set or empty")
        return value.strip()
    raise ConfigurationError("A GitHub token is required (--token or --token-variable)")


@dataclass(frozen=True)
class RunConfig:
    """Immutable, per-run configuration."""

    token: str = field(repr=False)
    organization: str
    patch_path: Path
    commit_message: str
    branch_name: str
    search_query: str = ""
    search_limit: int = 30

    # --- Transport ----------------------------------------------------------
    api_url: str = "https://api.github.com"
    request_timeout: float = 5.0
    max_workers: int = 1

    # --- Pull requests ------------------------------------------------------
    pr_body: str = "Automated by patchfleet"
    draft: bool = False

    # --- Diagnostics --------------------------------------------------------
    debug: bool = False
    audit_path: Optional[str] = None

    @property
    def repository_query(self) -> str:
        """Search query restricted to the organization."""
        return f"org:{self.organization} {self.search_query}".strip()

    @classmethod
    def from_args(
        cls,
        args: Any,
        config: Config,
        environ: Mapping[str, str] = os.environ,
    ) -> RunConfig:
        """Build a ``RunConfig`` from parsed CLI arguments.

        Command line values win; anything left unset falls back to the
        global ``Config``.
        """
        message = (args.message or "").strip()
        if not message:
            raise ConfigurationError("Commit message must not be empty")
        branch = args.branch or default_branch_name(message)
        limit = args.limit if args.limit is not None else config.search_limit
        if limit < 1:
            raise ConfigurationError("--limit must be at least 1")
        workers = args.workers if args.workers is not None else config.max_workers
        if workers < 1:
            raise ConfigurationError("--workers must be at least 1")

        return cls(
            token=resolve_token(args.token, args.token_variable, environ),
            organization=args.org,
            patch_path=Path(args.patch),
            commit_message=message,
            branch_name=branch,
            search_query=args.query or "",
            search_limit=limit,
            api_url=(args.api_url or config.api_url).rstrip("/"),
            request_timeout=args.timeout if args.timeout is not None else config.request_timeout,
            max_workers=workers,
            pr_body=config.pr_body,
            draft=bool(args.draft) or config.draft_pull_requests,
            debug=bool(args.debug),
            audit_path=config.audit_path or None,
        )
