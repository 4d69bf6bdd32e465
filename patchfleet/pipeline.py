"""Per-repository patch pipeline.

resolve branch → commit every file entry of the diff → open pull request

All steps run sequentially against the same resolved branch. The first
failing file aborts the repository, because a partially applied multi-file
diff is not a valid result; the exception propagates to the fleet, which
records it for this repository only.
"""
from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from patchfleet.diff.applier import apply, join_content, split_content
from patchfleet.errors import NotFoundError, PathExistsError, UnsupportedOperationError
from patchfleet.github.branches import BranchResolver
from patchfleet.github.client import GitHubClient
from patchfleet.github.store import GitHubFileStore
from patchfleet.models import (
    FileAction,
    FileChange,
    FileDiff,
    PullRequest,
    RemoteFileContent,
    Repository,
)
from patchfleet.utils.logger import log_debug, log_info, log_repository_progress

StoreFactory = Callable[[GitHubClient, Repository, str], GitHubFileStore]


def _require(store: GitHubFileStore, path: str) -> RemoteFileContent:
    remote = store.read(path)
    if remote is None:
        raise NotFoundError(
            f"{path} does not exist on {store.branch}",
            status_code=404,
            details={"repository": store.repository.full_name, "path": path},
        )
    return remote


def _text(remote: RemoteFileContent) -> str:
    try:
        return remote.text
    except UnicodeDecodeError as e:
        raise UnsupportedOperationError(f"{remote.path} is not UTF-8 text") from e


class RepositoryPatchPipeline:
    """Applies a parsed diff to one repository and opens a pull request."""

    def __init__(
        self,
        client: GitHubClient,
        *,
        pr_body: str = "Automated by patchfleet",
        draft: bool = False,
        resolver: Optional[BranchResolver] = None,
        store_factory: StoreFactory = GitHubFileStore,
    ):
        self.client = client
        self.pr_body = pr_body
        self.draft = draft
        self.resolver = resolver or BranchResolver(client)
        self.store_factory = store_factory

    def run(
        self,
        repository: Repository,
        file_diffs: Sequence[FileDiff],
        branch_name: str,
        commit_message: str,
        changes: Optional[List[FileChange]] = None,
    ) -> PullRequest:
        """Patch ``repository`` and return its pull request.

        ``changes``, when given, receives each committed file change as it
        happens, so a caller still sees what was written if a later file fails.
        """
        resolution = self.resolver.ensure_branch(repository, branch_name, repository.default_branch)
        branch = resolution.branch.name
        log_repository_progress(repository.full_name, "branch ready", branch=branch, created=resolution.created)

        store = self.store_factory(self.client, repository, branch)
        for file_diff in file_diffs:
            change = self.patch_file(store, file_diff, commit_message)
            log_info(
                "File committed" if change.action is not FileAction.UNCHANGED else "File already up to date",
                repository=repository.full_name,
                path=change.path,
                action=change.action.value,
            )
            if changes is not None:
                changes.append(change)

        return self.open_pull_request(repository, branch, commit_message)

    def patch_file(self, store: GitHubFileStore, file_diff: FileDiff, message: str) -> FileChange:
        """Perform exactly one of create, update or delete for ``file_diff``."""
        if file_diff.is_deletion:
            return self._delete(store, file_diff, message)
        if file_diff.is_creation:
            return self._create(store, file_diff, message)
        return self._update(store, file_diff, message)

    def _delete(self, store: GitHubFileStore, file_diff: FileDiff, message: str) -> FileChange:
        path = file_diff.source_path
        remote = _require(store, path)
        # verifies the hunks against the current content; the result is DELETED
        apply(split_content(_text(remote)), file_diff)
        store.delete(path, message, remote.sha)
        return FileChange(path=path, action=FileAction.DELETED)

    def _create(self, store: GitHubFileStore, file_diff: FileDiff, message: str) -> FileChange:
        path = file_diff.destination_path
        content = join_content(apply(None, file_diff)).encode("utf-8")
        log_debug("New file", path=path, content=content.decode("utf-8"))

        existing = store.read(path)
        if existing is None:
            store.create(path, content, message)
            return FileChange(path=path, action=FileAction.CREATED)
        if existing.content == content:
            return FileChange(path=path, action=FileAction.UNCHANGED)
        raise PathExistsError(
            f"{path} already exists on {store.branch} with different content",
            path=path,
            details={"repository": store.repository.full_name},
        )

    def _update(self, store: GitHubFileStore, file_diff: FileDiff, message: str) -> FileChange:
        remote = _require(store, file_diff.source_path)
        prior = _text(remote)
        log_debug("Existing file", path=remote.path, content=prior)

        content = join_content(apply(split_content(prior), file_diff)).encode("utf-8")
        log_debug("Patched file", path=file_diff.destination_path, content=content.decode("utf-8"))
        if content == remote.content and file_diff.source_path == file_diff.destination_path:
            return FileChange(path=file_diff.destination_path, action=FileAction.UNCHANGED)

        store.update(file_diff.destination_path, content, message, remote.sha)
        return FileChange(path=file_diff.destination_path, action=FileAction.UPDATED)

    def open_pull_request(self, repository: Repository, branch: str, title: str) -> PullRequest:
        """Open a pull request from ``branch``, reusing an open one for the same head."""
        owner, name = repository.owner, repository.name
        existing = self.client.find_open_pull_request(owner, name, branch)
        if existing:
            log_info("Pull request already open", repository=repository.full_name, number=existing.get("number"))
            return PullRequest(url=existing.get("html_url") or existing.get("url"), number=int(existing.get("number", 0)), reused=True)

        pr = self.client.create_pull_request(
            owner,
            name,
            head=branch,
            base=repository.default_branch,
            title=title,
            body=self.pr_body,
            draft=self.draft,
        )
        return PullRequest(url=pr.get("html_url") or pr.get("url"), number=int(pr.get("number", 0) or 0))
