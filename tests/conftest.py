"""Pytest configuration and fixtures for patchfleet tests."""

import hashlib
import textwrap
from typing import Any, Dict, List, Optional

import pytest

# Add the project root to the Python path
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from patchfleet.errors import NotFoundError, RemoteApiError  # noqa: E402
from patchfleet.github.encoding import decode_content, encode_content  # noqa: E402
from patchfleet.models import Branch, Repository  # noqa: E402


def blob_sha(content: bytes) -> str:
    return hashlib.sha1(content).hexdigest()


def wrapped_base64(content: bytes) -> str:
    """Base64 wrapped at 60 columns, the way the contents API returns it."""
    return "\n".join(textwrap.wrap(encode_content(content), 60)) + "\n"


class FakeGitHub:
    """In-memory stand-in for ``GitHubClient``.

    Models branches as file snapshots, enforces blob SHA version tokens the
    way the contents API does, and records every call in ``calls``. Set
    ``fail[method_name]`` to an exception to make that method raise it.
    """

    def __init__(self):
        self.branch_heads: Dict[tuple, str] = {}
        self.files: Dict[tuple, Dict[str, bytes]] = {}
        self.pulls: List[Dict[str, Any]] = []
        self.repositories: List[Repository] = []
        self.calls: List[tuple] = []
        self.fail: Dict[str, Exception] = {}
        self.closed = False
        self._commits = 0

    # -- test helpers ------------------------------------------------------

    def add_repository(self, repository: Repository, files: Optional[Dict[str, str]] = None) -> Repository:
        self.repositories.append(repository)
        key = (repository.full_name, repository.default_branch)
        self.files[key] = {path: text.encode("utf-8") for path, text in (files or {}).items()}
        self.branch_heads[key] = self._next_commit()
        return repository

    def file_text(self, repository: Repository, branch: str, path: str) -> Optional[str]:
        content = self.files.get((repository.full_name, branch), {}).get(path)
        return None if content is None else content.decode("utf-8")

    def set_file(self, repository: Repository, branch: str, path: str, text: str) -> None:
        """Simulate another writer changing a file."""
        self.files[(repository.full_name, branch)][path] = text.encode("utf-8")
        self.branch_heads[(repository.full_name, branch)] = self._next_commit()

    def mutating_calls(self) -> List[tuple]:
        mutating = {"create_branch_ref", "put_file", "delete_file", "create_pull_request"}
        return [c for c in self.calls if c[0] in mutating]

    def _next_commit(self) -> str:
        self._commits += 1
        return f"{self._commits:040x}"

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.fail:
            raise self.fail[name]

    def _branch_files(self, owner: str, repo: str, branch: str) -> Dict[str, bytes]:
        key = (f"{owner}/{repo}", branch)
        if key not in self.files:
            raise NotFoundError(f"Branch {branch} not found", status_code=404)
        return self.files[key]

    # -- GitHubClient surface ----------------------------------------------

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self.closed = True

    def search_repositories(self, query: str, limit: int = 30) -> List[Repository]:
        self._record("search_repositories", query, limit)
        return self.repositories[:limit]

    def get_branch(self, owner: str, repo: str, branch: str) -> Branch:
        self._record("get_branch", owner, repo, branch)
        key = (f"{owner}/{repo}", branch)
        if key not in self.branch_heads:
            raise NotFoundError(f"Branch {branch} not found", status_code=404)
        return Branch(name=branch, sha=self.branch_heads[key])

    def get_branch_head_sha(self, owner: str, repo: str, branch: str) -> str:
        self._record("get_branch_head_sha", owner, repo, branch)
        key = (f"{owner}/{repo}", branch)
        if key not in self.branch_heads:
            raise NotFoundError(f"Reference heads/{branch} not found", status_code=404)
        return self.branch_heads[key]

    def create_branch_ref(self, owner: str, repo: str, branch: str, sha: str) -> Dict[str, Any]:
        self._record("create_branch_ref", owner, repo, branch, sha)
        full_name = f"{owner}/{repo}"
        if (full_name, branch) in self.branch_heads:
            raise RemoteApiError("Reference already exists", status_code=422)
        source = next(
            key for key, head in self.branch_heads.items() if key[0] == full_name and head == sha
        )
        self.files[(full_name, branch)] = dict(self.files[source])
        self.branch_heads[(full_name, branch)] = sha
        return {"ref": f"refs/heads/{branch}", "object": {"sha": sha}}

    def get_file(self, owner: str, repo: str, path: str, ref: str) -> Dict[str, Any]:
        self._record("get_file", owner, repo, path, ref)
        files = self._branch_files(owner, repo, ref)
        if path not in files:
            raise NotFoundError(f"{path} not found", status_code=404)
        content = files[path]
        return {
            "type": "file",
            "path": path,
            "sha": blob_sha(content),
            "encoding": "base64",
            "content": wrapped_base64(content),
        }

    def put_file(self, owner, repo, path, *, content, message, branch, sha=None) -> Dict[str, Any]:
        self._record("put_file", owner, repo, path, branch, sha)
        files = self._branch_files(owner, repo, branch)
        if sha is None and path in files:
            raise RemoteApiError('Invalid request. "sha" wasn\'t supplied.', status_code=422)
        if sha is not None:
            if path not in files:
                raise RemoteApiError(f"{path} does not match {sha}", status_code=409)
            if blob_sha(files[path]) != sha:
                raise RemoteApiError(f"{path} does not match {sha}", status_code=409)
        files[path] = decode_content(content)
        commit = self._next_commit()
        self.branch_heads[(f"{owner}/{repo}", branch)] = commit
        return {"content": {"path": path, "sha": blob_sha(files[path])}, "commit": {"sha": commit, "message": message}}

    def delete_file(self, owner, repo, path, *, message, sha, branch) -> Dict[str, Any]:
        self._record("delete_file", owner, repo, path, branch, sha)
        files = self._branch_files(owner, repo, branch)
        if path not in files:
            raise NotFoundError(f"{path} not found", status_code=404)
        if blob_sha(files[path]) != sha:
            raise RemoteApiError(f"{path} does not match {sha}", status_code=409)
        del files[path]
        commit = self._next_commit()
        self.branch_heads[(f"{owner}/{repo}", branch)] = commit
        return {"content": None, "commit": {"sha": commit, "message": message}}

    def find_open_pull_request(self, owner: str, repo: str, head: str) -> Optional[Dict[str, Any]]:
        self._record("find_open_pull_request", owner, repo, head)
        for pr in self.pulls:
            if pr["repository"] == f"{owner}/{repo}" and pr["head"] == head:
                return pr
        return None

    def create_pull_request(self, owner, repo, *, head, base, title, body, draft=False) -> Dict[str, Any]:
        self._record("create_pull_request", owner, repo, head, base)
        number = len(self.pulls) + 1
        pr = {
            "repository": f"{owner}/{repo}",
            "number": number,
            "html_url": f"https://github.com/{owner}/{repo}/pull/{number}",
            "head": head,
            "base": base,
            "title": title,
            "body": body,
            "draft": draft,
        }
        self.pulls.append(pr)
        return pr


@pytest.fixture
def fake_github():
    """Empty in-memory GitHub."""
    return FakeGitHub()


@pytest.fixture
def repository(fake_github):
    """Repository ``acme/widgets`` with one text file on ``main``."""
    return fake_github.add_repository(
        Repository(owner="acme", name="widgets", default_branch="main"),
        files={"bar.txt": "x\ny\nz"},
    )


@pytest.fixture
def addition_diff():
    """Diff creating ``foo.txt`` with lines ``a`` and ``b``."""
    return (
        "--- /dev/null\n"
        "+++ b/foo.txt\n"
        "@@ -0,0 +1,2 @@\n"
        "+a\n"
        "+b\n"
    )


@pytest.fixture
def modification_diff():
    """Diff replacing line 2 of ``bar.txt``."""
    return (
        "--- a/bar.txt\n"
        "+++ b/bar.txt\n"
        "@@ -1,3 +1,3 @@\n"
        " x\n"
        "-y\n"
        "+Y\n"
        " z\n"
    )


@pytest.fixture
def deletion_diff():
    """Diff deleting ``bar.txt``."""
    return (
        "--- a/bar.txt\n"
        "+++ /dev/null\n"
        "@@ -1,3 +0,0 @@\n"
        "-x\n"
        "-y\n"
        "-z\n"
    )
