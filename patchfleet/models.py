"""Data classes shared by the diff, GitHub and pipeline layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class Repository:
    """A repository selected for patching.

    Attributes:
        owner: Organization or user that owns the repository.
        name: Repository name without the owner.
        default_branch: Branch pull requests are opened against.
    """

    owner: str
    name: str
    default_branch: str = "main"

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> Repository:
        """Build from a search or repository API item."""
        owner = (item.get("owner") or {}).get("login") or item["full_name"].split("/", 1)[0]
        return cls(owner=owner, name=item["name"], default_branch=item.get("default_branch") or "main")


@dataclass(frozen=True)
class Branch:
    name: str
    sha: str


@dataclass(frozen=True)
class BranchResolution:
    """Result of a find-or-create branch lookup.

    ``created`` is False when an existing branch was reused, which is how a
    re-run with the same commit message resumes on the same branch.
    """

    branch: Branch
    created: bool


@dataclass(frozen=True)
class HunkLine:
    kind: str  # " " context, "-" removed, "+" added
    text: str


@dataclass(frozen=True)
class Hunk:
    """One ``@@`` block of a unified diff. Line numbers are 1-based.

    ``source_no_newline`` and ``target_no_newline`` record a
    ``\\ No newline at end of file`` marker on the last line of that side.
    """

    source_start: int
    source_length: int
    target_start: int
    target_length: int
    lines: Tuple[HunkLine, ...] = ()
    source_no_newline: bool = False
    target_no_newline: bool = False

    @property
    def has_newline_marker(self) -> bool:
        return self.source_no_newline or self.target_no_newline

    @property
    def source_lines(self) -> list[str]:
        """Lines the hunk expects to find (context and removed)."""
        return [line.text for line in self.lines if line.kind in (" ", "-")]

    @property
    def target_lines(self) -> list[str]:
        """Lines the hunk leaves behind (context and added)."""
        return [line.text for line in self.lines if line.kind in (" ", "+")]


@dataclass(frozen=True)
class FileDiff:
    """Changes to a single file.

    ``source_path`` is None for a new file and ``destination_path`` is None
    for a deleted file.
    """

    source_path: Optional[str]
    destination_path: Optional[str]
    hunks: Tuple[Hunk, ...] = ()

    @property
    def is_creation(self) -> bool:
        return self.source_path is None and self.destination_path is not None

    @property
    def is_deletion(self) -> bool:
        return self.destination_path is None

    @property
    def path(self) -> str:
        return self.destination_path if self.destination_path is not None else self.source_path  # type: ignore[return-value]


@dataclass(frozen=True)
class RemoteFileContent:
    path: str
    content: bytes
    sha: str

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")


@dataclass(frozen=True)
class PullRequest:
    url: str
    number: int
    reused: bool = False


class FileAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class FileChange:
    path: str
    action: FileAction


class ApplyOutcome(Enum):
    DELETED = "deleted"


# Returned by the diff applier instead of new content for deletions.
DELETED = ApplyOutcome.DELETED


@dataclass(frozen=True)
class PatchResult:
    """Outcome of patching one repository.

    Attributes:
        repository: The repository the pipeline ran against.
        pull_request_url: URL of the opened (or reused) pull request on success.
        files: File changes committed before the pipeline finished or failed.
        error: Failure message, ``None`` on success.
        error_kind: Short failure category (see ``patchfleet.errors.error_kind``).
    """

    repository: Repository
    pull_request_url: Optional[str] = None
    files: Tuple[FileChange, ...] = field(default_factory=tuple)
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repository": self.repository.full_name,
            "ok": self.ok,
            "pull_request_url": self.pull_request_url,
            "files": [{"path": f.path, "action": f.action.value} for f in self.files],
            "error": self.error,
            "error_kind": self.error_kind,
        }
