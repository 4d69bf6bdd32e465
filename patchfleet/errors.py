"""Exception hierarchy for patchfleet.

Errors fall into four families that the fleet report keeps apart:

- ``InputError``: bad diff, bad selection, bad configuration. Raised before
  any remote mutation and fatal to the whole run.
- ``ConflictError``: the remote state no longer matches what the diff or the
  caller expected (hunk mismatch, stale version token, path already exists).
- ``RemoteApiError``: transport, permission, rate limit and other HTTP
  failures of the hosting API.
- ``UnsupportedOperationError``: an operation that is explicitly refused.

Conflict and remote errors abort one repository's pipeline only.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional


class PatchfleetError(RuntimeError):
    """Base class for every error raised by patchfleet."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})


class InputError(PatchfleetError):
    """Invalid user input; the run aborts before touching any repository."""


class DiffParseError(InputError):
    """The diff file could not be read or parsed."""


class SelectionError(InputError):
    """The repository selection returned by the editor is malformed."""


class ConfigurationError(InputError):
    """Required configuration (e.g. the GitHub token) is missing or invalid."""


class ConflictError(PatchfleetError):
    """Remote content does not match what the change was prepared against."""

    def __init__(self, message: str, *, path: Optional[str] = None, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message, details=details)
        self.path = path


class PatchDoesNotApplyError(ConflictError):
    """A hunk's context or removed lines differ from the prior content."""


class StaleVersionError(ConflictError):
    """The version token sent with a write is no longer current."""


class PathExistsError(ConflictError):
    """A file that the diff creates already exists on the branch."""


class RemoteApiError(PatchfleetError):
    """The hosting API returned an error or could not be reached."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.status_code = status_code


class NotFoundError(RemoteApiError):
    """The requested resource does not exist (HTTP 404)."""


class PermissionDeniedError(RemoteApiError):
    """The token is not allowed to perform the request (HTTP 401/403)."""


class RateLimitError(RemoteApiError):
    """The API quota is exhausted."""


class TransportError(RemoteApiError):
    """Timeout or connection failure; no HTTP response was received."""


class UnsupportedOperationError(PatchfleetError):
    """The requested operation is not supported."""


_KINDS = (
    (InputError, "input"),
    (ConflictError, "conflict"),
    (NotFoundError, "not-found"),
    (PermissionDeniedError, "permission"),
    (RateLimitError, "rate-limit"),
    (TransportError, "transport"),
    (RemoteApiError, "remote"),
    (UnsupportedOperationError, "unsupported"),
)


def error_kind(exc: BaseException) -> str:
    """Return the short report label for ``exc``."""
    for cls, kind in _KINDS:
        if isinstance(exc, cls):
            return kind
    return "unexpected"
