"""File store adapter over the GitHub contents API.

Each instance is bound to one repository and one branch. Reads return the
file bytes together with the blob SHA, and every update or delete must pass
that SHA back as its version token. GitHub rejects a write whose token is
no longer current, which surfaces here as ``StaleVersionError`` instead of
silently overwriting another writer's change.
"""
from __future__ import annotations

from typing import Optional

from patchfleet.errors import NotFoundError, PathExistsError, RemoteApiError, StaleVersionError
from patchfleet.github.client import GitHubClient
from patchfleet.github.encoding import decode_content, encode_content
from patchfleet.models import RemoteFileContent, Repository
from patchfleet.utils.logger import log_debug


class GitHubFileStore:
    """Versioned get/create/update/delete of single files on a branch."""

    def __init__(self, client: GitHubClient, repository: Repository, branch: str):
        self.client = client
        self.repository = repository
        self.branch = branch

    def read(self, path: str) -> Optional[RemoteFileContent]:
        """Return the file at ``path`` on the branch, or None if it does not exist.

        Only a 404 is turned into None; every other failure propagates.
        """
        try:
            body = self.client.get_file(self.repository.owner, self.repository.name, path, ref=self.branch)
        except NotFoundError:
            log_debug("File not found on branch", repository=self.repository.full_name, path=path)
            return None
        if not isinstance(body, dict) or body.get("type", "file") != "file":
            raise RemoteApiError(
                f"{path} is not a regular file",
                details={"repository": self.repository.full_name, "path": path},
            )
        # files above 1 MB come back with encoding "none" and no content
        encoding = body.get("encoding", "base64")
        if encoding != "base64":
            raise RemoteApiError(
                f"{path} content is not available inline (encoding {encoding!r})",
                details={"repository": self.repository.full_name, "path": path, "encoding": encoding},
            )
        return RemoteFileContent(
            path=body.get("path", path),
            content=decode_content(body.get("content", "")),
            sha=body["sha"],
        )

    def create(self, path: str, content: bytes, message: str) -> dict:
        """Create a new file; fails with ``PathExistsError`` if it already exists."""
        try:
            return self.client.put_file(
                self.repository.owner, self.repository.name, path,
                content=encode_content(content), message=message, branch=self.branch,
            )
        except RemoteApiError as e:
            if e.status_code in (409, 422):
                raise PathExistsError(
                    f"{path} already exists on {self.branch}",
                    path=path,
                    details={"repository": self.repository.full_name, "status_code": e.status_code},
                ) from e
            raise

    def update(self, path: str, content: bytes, message: str, version_token: str) -> dict:
        """Replace the file content, conditioned on ``version_token``."""
        try:
            return self.client.put_file(
                self.repository.owner, self.repository.name, path,
                content=encode_content(content), message=message, branch=self.branch, sha=version_token,
            )
        except RemoteApiError as e:
            if e.status_code == 409:
                raise StaleVersionError(
                    f"{path} changed on {self.branch} since it was read",
                    path=path,
                    details={"repository": self.repository.full_name, "version_token": version_token},
                ) from e
            raise

    def delete(self, path: str, message: str, version_token: str) -> dict:
        """Delete the file, conditioned on ``version_token``."""
        try:
            return self.client.delete_file(
                self.repository.owner, self.repository.name, path,
                message=message, sha=version_token, branch=self.branch,
            )
        except RemoteApiError as e:
            if e.status_code == 409:
                raise StaleVersionError(
                    f"{path} changed on {self.branch} since it was read",
                    path=path,
                    details={"repository": self.repository.full_name, "version_token": version_token},
                ) from e
            raise
