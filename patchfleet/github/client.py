"""HTTP client for the GitHub REST API using requests.

One ``requests.Session`` backs every call so connections are pooled across
repositories. Use the client as a context manager: the session and its
connection pool are released on every exit path.

Every call is bounded by the configured timeout and never retried; failures
are translated into the ``patchfleet.errors`` hierarchy in one place.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter

from patchfleet.errors import (
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    RemoteApiError,
    TransportError,
)
from patchfleet.models import Branch, Repository
from patchfleet.utils.logger import log_api_response, log_debug

API_VERSION = "2022-11-28"
MAX_PAGE_SIZE = 100


def _quote_path(path: str) -> str:
    return quote(path, safe="/")


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200] or resp.reason or "no response body"
    if isinstance(body, dict):
        return str(body.get("message") or body)[:200]
    return str(body)[:200]


def _raise_for_status(resp: requests.Response, operation: str) -> None:
    """Map a non-2xx response to the matching ``RemoteApiError`` subclass."""
    status = resp.status_code
    if status < 400:
        return
    message = f"{operation} failed ({status}): {_error_message(resp)}"
    details = {"operation": operation, "url": resp.url}
    if status == 404:
        raise NotFoundError(message, status_code=status, details=details)
    if status == 429 or (status == 403 and (
        resp.headers.get("X-RateLimit-Remaining") == "0" or "rate limit" in message.lower()
    )):
        raise RateLimitError(message, status_code=status, details=details)
    if status in (401, 403):
        raise PermissionDeniedError(message, status_code=status, details=details)
    raise RemoteApiError(message, status_code=status, details=details)


class GitHubClient:
    """Blocking GitHub REST client with a pooled session."""

    def __init__(
        self,
        token: str,
        *,
        api_url: str = "https://api.github.com",
        timeout: float = 5.0,
        pool_size: int = 10,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size, max_retries=0)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)
        self._session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        })

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the session and drain its connection pool."""
        self._session.close()

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.api_url}{path}"
        log_debug(f"GitHub {operation}", method=method, path=path)
        try:
            resp = self._session.request(method, url, params=params, json=json, timeout=self.timeout)
        except requests.Timeout as e:
            raise TransportError(f"{operation} timed out after {self.timeout}s", details={"path": path}) from e
        except requests.RequestException as e:
            raise TransportError(f"{operation} failed: {e}", details={"path": path}) from e
        _raise_for_status(resp, operation)
        log_api_response(operation, resp.status_code)
        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search_repositories(self, query: str, limit: int = 30) -> List[Repository]:
        """Return up to ``limit`` repositories matching ``query``."""
        repositories: List[Repository] = []
        per_page = min(limit, MAX_PAGE_SIZE)
        page = 1
        while len(repositories) < limit:
            body = self._request(
                "GET", "/search/repositories", "repository search",
                params={"q": query, "per_page": per_page, "page": page},
            )
            items = (body or {}).get("items") or []
            repositories.extend(Repository.from_api(item) for item in items)
            if len(items) < per_page:
                break
            page += 1
        return repositories[:limit]

    # ------------------------------------------------------------------
    # Branches and refs
    # ------------------------------------------------------------------

    def get_branch(self, owner: str, repo: str, branch: str) -> Branch:
        body = self._request("GET", f"/repos/{owner}/{repo}/branches/{_quote_path(branch)}", "branch lookup")
        return Branch(name=body["name"], sha=body["commit"]["sha"])

    def get_branch_head_sha(self, owner: str, repo: str, branch: str) -> str:
        body = self._request("GET", f"/repos/{owner}/{repo}/git/ref/heads/{_quote_path(branch)}", "ref lookup")
        return body["object"]["sha"]

    def create_branch_ref(self, owner: str, repo: str, branch: str, sha: str) -> Dict[str, Any]:
        return self._request(
            "POST", f"/repos/{owner}/{repo}/git/refs", "ref creation",
            json={"ref": f"refs/heads/{branch}", "sha": sha},
        )

    # ------------------------------------------------------------------
    # Contents
    # ------------------------------------------------------------------

    def get_file(self, owner: str, repo: str, path: str, ref: str) -> Any:
        return self._request(
            "GET", f"/repos/{owner}/{repo}/contents/{_quote_path(path)}", "file read",
            params={"ref": ref},
        )

    def put_file(
        self,
        owner: str,
        repo: str,
        path: str,
        *,
        content: str,
        message: str,
        branch: str,
        sha: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create (``sha`` omitted) or update (``sha`` given) a file."""
        payload: Dict[str, Any] = {"message": message, "content": content, "branch": branch}
        if sha is not None:
            payload["sha"] = sha
        return self._request(
            "PUT", f"/repos/{owner}/{repo}/contents/{_quote_path(path)}",
            "file update" if sha else "file creation", json=payload,
        )

    def delete_file(self, owner: str, repo: str, path: str, *, message: str, sha: str, branch: str) -> Dict[str, Any]:
        return self._request(
            "DELETE", f"/repos/{owner}/{repo}/contents/{_quote_path(path)}", "file deletion",
            json={"message": message, "sha": sha, "branch": branch},
        )

    # ------------------------------------------------------------------
    # Pull requests
    # ------------------------------------------------------------------

    def find_open_pull_request(self, owner: str, repo: str, head: str) -> Optional[Dict[str, Any]]:
        """Find open PRs with given head branch (owner:branch). Return first if exists."""
        items = self._request(
            "GET", f"/repos/{owner}/{repo}/pulls", "pull request lookup",
            params={"state": "open", "head": f"{owner}:{head}"},
        ) or []
        return items[0] if items else None

    def create_pull_request(
        self,
        owner: str,
        repo: str,
        *,
        head: str,
        base: str,
        title: str,
        body: str,
        draft: bool = False,
    ) -> Dict[str, Any]:
        payload = {
            "title": title,
            "head": head,
            "base": base,
            "body": body,
            "draft": draft,
        }
        return self._request("POST", f"/repos/{owner}/{repo}/pulls", "pull request creation", json=payload)
