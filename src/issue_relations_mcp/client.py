"""GitHub API client for issue relationships (dependencies and sub-issues).

Thin async adapter over the REST endpoints:
- /repos/{owner}/{repo}/issues/{issue_number}/dependencies/...
- /repos/{owner}/{repo}/issues/{issue_number}/parent
- /repos/{owner}/{repo}/issues/{issue_number}/sub_issue(s)...

Every call is a stateless round trip: no caching, no retries. Failures are
raised as RelationClientError with a classified ErrorKind, except the 404
from the parent endpoint which means "no parent" and is returned as data.
"""
from typing import Any, Optional
import enum
import logging

import httpx

from . import __version__
from .config import DEFAULT_API_BASE_URL
from .schemas import IssueReference, ParentLookup, WriteAck

logger = logging.getLogger("github-relations-mcp.client")

API_VERSION = "2022-11-28"
PER_PAGE = 100
HTTP_TIMEOUT = 30.0


class ErrorKind(str, enum.Enum):
    """Classification of a failed relations API call."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    RATE_LIMITED = "rate_limited"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


STATUS_KINDS: dict[int, ErrorKind] = {
    401: ErrorKind.FORBIDDEN,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.CONFLICT,
    422: ErrorKind.VALIDATION,
    429: ErrorKind.RATE_LIMITED,
}


class RelationClientError(Exception):
    """Raised when the relations API rejects a request or cannot be reached."""

    def __init__(self, kind: ErrorKind, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code

    @classmethod
    def from_response(cls, response: httpx.Response) -> "RelationClientError":
        """Build an error from a non-2xx response."""
        status_code = response.status_code
        kind = STATUS_KINDS.get(status_code, ErrorKind.UNKNOWN)
        if status_code == 403 and response.headers.get("x-ratelimit-remaining") == "0":
            kind = ErrorKind.RATE_LIMITED
        return cls(kind, _extract_message(response), status_code)


def _extract_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of a GitHub error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase or f"HTTP {response.status_code}"

    if not isinstance(body, dict):
        return str(body)

    message = body.get("message") or response.reason_phrase or f"HTTP {response.status_code}"
    details = [
        err.get("message") for err in body.get("errors") or []
        if isinstance(err, dict) and err.get("message")
    ]
    if details:
        message = f"{message} ({'; '.join(details)})"
    return message


class RelationClient:
    """Async client for GitHub issue dependency and sub-issue endpoints."""

    def __init__(
        self,
        token: str,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client.

        Args:
            token: GitHub token sent as a Bearer credential
            base_url: API base URL (defaults to https://api.github.com)
            http_client: Preconfigured client, used instead of building one
                (tests pass one backed by httpx.MockTransport)
        """
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": f"github-issues-mcp/{__version__}",
        }
        if http_client is None:
            http_client = httpx.AsyncClient(
                base_url=base_url or DEFAULT_API_BASE_URL,
                headers=headers,
                timeout=HTTP_TIMEOUT,
            )
        else:
            http_client.headers.update(headers)
        self._http = http_client

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "RelationClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ==================== Transport ====================

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error(f"Request error during {method} {path}: {type(e).__name__}: {e}")
            raise RelationClientError(ErrorKind.UNKNOWN, f"Connection failed - {e}") from e

        if response.is_error:
            logger.error(f"HTTP {response.status_code} from {method} {response.request.url}")
            raise RelationClientError.from_response(response)
        return response

    async def _list_issues(self, path: str) -> list[IssueReference]:
        """GET a list endpoint, following Link rel="next" until the set is complete."""
        response = await self._request("GET", path, params={"per_page": PER_PAGE})
        issues = [IssueReference.model_validate(item) for item in response.json()]

        next_url = response.links.get("next", {}).get("url")
        while next_url:
            response = await self._request("GET", next_url)
            issues.extend(IssueReference.model_validate(item) for item in response.json())
            next_url = response.links.get("next", {}).get("url")

        logger.debug(f"Fetched {len(issues)} issues from {path}")
        return issues

    @staticmethod
    def _issue_path(owner: str, repo: str, issue_number: int) -> str:
        return f"/repos/{owner}/{repo}/issues/{issue_number}"

    # ==================== Issue Dependencies ====================

    async def get_blocked_by(self, owner: str, repo: str, issue_number: int) -> list[IssueReference]:
        """Get issues that are blocking a specific issue."""
        path = f"{self._issue_path(owner, repo, issue_number)}/dependencies/blocked_by"
        return await self._list_issues(path)

    async def get_blocking(self, owner: str, repo: str, issue_number: int) -> list[IssueReference]:
        """Get issues that a specific issue is blocking."""
        path = f"{self._issue_path(owner, repo, issue_number)}/dependencies/blocking"
        return await self._list_issues(path)

    async def add_blocking_dependency(
        self, owner: str, repo: str, issue_number: int, blocking_issue_id: int
    ) -> WriteAck:
        """Mark issue_number as blocked by the issue with ID blocking_issue_id."""
        path = f"{self._issue_path(owner, repo, issue_number)}/dependencies/blocked_by"
        response = await self._request("POST", path, json={"issue_id": blocking_issue_id})
        logger.info(f"Added blocking dependency: {owner}/{repo}#{issue_number} blocked by ID {blocking_issue_id}")
        return WriteAck(status_code=response.status_code)

    async def remove_blocking_dependency(
        self, owner: str, repo: str, issue_number: int, blocking_issue_id: int
    ) -> WriteAck:
        """Remove the blocked-by edge from issue_number to blocking_issue_id."""
        path = f"{self._issue_path(owner, repo, issue_number)}/dependencies/blocked_by/{blocking_issue_id}"
        response = await self._request("DELETE", path)
        logger.info(f"Removed blocking dependency: ID {blocking_issue_id} no longer blocks {owner}/{repo}#{issue_number}")
        return WriteAck(status_code=response.status_code)

    # ==================== Sub-Issues ====================

    async def get_parent_issue(self, owner: str, repo: str, issue_number: int) -> ParentLookup:
        """Look up the parent of a sub-issue.

        A 404 means the issue has no parent and yields ParentLookup.absent().
        Other failures are reported as ParentLookup.failed(error).
        """
        path = f"{self._issue_path(owner, repo, issue_number)}/parent"
        try:
            response = await self._request("GET", path)
        except RelationClientError as e:
            if e.kind is ErrorKind.NOT_FOUND:
                logger.info(f"{owner}/{repo}#{issue_number} has no parent issue")
                return ParentLookup.absent()
            return ParentLookup.failed(e)
        return ParentLookup.found(IssueReference.model_validate(response.json()))

    async def list_sub_issues(self, owner: str, repo: str, issue_number: int) -> list[IssueReference]:
        """List sub-issues of a parent in the server's priority order."""
        path = f"{self._issue_path(owner, repo, issue_number)}/sub_issues"
        return await self._list_issues(path)

    async def add_sub_issue(
        self,
        owner: str,
        repo: str,
        parent_issue_number: int,
        sub_issue_id: int,
        replace_parent: bool = False,
    ) -> WriteAck:
        """Make the issue with ID sub_issue_id a child of parent_issue_number.

        GitHub answers 422 when the child already has a parent and
        replace_parent is false.
        """
        path = f"{self._issue_path(owner, repo, parent_issue_number)}/sub_issues"
        response = await self._request(
            "POST", path, json={"sub_issue_id": sub_issue_id, "replace_parent": replace_parent}
        )
        logger.info(f"Added sub-issue ID {sub_issue_id} to {owner}/{repo}#{parent_issue_number}")
        return WriteAck(status_code=response.status_code)

    async def remove_sub_issue(
        self, owner: str, repo: str, parent_issue_number: int, sub_issue_id: int
    ) -> WriteAck:
        """Detach the issue with ID sub_issue_id from parent_issue_number."""
        path = f"{self._issue_path(owner, repo, parent_issue_number)}/sub_issue"
        response = await self._request("DELETE", path, json={"sub_issue_id": sub_issue_id})
        logger.info(f"Removed sub-issue ID {sub_issue_id} from {owner}/{repo}#{parent_issue_number}")
        return WriteAck(status_code=response.status_code)

    async def reprioritize_sub_issue(
        self,
        owner: str,
        repo: str,
        parent_issue_number: int,
        sub_issue_id: int,
        after_id: Optional[int] = None,
        before_id: Optional[int] = None,
    ) -> WriteAck:
        """Move a sub-issue relative to a sibling.

        The anchor is sent as given; callers decide which of after_id /
        before_id is set.
        """
        path = f"{self._issue_path(owner, repo, parent_issue_number)}/sub_issues/priority"
        body: dict[str, int] = {"sub_issue_id": sub_issue_id}
        if after_id is not None:
            body["after_id"] = after_id
        if before_id is not None:
            body["before_id"] = before_id
        response = await self._request("PATCH", path, json=body)
        logger.info(f"Reprioritized sub-issue ID {sub_issue_id} under {owner}/{repo}#{parent_issue_number}")
        return WriteAck(status_code=response.status_code)
