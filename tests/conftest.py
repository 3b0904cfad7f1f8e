"""Shared fixtures: GitHub relation API fakes served through httpx.MockTransport."""
import json

import httpx
import pytest

from issue_relations_mcp.client import RelationClient
from issue_relations_mcp.registry import build_registry

API_BASE = "https://api.github.test"


def make_issue(id, number, title, state="open", **overrides):
    issue = {
        "id": id,
        "number": number,
        "title": title,
        "state": state,
        "html_url": f"https://github.com/testowner/testrepo/issues/{number}",
        "user": {"login": "testuser"},
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-02T00:00:00Z",
    }
    issue.update(overrides)
    return issue


BLOCKING_ISSUES = [
    make_issue(100000001, 10, "Blocker Issue 1"),
    make_issue(100000002, 20, "Blocker Issue 2", state="closed"),
]

SUB_ISSUES = [
    make_issue(200000001, 101, "Sub-issue 1"),
    make_issue(200000002, 102, "Sub-issue 2"),
    make_issue(200000003, 103, "Sub-issue 3", state="closed"),
]

PARENT_ISSUE = make_issue(300000001, 50, "Parent Issue")

# Already a child of PARENT_ISSUE
PARENTED_SUB_ISSUE_ID = 200000001


class FakeGitHubAPI:
    """In-process stand-in for the GitHub issue relationship endpoints.

    Fixture conventions:
    - issue #1 has no blockers, no blocked issues, no parent and no sub-issues
    - issue #9999 does not exist (404 everywhere)
    - issue #403 is in a repository the token cannot access
    - every other issue is blocked by #10 and #20, has parent #50 and
      sub-issues #101, #102, #103
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []

    def body(self, index: int = -1) -> dict:
        """Decoded JSON body of a recorded request."""
        return json.loads(self.requests[index].content)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = request.url.path.strip("/").split("/")
        method = request.method

        if len(parts) < 6 or parts[0] != "repos" or parts[3] != "issues":
            return httpx.Response(404, json={"message": "Not Found"})

        issue_number = parts[4]
        sub_path = "/".join(parts[5:])

        if issue_number == "9999":
            return httpx.Response(404, json={"message": "Not Found"})
        if issue_number == "403":
            return httpx.Response(403, json={"message": "Resource not accessible by integration"})

        if sub_path == "dependencies/blocked_by":
            if method == "GET":
                return httpx.Response(200, json=[] if issue_number == "1" else BLOCKING_ISSUES)
            if method == "POST":
                return httpx.Response(201, json=BLOCKING_ISSUES[0])
        elif sub_path.startswith("dependencies/blocked_by/"):
            if method == "DELETE":
                return httpx.Response(204)
        elif sub_path == "dependencies/blocking":
            if method == "GET":
                return httpx.Response(200, json=[] if issue_number == "1" else BLOCKING_ISSUES)
        elif sub_path == "parent":
            if method == "GET":
                if issue_number == "1":
                    return httpx.Response(404, json={"message": "Not Found"})
                return httpx.Response(200, json=PARENT_ISSUE)
        elif sub_path == "sub_issues":
            if method == "GET":
                return httpx.Response(200, json=[] if issue_number == "1" else SUB_ISSUES)
            if method == "POST":
                payload = json.loads(request.content)
                if payload["sub_issue_id"] == PARENTED_SUB_ISSUE_ID and not payload.get("replace_parent"):
                    return httpx.Response(422, json={
                        "message": "Validation Failed",
                        "errors": [{"message": "Sub issue may only have one parent"}],
                    })
                return httpx.Response(201, json=PARENT_ISSUE)
        elif sub_path == "sub_issue":
            if method == "DELETE":
                return httpx.Response(200, json=PARENT_ISSUE)
        elif sub_path == "sub_issues/priority":
            if method == "PATCH":
                return httpx.Response(200, json=PARENT_ISSUE)

        return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture
def github_api():
    return FakeGitHubAPI()


@pytest.fixture
def make_client():
    """Factory for a RelationClient whose HTTP traffic goes to the given handler."""
    def _make(handler) -> RelationClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=API_BASE)
        return RelationClient("test-token", http_client=http_client)
    return _make


@pytest.fixture
def relation_client(github_api, make_client):
    return make_client(github_api)


@pytest.fixture
def registry(relation_client):
    return build_registry(relation_client)
