"""Tests for the GitHub relations API client."""
import httpx
import pytest

from issue_relations_mcp import __version__
from issue_relations_mcp.client import ErrorKind, RelationClient, RelationClientError
from issue_relations_mcp.schemas import IssueReference, LookupStatus

from conftest import API_BASE, make_issue


class TestReadEndpoints:
    """Test list and lookup calls against the fake relations API."""

    @pytest.mark.asyncio
    async def test_get_blocked_by(self, relation_client, github_api):
        issues = await relation_client.get_blocked_by("testowner", "testrepo", 42)

        assert [issue.number for issue in issues] == [10, 20]
        assert all(isinstance(issue, IssueReference) for issue in issues)
        assert issues[1].state == "closed"

        request = github_api.requests[-1]
        assert request.method == "GET"
        assert request.url.path == "/repos/testowner/testrepo/issues/42/dependencies/blocked_by"
        assert request.url.params["per_page"] == "100"

    @pytest.mark.asyncio
    async def test_get_blocking(self, relation_client, github_api):
        issues = await relation_client.get_blocking("testowner", "testrepo", 42)

        assert [issue.id for issue in issues] == [100000001, 100000002]
        assert github_api.requests[-1].url.path == "/repos/testowner/testrepo/issues/42/dependencies/blocking"

    @pytest.mark.asyncio
    async def test_empty_list(self, relation_client):
        assert await relation_client.get_blocked_by("testowner", "testrepo", 1) == []

    @pytest.mark.asyncio
    async def test_list_sub_issues_preserves_order(self, relation_client, github_api):
        issues = await relation_client.list_sub_issues("testowner", "testrepo", 50)

        assert [issue.number for issue in issues] == [101, 102, 103]
        assert github_api.requests[-1].url.path == "/repos/testowner/testrepo/issues/50/sub_issues"

    @pytest.mark.asyncio
    async def test_parent_found(self, relation_client, github_api):
        lookup = await relation_client.get_parent_issue("testowner", "testrepo", 101)

        assert lookup.status is LookupStatus.FOUND
        assert lookup.issue.number == 50
        assert lookup.issue.author == "testuser"
        assert github_api.requests[-1].url.path == "/repos/testowner/testrepo/issues/101/parent"

    @pytest.mark.asyncio
    async def test_parent_404_is_absent(self, relation_client):
        lookup = await relation_client.get_parent_issue("testowner", "testrepo", 1)

        assert lookup.status is LookupStatus.ABSENT
        assert lookup.issue is None
        assert lookup.error is None

    @pytest.mark.asyncio
    async def test_parent_other_failure_is_failed(self, make_client):
        client = make_client(lambda request: httpx.Response(500, json={"message": "Server Error"}))

        lookup = await client.get_parent_issue("testowner", "testrepo", 5)

        assert lookup.status is LookupStatus.FAILED
        assert isinstance(lookup.error, RelationClientError)
        assert lookup.error.status_code == 500
        assert lookup.error.kind is ErrorKind.UNKNOWN

    @pytest.mark.asyncio
    async def test_follows_next_links(self, make_client):
        path = "/repos/o/r/issues/7/dependencies/blocked_by"
        seen = []

        def handler(request):
            seen.append(request.url)
            if request.url.params.get("page") == "2":
                return httpx.Response(200, json=[make_issue(3, 3, "Third")])
            next_url = f"{API_BASE}{path}?per_page=100&page=2"
            return httpx.Response(
                200,
                json=[make_issue(1, 1, "First"), make_issue(2, 2, "Second")],
                headers={"Link": f'<{next_url}>; rel="next", <{next_url}>; rel="last"'},
            )

        client = make_client(handler)
        issues = await client.get_blocked_by("o", "r", 7)

        assert [issue.number for issue in issues] == [1, 2, 3]
        assert len(seen) == 2


class TestWriteEndpoints:
    """Test mutation calls send the right method, path and body."""

    @pytest.mark.asyncio
    async def test_add_blocking_dependency(self, relation_client, github_api):
        ack = await relation_client.add_blocking_dependency("testowner", "testrepo", 42, 100000001)

        assert ack.success is True
        assert ack.status_code == 201
        request = github_api.requests[-1]
        assert request.method == "POST"
        assert request.url.path == "/repos/testowner/testrepo/issues/42/dependencies/blocked_by"
        assert github_api.body() == {"issue_id": 100000001}

    @pytest.mark.asyncio
    async def test_remove_blocking_dependency(self, relation_client, github_api):
        ack = await relation_client.remove_blocking_dependency("testowner", "testrepo", 42, 100000001)

        assert ack.status_code == 204
        request = github_api.requests[-1]
        assert request.method == "DELETE"
        assert request.url.path == "/repos/testowner/testrepo/issues/42/dependencies/blocked_by/100000001"

    @pytest.mark.asyncio
    async def test_add_sub_issue(self, relation_client, github_api):
        await relation_client.add_sub_issue("testowner", "testrepo", 50, 200000009)

        assert github_api.requests[-1].url.path == "/repos/testowner/testrepo/issues/50/sub_issues"
        assert github_api.body() == {"sub_issue_id": 200000009, "replace_parent": False}

    @pytest.mark.asyncio
    async def test_add_sub_issue_already_parented(self, relation_client):
        with pytest.raises(RelationClientError) as exc_info:
            await relation_client.add_sub_issue("testowner", "testrepo", 50, 200000001)

        assert exc_info.value.kind is ErrorKind.VALIDATION
        assert exc_info.value.status_code == 422
        assert "Validation Failed" in exc_info.value.message
        assert "only have one parent" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_add_sub_issue_replace_parent(self, relation_client, github_api):
        ack = await relation_client.add_sub_issue("testowner", "testrepo", 50, 200000001, replace_parent=True)

        assert ack.success is True
        assert github_api.body() == {"sub_issue_id": 200000001, "replace_parent": True}

    @pytest.mark.asyncio
    async def test_remove_sub_issue(self, relation_client, github_api):
        await relation_client.remove_sub_issue("testowner", "testrepo", 50, 200000002)

        request = github_api.requests[-1]
        assert request.method == "DELETE"
        assert request.url.path == "/repos/testowner/testrepo/issues/50/sub_issue"
        assert github_api.body() == {"sub_issue_id": 200000002}

    @pytest.mark.asyncio
    async def test_reprioritize_sends_only_given_anchor(self, relation_client, github_api):
        await relation_client.reprioritize_sub_issue("testowner", "testrepo", 50, 200000003, before_id=200000001)

        request = github_api.requests[-1]
        assert request.method == "PATCH"
        assert request.url.path == "/repos/testowner/testrepo/issues/50/sub_issues/priority"
        assert github_api.body() == {"sub_issue_id": 200000003, "before_id": 200000001}


class TestErrorClassification:
    """Test HTTP failures are raised as classified RelationClientError."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code,kind", [
        (401, ErrorKind.FORBIDDEN),
        (403, ErrorKind.FORBIDDEN),
        (404, ErrorKind.NOT_FOUND),
        (409, ErrorKind.CONFLICT),
        (422, ErrorKind.VALIDATION),
        (429, ErrorKind.RATE_LIMITED),
        (502, ErrorKind.UNKNOWN),
    ])
    async def test_status_to_kind(self, make_client, status_code, kind):
        client = make_client(lambda request: httpx.Response(status_code, json={"message": "nope"}))

        with pytest.raises(RelationClientError) as exc_info:
            await client.get_blocking("o", "r", 1)

        assert exc_info.value.kind is kind
        assert exc_info.value.status_code == status_code
        assert exc_info.value.message == "nope"

    @pytest.mark.asyncio
    async def test_exhausted_rate_limit_on_403(self, make_client):
        client = make_client(lambda request: httpx.Response(
            403,
            json={"message": "API rate limit exceeded"},
            headers={"x-ratelimit-remaining": "0"},
        ))

        with pytest.raises(RelationClientError) as exc_info:
            await client.get_blocked_by("o", "r", 1)

        assert exc_info.value.kind is ErrorKind.RATE_LIMITED

    @pytest.mark.asyncio
    async def test_not_found_issue(self, relation_client):
        with pytest.raises(RelationClientError) as exc_info:
            await relation_client.list_sub_issues("testowner", "testrepo", 9999)

        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_non_json_error_body(self, make_client):
        client = make_client(lambda request: httpx.Response(500, text="upstream exploded"))

        with pytest.raises(RelationClientError) as exc_info:
            await client.get_blocked_by("o", "r", 1)

        assert exc_info.value.message == "upstream exploded"

    @pytest.mark.asyncio
    async def test_connection_failure(self, make_client):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(RelationClientError) as exc_info:
            await client.get_blocked_by("o", "r", 1)

        assert exc_info.value.kind is ErrorKind.UNKNOWN
        assert exc_info.value.status_code is None
        assert exc_info.value.message.startswith("Connection failed")


class TestClientSetup:
    """Test request headers and client construction."""

    @pytest.mark.asyncio
    async def test_headers(self, relation_client, github_api):
        await relation_client.get_blocked_by("testowner", "testrepo", 1)

        headers = github_api.requests[-1].headers
        assert headers["authorization"] == "Bearer test-token"
        assert headers["accept"] == "application/vnd.github+json"
        assert headers["x-github-api-version"] == "2022-11-28"
        assert headers["user-agent"] == f"github-issues-mcp/{__version__}"

    @pytest.mark.asyncio
    async def test_context_manager_closes_transport(self, github_api):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(github_api), base_url=API_BASE)

        async with RelationClient("test-token", http_client=http_client) as client:
            await client.get_blocking("testowner", "testrepo", 42)

        assert http_client.is_closed
