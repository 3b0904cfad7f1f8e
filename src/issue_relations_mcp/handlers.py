"""MCP tool handlers for issue dependencies and sub-issues.

All handlers follow a consistent pattern:
- Accept: validated input model and RelationClient
- Return: CallToolResult with one text block and, where useful, structured content
- Use formatters from formatters module for consistent output
- Let RelationClientError propagate; the registry turns it into a tool error

List handlers fetch the complete set, paginate locally, and short-circuit to
a fixed sentence when the complete set (not just the page) is empty.
"""
from typing import Optional
import logging

from mcp.types import CallToolResult, TextContent

from . import formatters
from .client import RelationClient
from .pagination import paginate
from .schemas import (
    AddSubIssueInput,
    DependencyModifyInput,
    GetDependenciesInput,
    GetParentInput,
    ListSubIssuesInput,
    LookupStatus,
    RemoveSubIssueInput,
    ReprioritizeSubIssueInput,
    WriteAck,
)

logger = logging.getLogger("github-relations-mcp.handlers")


def text_result(text: str, structured: Optional[dict] = None, is_error: bool = False) -> CallToolResult:
    """Wrap text (and optional structured payload) in a tool result."""
    return CallToolResult(
        content=[TextContent(type="text", text=text)],
        structuredContent=structured,
        isError=is_error,
    )


def error_result(text: str) -> CallToolResult:
    return text_result(text, is_error=True)


def write_result(ack: WriteAck, message: str) -> CallToolResult:
    return text_result(message, {"success": ack.success, "message": message})


# ============================================================================
# Dependency Handlers
# ============================================================================

async def handle_get_blocked_by(params: GetDependenciesInput, client: RelationClient) -> CallToolResult:
    """Get issues that are blocking a specific issue.

    RETURNS (paginated):
    - blocked_by: issues that must be resolved first
    - total / count / offset / limit / has_more / next_offset
    - issue_number: the issue that was checked
    """
    all_issues = await client.get_blocked_by(params.owner, params.repo, params.issue_number)
    page = paginate(all_issues, params.offset, params.limit)
    logger.info(f"Found {page.total} blockers for {params.owner}/{params.repo}#{params.issue_number}")

    output = {
        "blocked_by": [formatters.issue_to_dict(issue) for issue in page.items],
        **page.envelope(),
        "issue_number": params.issue_number,
    }

    if not all_issues:
        text = f"Issue #{params.issue_number} in {params.owner}/{params.repo} is not blocked by any issues."
        return text_result(text, output)

    text = formatters.render(
        output, params.response_format,
        lambda: formatters.format_blocked_by(params.issue_number, page),
        next_offset=page.next_offset,
    )
    return text_result(text, output)


async def handle_get_blocking(params: GetDependenciesInput, client: RelationClient) -> CallToolResult:
    """Get issues that a specific issue is blocking.

    RETURNS (paginated):
    - blocking: issues waiting on this one
    - total / count / offset / limit / has_more / next_offset
    - issue_number: the issue that was checked
    """
    all_issues = await client.get_blocking(params.owner, params.repo, params.issue_number)
    page = paginate(all_issues, params.offset, params.limit)
    logger.info(f"{params.owner}/{params.repo}#{params.issue_number} blocks {page.total} issues")

    output = {
        "blocking": [formatters.issue_to_dict(issue) for issue in page.items],
        **page.envelope(),
        "issue_number": params.issue_number,
    }

    if not all_issues:
        text = f"Issue #{params.issue_number} in {params.owner}/{params.repo} is not blocking any issues."
        return text_result(text, output)

    text = formatters.render(
        output, params.response_format,
        lambda: formatters.format_blocking(params.issue_number, page),
        next_offset=page.next_offset,
    )
    return text_result(text, output)


async def handle_add_blocking_dependency(params: DependencyModifyInput, client: RelationClient) -> CallToolResult:
    """Mark an issue as blocked by another issue (referenced by ID)."""
    ack = await client.add_blocking_dependency(
        params.owner, params.repo, params.issue_number, params.blocking_issue_id
    )
    return write_result(
        ack,
        f"Issue #{params.issue_number} is now blocked by issue ID {params.blocking_issue_id}"
    )


async def handle_remove_blocking_dependency(params: DependencyModifyInput, client: RelationClient) -> CallToolResult:
    """Remove a blocked-by relationship."""
    ack = await client.remove_blocking_dependency(
        params.owner, params.repo, params.issue_number, params.blocking_issue_id
    )
    return write_result(
        ack,
        f"Removed blocking dependency: issue ID {params.blocking_issue_id} "
        f"no longer blocks #{params.issue_number}"
    )


# ============================================================================
# Sub-Issue Handlers
# ============================================================================

async def handle_get_parent_issue(params: GetParentInput, client: RelationClient) -> CallToolResult:
    """Get the parent of a sub-issue, or report that there is none."""
    lookup = await client.get_parent_issue(params.owner, params.repo, params.issue_number)

    if lookup.status is LookupStatus.FAILED:
        raise lookup.error

    parent = lookup.issue if lookup.status is LookupStatus.FOUND else None
    output = {
        "parent": formatters.issue_to_dict(parent) if parent else None,
        "issue_number": params.issue_number,
        "has_parent": parent is not None,
    }

    if parent is None:
        text = f"Issue #{params.issue_number} in {params.owner}/{params.repo} has no parent issue."
        return text_result(text, output)

    text = formatters.render(
        output, params.response_format,
        lambda: formatters.format_parent(params.issue_number, parent),
    )
    return text_result(text, output)


async def handle_list_sub_issues(params: ListSubIssuesInput, client: RelationClient) -> CallToolResult:
    """List sub-issues of a parent in priority order.

    Order comes from GitHub and is never re-sorted here.
    """
    all_sub_issues = await client.list_sub_issues(params.owner, params.repo, params.issue_number)
    page = paginate(all_sub_issues, params.offset, params.limit)
    logger.info(f"{params.owner}/{params.repo}#{params.issue_number} has {page.total} sub-issues")

    output = {
        "sub_issues": [formatters.issue_to_dict(issue) for issue in page.items],
        **page.envelope(),
        "parent_issue_number": params.issue_number,
    }

    if not all_sub_issues:
        text = f"Issue #{params.issue_number} in {params.owner}/{params.repo} has no sub-issues."
        return text_result(text, output)

    text = formatters.render(
        output, params.response_format,
        lambda: formatters.format_sub_issues(params.issue_number, page),
        next_offset=page.next_offset,
    )
    return text_result(text, output)


async def handle_add_sub_issue(params: AddSubIssueInput, client: RelationClient) -> CallToolResult:
    """Add an existing issue (by ID) as a sub-issue of a parent."""
    ack = await client.add_sub_issue(
        params.owner,
        params.repo,
        params.issue_number,
        params.sub_issue_id,
        replace_parent=params.replace_parent,
    )
    return write_result(
        ack,
        f"Issue ID {params.sub_issue_id} is now a sub-issue of #{params.issue_number}"
    )


async def handle_remove_sub_issue(params: RemoveSubIssueInput, client: RelationClient) -> CallToolResult:
    """Detach a sub-issue from its parent."""
    ack = await client.remove_sub_issue(params.owner, params.repo, params.issue_number, params.sub_issue_id)
    return write_result(
        ack,
        f"Issue ID {params.sub_issue_id} is no longer a sub-issue of #{params.issue_number}"
    )


async def handle_reprioritize_sub_issue(params: ReprioritizeSubIssueInput, client: RelationClient) -> CallToolResult:
    """Move a sub-issue before or after a sibling.

    The input model has already guaranteed exactly one anchor is set.
    """
    ack = await client.reprioritize_sub_issue(
        params.owner,
        params.repo,
        params.issue_number,
        params.sub_issue_id,
        after_id=params.after_id,
        before_id=params.before_id,
    )
    if params.after_id is not None:
        position = f"after issue ID {params.after_id}"
    else:
        position = f"before issue ID {params.before_id}"
    return write_result(ack, f"Sub-issue ID {params.sub_issue_id} moved {position}")
