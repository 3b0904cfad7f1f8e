"""MCP tool definitions for GitHub issue relationships.

This module provides the definitive list of tools the server exposes.
Input schemas are generated from the pydantic models in schemas.py, the same
models the registry validates arguments with, so the published contract and
the enforced contract cannot drift apart.
"""
from mcp.types import Tool, ToolAnnotations
from pydantic import BaseModel

from .schemas import (
    AddSubIssueInput,
    DependencyModifyInput,
    GetDependenciesInput,
    GetParentInput,
    ListSubIssuesInput,
    RemoveSubIssueInput,
    ReprioritizeSubIssueInput,
)

# Behavioral hints
READ_ONLY_ANNOTATIONS = ToolAnnotations(
    readOnlyHint=True, destructiveHint=False, idempotentHint=True, openWorldHint=True,
)
WRITE_ANNOTATIONS = ToolAnnotations(
    readOnlyHint=False, destructiveHint=False, idempotentHint=True, openWorldHint=True,
)
DELETE_ANNOTATIONS = ToolAnnotations(
    readOnlyHint=False, destructiveHint=True, idempotentHint=True, openWorldHint=True,
)
# Relative moves depend on current order, so repeating one is not a no-op
REPRIORITIZE_ANNOTATIONS = ToolAnnotations(
    readOnlyHint=False, destructiveHint=False, idempotentHint=False, openWorldHint=True,
)

# Tool name -> input contract
TOOL_INPUTS: dict[str, type[BaseModel]] = {
    "github_get_blocked_by": GetDependenciesInput,
    "github_get_blocking": GetDependenciesInput,
    "github_add_blocking_dependency": DependencyModifyInput,
    "github_remove_blocking_dependency": DependencyModifyInput,
    "github_get_parent_issue": GetParentInput,
    "github_list_sub_issues": ListSubIssuesInput,
    "github_add_sub_issue": AddSubIssueInput,
    "github_remove_sub_issue": RemoveSubIssueInput,
    "github_reprioritize_sub_issue": ReprioritizeSubIssueInput,
}


def input_schema(name: str) -> dict:
    """JSON schema for a tool's arguments, as published in tools/list."""
    schema = TOOL_INPUTS[name].model_json_schema(by_alias=True)
    schema.pop("title", None)
    schema.pop("description", None)
    return schema


def get_tools() -> list[Tool]:
    """Get the list of all MCP tools for issue relationship management."""
    return [
        # ============================================================================
        # Dependency Tools
        # ============================================================================
        Tool(
            name="github_get_blocked_by",
            title="Get Blocking Issues",
            description="""Get issues that are blocking a specific issue.

Retrieves all issues that must be resolved before the specified issue can proceed.
Uses GitHub's issue dependencies API.

Args:
  - owner (string): Repository owner (user or organization)
  - repo (string): Repository name
  - issue_number (number): The issue number to check
  - limit (number): Maximum results to return, 1-100 (default: 20)
  - offset (number): Number of results to skip for pagination (default: 0)
  - format ('human' | 'structured'): Output format (default: 'human')

Returns:
  For structured format:
  {
    "blocked_by": [{ "id": number, "number": number, "title": string, "state": "open"|"closed", "html_url": string }],
    "count": number, "total": number, "offset": number, "limit": number,
    "has_more": boolean, "next_offset": number (if has_more),
    "issue_number": number
  }

  For human format: A markdown list of blocking issues with links.

Examples:
  - "What's blocking issue #42?" -> github_get_blocked_by(owner="org", repo="project", issue_number=42)

Error Handling:
  - Returns "Not found" for invalid issue numbers or repositories (404)
  - Returns "Rate limit exceeded" if GitHub API limits hit""",
            inputSchema=input_schema("github_get_blocked_by"),
            annotations=READ_ONLY_ANNOTATIONS,
        ),
        Tool(
            name="github_get_blocking",
            title="Get Blocked Issues",
            description="""Get issues that a specific issue is blocking.

Retrieves all issues that are waiting for the specified issue to be resolved.
Uses GitHub's issue dependencies API.

Args:
  - owner (string): Repository owner (user or organization)
  - repo (string): Repository name
  - issue_number (number): The issue number to check
  - limit (number): Maximum results to return, 1-100 (default: 20)
  - offset (number): Number of results to skip for pagination (default: 0)
  - format ('human' | 'structured'): Output format (default: 'human')

Returns:
  For structured format:
  {
    "blocking": [{ "id": number, "number": number, "title": string, "state": "open"|"closed", "html_url": string }],
    "count": number, "total": number, "offset": number, "limit": number,
    "has_more": boolean, "next_offset": number (if has_more),
    "issue_number": number
  }

  For human format: A markdown list of blocked issues with links.

Examples:
  - "What issues depend on #42?" -> github_get_blocking(owner="org", repo="project", issue_number=42)

Error Handling:
  - Returns "Not found" for invalid issue numbers or repositories (404)
  - Returns "Rate limit exceeded" if GitHub API limits hit""",
            inputSchema=input_schema("github_get_blocking"),
            annotations=READ_ONLY_ANNOTATIONS,
        ),
        Tool(
            name="github_add_blocking_dependency",
            title="Add Blocking Dependency",
            description="""Add a blocking dependency to an issue.

Marks that the specified issue is blocked by another issue. The blocking issue
must be resolved before the blocked issue can proceed.

Args:
  - owner (string): Repository owner (user or organization)
  - repo (string): Repository name
  - issue_number (number): The issue number to mark as blocked
  - blocking_issue_id (number): The ID (not number) of the blocking issue

Returns:
  Confirmation that the dependency was added.

Examples:
  - "Issue #5 is blocked by issue ID 12345" -> github_add_blocking_dependency(owner="org", repo="project", issue_number=5, blocking_issue_id=12345)

Error Handling:
  - Returns error if either issue doesn't exist (404)
  - Returns error if the dependency already exists (422)
  - Returns "Permission denied" if the token lacks write access (403)""",
            inputSchema=input_schema("github_add_blocking_dependency"),
            annotations=WRITE_ANNOTATIONS,
        ),
        Tool(
            name="github_remove_blocking_dependency",
            title="Remove Blocking Dependency",
            description="""Remove a blocking dependency from an issue.

Removes the 'blocked by' relationship between two issues. The previously
blocked issue will no longer wait for the blocking issue.

Args:
  - owner (string): Repository owner (user or organization)
  - repo (string): Repository name
  - issue_number (number): The issue number to unblock
  - blocking_issue_id (number): The ID of the blocking issue to remove

Returns:
  Confirmation that the dependency was removed.

Examples:
  - "Remove blocker issue ID 12345 from #5" -> github_remove_blocking_dependency(owner="org", repo="project", issue_number=5, blocking_issue_id=12345)

Error Handling:
  - Returns error if the issue or the dependency doesn't exist (404)
  - Returns "Permission denied" if the token lacks write access (403)""",
            inputSchema=input_schema("github_remove_blocking_dependency"),
            annotations=DELETE_ANNOTATIONS,
        ),
        # ============================================================================
        # Sub-Issue Tools
        # ============================================================================
        Tool(
            name="github_get_parent_issue",
            title="Get Parent Issue",
            description="""Get the parent issue of a sub-issue.

Returns the parent issue details if the specified issue is a sub-issue,
or indicates that no parent exists.

Args:
  - owner (string): Repository owner (user or organization)
  - repo (string): Repository name
  - issue_number (number): The sub-issue number to check
  - format ('human' | 'structured'): Output format (default: 'human')

Returns:
  For structured format:
  {
    "parent": { "id": number, "number": number, "title": string, "state": "open"|"closed", "html_url": string } | null,
    "issue_number": number,
    "has_parent": boolean
  }

  For human format: Parent issue details or a "no parent" message.

Examples:
  - "What's the parent of issue #101?" -> github_get_parent_issue(owner="org", repo="project", issue_number=101)

Error Handling:
  - Returns a null parent (not an error) if the issue has no parent""",
            inputSchema=input_schema("github_get_parent_issue"),
            annotations=READ_ONLY_ANNOTATIONS,
        ),
        Tool(
            name="github_list_sub_issues",
            title="List Sub Issues",
            description="""List all sub-issues of a parent issue.

Returns the child issues in their priority order. Sub-issues are smaller
tasks that make up a larger parent issue.

Args:
  - owner (string): Repository owner (user or organization)
  - repo (string): Repository name
  - issue_number (number): The parent issue number
  - limit (number): Maximum results to return, 1-100 (default: 20)
  - offset (number): Number of results to skip for pagination (default: 0)
  - format ('human' | 'structured'): Output format (default: 'human')

Returns:
  For structured format:
  {
    "sub_issues": [{ "id": number, "number": number, "title": string, "state": "open"|"closed", "html_url": string }],
    "count": number, "total": number, "offset": number, "limit": number,
    "has_more": boolean, "next_offset": number (if has_more),
    "parent_issue_number": number
  }

  For human format: A numbered list of sub-issues in priority order.

Examples:
  - "List tasks under epic #50" -> github_list_sub_issues(owner="org", repo="project", issue_number=50)

Error Handling:
  - Returns "Not found" for invalid issue numbers (404)
  - Returns a "no sub-issues" message if the list is empty""",
            inputSchema=input_schema("github_list_sub_issues"),
            annotations=READ_ONLY_ANNOTATIONS,
        ),
        Tool(
            name="github_add_sub_issue",
            title="Add Sub Issue",
            description="""Add a sub-issue to a parent issue.

Makes an existing issue a child of the specified parent issue.
Use replace_parent=true to move a sub-issue from an existing parent.

Args:
  - owner (string): Repository owner (user or organization)
  - repo (string): Repository name
  - issue_number (number): The parent issue number
  - sub_issue_id (number): The ID (not number) of the issue to add as sub-issue
  - replace_parent (boolean): If true, reassign from existing parent (default: false)

Returns:
  Confirmation that the sub-issue was added.

Examples:
  - "Add issue ID 12345 as sub-issue of #50" -> github_add_sub_issue(owner="org", repo="project", issue_number=50, sub_issue_id=12345)
  - "Move sub-issue to new parent" -> set replace_parent=true

Error Handling:
  - Returns error if an issue doesn't exist (404)
  - Returns error if the issue already has a parent and replace_parent=false (422)
  - Returns "Permission denied" if the token lacks write access (403)""",
            inputSchema=input_schema("github_add_sub_issue"),
            annotations=WRITE_ANNOTATIONS,
        ),
        Tool(
            name="github_remove_sub_issue",
            title="Remove Sub Issue",
            description="""Remove a sub-issue from its parent.

The sub-issue becomes a standalone issue, no longer associated with the parent.

Args:
  - owner (string): Repository owner (user or organization)
  - repo (string): Repository name
  - issue_number (number): The parent issue number
  - sub_issue_id (number): The ID of the sub-issue to remove

Returns:
  Confirmation that the sub-issue was removed.

Examples:
  - "Remove issue ID 12345 from parent #50" -> github_remove_sub_issue(owner="org", repo="project", issue_number=50, sub_issue_id=12345)

Error Handling:
  - Returns error if the parent doesn't exist or the issue isn't its child (404)
  - Returns "Permission denied" if the token lacks write access (403)""",
            inputSchema=input_schema("github_remove_sub_issue"),
            annotations=DELETE_ANNOTATIONS,
        ),
        Tool(
            name="github_reprioritize_sub_issue",
            title="Reprioritize Sub Issue",
            description="""Change the priority order of a sub-issue within its parent.

Repositions a sub-issue relative to another sub-issue in the list.
Specify either after_id OR before_id (not both).

Args:
  - owner (string): Repository owner (user or organization)
  - repo (string): Repository name
  - issue_number (number): The parent issue number
  - sub_issue_id (number): The ID of the sub-issue to move
  - after_id (number, optional): Place after this sub-issue ID
  - before_id (number, optional): Place before this sub-issue ID

Returns:
  Confirmation of the new position.

Examples:
  - "Move task after ID 12345" -> github_reprioritize_sub_issue(..., after_id=12345)
  - "Move task to top" -> use before_id with the first sub-issue ID

Error Handling:
  - Returns error if neither or both of after_id / before_id are given
  - Returns error if a referenced sub-issue doesn't exist (404)
  - Returns "Permission denied" if the token lacks write access (403)""",
            inputSchema=input_schema("github_reprioritize_sub_issue"),
            annotations=REPRIORITIZE_ANNOTATIONS,
        ),
    ]
