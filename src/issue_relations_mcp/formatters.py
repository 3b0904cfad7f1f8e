"""Shared formatting functions for MCP responses.

Every read tool builds one plain-data payload; the human (markdown) and
structured (JSON) renderings are both produced from it here.
"""
import json
from typing import Callable, Optional

from pydantic import ValidationError

from .client import ErrorKind, RelationClientError
from .pagination import Page
from .schemas import IssueReference

CHARACTER_LIMIT = 25000
TRUNCATION_NOTICE = "\n\n[Response truncated due to size limit]"


def issue_to_dict(issue: IssueReference) -> dict:
    """JSON-safe representation of an issue for structured payloads."""
    return issue.model_dump(mode="json")


def format_issue(issue: IssueReference) -> str:
    """Format an issue as a single bullet line."""
    return f"- #{issue.number}: {issue.title} ({issue.state}) - {issue.html_url}"


def format_issue_list(issues: list[IssueReference], numbered: bool = False, start: int = 1) -> str:
    """Format issues one per line; numbered lists convey priority order."""
    if not numbered:
        return "\n".join(format_issue(issue) for issue in issues)
    return "\n".join(
        f"{position}. #{issue.number}: {issue.title} ({issue.state}) - {issue.html_url}"
        for position, issue in enumerate(issues, start=start)
    )


def format_continuation(next_offset: int) -> str:
    return f"*More results available. Use offset={next_offset} to see next page.*"


def format_showing(page: Page) -> str:
    return f" (showing {page.count})" if page.has_more else ""


def format_issue_page(heading: str, summary: str, page: Page[IssueReference], numbered: bool = False) -> str:
    """Render a page of issues: heading, count summary, listing, continuation hint."""
    if page.items:
        listing = format_issue_list(page.items, numbered=numbered, start=page.offset + 1)
    else:
        listing = f"No results at offset {page.offset}."

    text = f"# {heading}\n\n{summary}\n\n{listing}"
    if page.has_more:
        text += f"\n\n{format_continuation(page.next_offset)}"
    return text


def format_blocked_by(issue_number: int, page: Page[IssueReference]) -> str:
    summary = f"Found {page.total} blocking issue(s){format_showing(page)}:"
    return format_issue_page(f"Blocking Issues for #{issue_number}", summary, page)


def format_blocking(issue_number: int, page: Page[IssueReference]) -> str:
    summary = f"Blocking {page.total} issue(s){format_showing(page)}:"
    return format_issue_page(f"Issues Blocked by #{issue_number}", summary, page)


def format_sub_issues(issue_number: int, page: Page[IssueReference]) -> str:
    summary = f"{page.total} sub-issue(s){format_showing(page)} in priority order:"
    return format_issue_page(f"Sub-Issues of #{issue_number}", summary, page, numbered=True)


def format_parent(issue_number: int, parent: IssueReference) -> str:
    """Format the parent of a sub-issue."""
    author_info = f"\n  Author: @{parent.author}" if parent.author else ""
    return (f"# Parent of Issue #{issue_number}\n\n"
            f"Issue #{issue_number} is a sub-issue of:\n\n"
            f"- #{parent.number}: {parent.title} ({parent.state})\n"
            f"  URL: {parent.html_url}{author_info}")


def truncate(text: str, limit: int = CHARACTER_LIMIT) -> str:
    """Cut oversized text to the character limit and flag the cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_NOTICE


def render(
    data: dict,
    response_format: str,
    markdown: Callable[[], str],
    next_offset: Optional[int] = None,
) -> str:
    """Render a payload as indented JSON or markdown, then apply the size cap.

    The cap only touches the text; the payload itself is returned untouched
    as structured content by the caller. When the cap cuts a page that has
    more results, the continuation hint is re-appended after the notice.
    """
    if response_format == "structured":
        text = json.dumps(data, indent=2)
    else:
        text = markdown()
    capped = truncate(text)
    if capped != text and next_offset is not None:
        capped += f"\n\n{format_continuation(next_offset)}"
    return capped


# ============================================================================
# Error Formatting
# ============================================================================

ERROR_LABELS: dict[ErrorKind, str] = {
    ErrorKind.NOT_FOUND: "Not found",
    ErrorKind.FORBIDDEN: "Permission denied",
    ErrorKind.RATE_LIMITED: "Rate limit exceeded",
    ErrorKind.CONFLICT: "Conflict",
    ErrorKind.VALIDATION: "Validation failed",
    ErrorKind.UNKNOWN: "GitHub API error",
}

ERROR_HINTS: dict[ErrorKind, str] = {
    ErrorKind.NOT_FOUND: "Check the owner, repo and issue number. Issue IDs and issue numbers are not interchangeable.",
    ErrorKind.FORBIDDEN: "Check that the token can access this repository and has issue write permission.",
    ErrorKind.RATE_LIMITED: "Wait for the GitHub rate limit to reset before trying again.",
    ErrorKind.VALIDATION: "GitHub rejected the change. The relationship may already exist, "
                          "or the issue may already have a parent (see replace_parent).",
}


def format_client_error(error: RelationClientError) -> str:
    """Describe a failed relations API call without exposing credentials."""
    label = ERROR_LABELS.get(error.kind, "GitHub API error")
    status_info = f" ({error.status_code})" if error.status_code is not None else ""
    text = f"Error: {label}{status_info}: {error.message}"
    hint = ERROR_HINTS.get(error.kind)
    if hint:
        text += f"\n{hint}"
    return text


def format_validation_error(tool_name: str, error: ValidationError) -> str:
    """Flatten pydantic validation errors into one readable line per problem."""
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        problems.append(f"{location}: {item['msg']}" if location else item["msg"])
    return f"Error: Invalid arguments for {tool_name}: " + "; ".join(problems)


def format_unexpected_error(error: Exception) -> str:
    return f"Error: {type(error).__name__}: {error}"
