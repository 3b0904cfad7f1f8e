"""Pydantic schemas for GitHub relation data and tool input validation."""
from datetime import datetime
from typing import Literal, Optional
import enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_core import PydanticCustomError

# Page size bounds for list tools
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


# Issue Schemas

class IssueState(str, enum.Enum):
    """Lifecycle state of a GitHub issue."""

    OPEN = "open"
    CLOSED = "closed"


class IssueUser(BaseModel):
    """Author of an issue (only the handle is kept)."""

    login: str

    model_config = ConfigDict(extra="ignore", frozen=True)


class IssueReference(BaseModel):
    """Minimal issue representation returned by the dependencies and sub-issues endpoints.

    `id` is the globally unique issue ID; `number` is the per-repository
    display number. Write endpoints take the former, URLs use the latter.
    """

    id: int
    number: int
    title: str
    state: IssueState
    html_url: str
    user: Optional[IssueUser] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(extra="ignore", frozen=True, use_enum_values=True)

    @property
    def author(self) -> Optional[str]:
        return self.user.login if self.user else None


class LookupStatus(str, enum.Enum):
    """Outcome tag for a parent lookup."""

    FOUND = "found"
    ABSENT = "absent"
    FAILED = "failed"


class ParentLookup(BaseModel):
    """Result of a parent-issue lookup.

    GitHub answers 404 when an issue has no parent; the client reports that
    as ABSENT rather than raising, so callers match on `status` instead of
    catching a not-found error.
    """

    status: LookupStatus
    issue: Optional[IssueReference] = None
    error: Optional[Exception] = None

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @classmethod
    def found(cls, issue: IssueReference) -> "ParentLookup":
        return cls(status=LookupStatus.FOUND, issue=issue)

    @classmethod
    def absent(cls) -> "ParentLookup":
        return cls(status=LookupStatus.ABSENT)

    @classmethod
    def failed(cls, error: Exception) -> "ParentLookup":
        return cls(status=LookupStatus.FAILED, error=error)


class WriteAck(BaseModel):
    """Acknowledgement of a successful write against the relations API."""

    success: bool = True
    status_code: int


# Tool Input Schemas

ResponseFormat = Literal["human", "structured"]

# Older clients send the markdown/json vocabulary
FORMAT_SYNONYMS = {"markdown": "human", "json": "structured"}


class IssueTargetInput(BaseModel):
    """Base schema for tools addressing one issue in one repository."""

    # Booleans and numeric strings are not issue numbers or IDs
    model_config = ConfigDict(strict=True)

    owner: str = Field(..., min_length=1, description="Repository owner (username or organization)")
    repo: str = Field(..., min_length=1, description="Repository name")
    issue_number: int = Field(..., gt=0, description="Issue number")


class FormattedInput(IssueTargetInput):
    """Base schema for read tools that support both output formats."""

    response_format: ResponseFormat = Field(
        "human",
        validation_alias=AliasChoices("format", "response_format"),
        description="Output format: 'human' for readable markdown or 'structured' for JSON data",
    )

    @field_validator("response_format", mode="before")
    @classmethod
    def map_format_synonyms(cls, value):
        if isinstance(value, str):
            return FORMAT_SYNONYMS.get(value.lower(), value.lower())
        return value


class PaginatedInput(FormattedInput):
    """Base schema for list tools."""

    limit: int = Field(
        DEFAULT_PAGE_SIZE,
        ge=1,
        le=MAX_PAGE_SIZE,
        description=f"Maximum number of results to return (1-{MAX_PAGE_SIZE})",
    )
    offset: int = Field(0, ge=0, description="Number of results to skip for pagination")


class GetDependenciesInput(PaginatedInput):
    """Input for github_get_blocked_by and github_get_blocking."""


class GetParentInput(FormattedInput):
    """Input for github_get_parent_issue."""

    issue_number: int = Field(..., gt=0, description="The sub-issue number to check")


class ListSubIssuesInput(PaginatedInput):
    """Input for github_list_sub_issues."""

    issue_number: int = Field(..., gt=0, description="Parent issue number")


class DependencyModifyInput(IssueTargetInput):
    """Input for github_add_blocking_dependency and github_remove_blocking_dependency."""

    blocking_issue_id: int = Field(
        ..., gt=0, description="The ID (not number) of the issue that blocks this issue"
    )


class AddSubIssueInput(IssueTargetInput):
    """Input for github_add_sub_issue."""

    issue_number: int = Field(..., gt=0, description="Parent issue number")
    sub_issue_id: int = Field(
        ..., gt=0, description="The ID (not number) of the issue to add as a sub-issue"
    )
    replace_parent: bool = Field(
        False,
        description="If true, reassign from existing parent. If false and issue has a parent, operation fails.",
    )


class RemoveSubIssueInput(IssueTargetInput):
    """Input for github_remove_sub_issue."""

    issue_number: int = Field(..., gt=0, description="Parent issue number")
    sub_issue_id: int = Field(..., gt=0, description="The ID of the sub-issue to remove")


class ReprioritizeSubIssueInput(IssueTargetInput):
    """Input for github_reprioritize_sub_issue.

    Exactly one of after_id / before_id positions the sub-issue.
    """

    issue_number: int = Field(..., gt=0, description="Parent issue number")
    sub_issue_id: int = Field(..., gt=0, description="The ID of the sub-issue to reorder")
    after_id: Optional[int] = Field(None, gt=0, description="Place the sub-issue after this sub-issue ID")
    before_id: Optional[int] = Field(None, gt=0, description="Place the sub-issue before this sub-issue ID")

    @model_validator(mode="after")
    def require_single_anchor(self) -> "ReprioritizeSubIssueInput":
        if self.after_id is None and self.before_id is None:
            raise PydanticCustomError(
                "anchor_missing",
                "Must specify either after_id or before_id to position the sub-issue.",
            )
        if self.after_id is not None and self.before_id is not None:
            raise PydanticCustomError(
                "anchor_conflict",
                "Specify only one of after_id or before_id, not both.",
            )
        return self
