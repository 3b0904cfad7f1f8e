"""Offset/limit pagination over complete result sets.

The relations API returns the full list per call, so paging happens here,
after the fetch, never on the remote side.
"""
from dataclasses import dataclass
from typing import Generic, Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One slice of a list result plus the envelope fields describing it."""

    items: list[T]
    total: int
    offset: int
    limit: int

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def has_more(self) -> bool:
        return self.offset + self.count < self.total

    @property
    def next_offset(self) -> Optional[int]:
        return self.offset + self.count if self.has_more else None

    def envelope(self) -> dict:
        """Pagination fields for a structured response (items excluded)."""
        fields = {
            "total": self.total,
            "count": self.count,
            "offset": self.offset,
            "limit": self.limit,
            "has_more": self.has_more,
        }
        if self.has_more:
            fields["next_offset"] = self.next_offset
        return fields


def paginate(items: Sequence[T], offset: int, limit: int) -> Page[T]:
    """Slice a complete result set.

    An offset at or past the end yields an empty page, not an error.
    Bounds on offset/limit are enforced by input validation before this runs.
    """
    return Page(items=list(items[offset:offset + limit]), total=len(items), offset=offset, limit=limit)
