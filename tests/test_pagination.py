"""Tests for local offset/limit pagination."""
from issue_relations_mcp.pagination import paginate


class TestPaginate:
    """Test slicing and envelope fields."""

    def test_first_page_with_more(self):
        page = paginate(list(range(25)), offset=0, limit=10)

        assert page.items == list(range(10))
        assert page.total == 25
        assert page.count == 10
        assert page.has_more is True
        assert page.next_offset == 10

    def test_last_partial_page(self):
        page = paginate(list(range(25)), offset=20, limit=10)

        assert page.items == [20, 21, 22, 23, 24]
        assert page.has_more is False
        assert page.next_offset is None

    def test_exact_fit_has_no_more(self):
        page = paginate(list(range(10)), offset=0, limit=10)

        assert page.count == 10
        assert page.has_more is False

    def test_offset_past_end_is_empty(self):
        page = paginate([1, 2, 3], offset=50, limit=20)

        assert page.items == []
        assert page.total == 3
        assert page.count == 0
        assert page.has_more is False

    def test_envelope_includes_next_offset_only_when_more(self):
        assert paginate(list(range(5)), offset=1, limit=2).envelope() == {
            "total": 5,
            "count": 2,
            "offset": 1,
            "limit": 2,
            "has_more": True,
            "next_offset": 3,
        }
        assert "next_offset" not in paginate(list(range(5)), offset=0, limit=20).envelope()

    def test_does_not_reorder(self):
        page = paginate(["c", "a", "b"], offset=0, limit=20)

        assert page.items == ["c", "a", "b"]
