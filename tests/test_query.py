"""
Tests for filter / sort / paginate over list rows.
"""

import pytest

from listdata import config
from listdata.github.adapter import issue_to_row
from listdata.query import (
    PaginationParams,
    SortSpec,
    filter_rows,
    params_from_query,
    query_rows,
    sort_rows,
)
from tests.fixtures import make_issue

CLOSED = {14, 18}


@pytest.fixture
def issue_rows():
    """Ten issues #11..#20 in row shape; #14 and #18 closed."""
    return [
        issue_to_row(make_issue(n, state="closed" if n in CLOSED else "open"))
        for n in range(11, 21)
    ]


def _numbers(result) -> list[int]:
    return [row["row_data"]["number"] for row in result.rows]


class TestQueryRows:
    def test_filter_sort_page(self, issue_rows):
        result = query_rows(
            issue_rows,
            filter={"state": "open"},
            sort={"field": "number", "order": "desc"},
            pagination={"page": 2, "limit": 3},
        )
        assert _numbers(result) == [16, 15, 13]
        assert result.total == 8
        assert result.limit == 3
        assert result.offset == 3
        assert result.has_more is True

    def test_last_page(self, issue_rows):
        result = query_rows(issue_rows, pagination={"page": 4, "limit": 3})
        assert _numbers(result) == [20]
        assert result.has_more is False

    def test_page_past_end(self, issue_rows):
        result = query_rows(issue_rows, pagination={"page": 9, "limit": 3})
        assert result.rows == []
        assert result.total == 10

    def test_defaults(self, issue_rows):
        result = query_rows(issue_rows)
        assert result.total == 10
        assert result.limit == config.QUERY_DEFAULT_LIMIT
        assert result.offset == 0
        assert _numbers(result) == list(range(11, 21))

    def test_bare_row_data_dicts(self):
        rows = [{"name": "b"}, {"name": "a"}]
        result = query_rows(rows, sort={"field": "name"})
        assert result.rows == [{"name": "a"}, {"name": "b"}]


class TestFilterRows:
    def test_exact_and_case_sensitive(self, issue_rows):
        assert filter_rows(issue_rows, {"state": "Open"}) == []
        assert len(filter_rows(issue_rows, {"state": "closed"})) == 2

    def test_stringified_comparison(self, issue_rows):
        matched = filter_rows(issue_rows, {"number": "14"})
        assert [r["id"] for r in matched] == ["14"]
        assert [r["id"] for r in filter_rows(issue_rows, {"number": 14})] == ["14"]

    def test_unknown_field_matches_nothing(self, issue_rows):
        assert filter_rows(issue_rows, {"priority": "high"}) == []

    def test_empty_filter_values_ignored(self, issue_rows):
        assert len(filter_rows(issue_rows, {"state": "", "title": None})) == 10

    def test_all_filters_must_match(self, issue_rows):
        matched = filter_rows(issue_rows, {"state": "closed", "number": "18"})
        assert [r["id"] for r in matched] == ["18"]

    def test_booleans_and_lists(self):
        rows = [{"row_data": {"vip": True, "tags": ["a", "b"]}}, {"row_data": {"vip": False}}]
        assert len(filter_rows(rows, {"vip": "true"})) == 1
        assert len(filter_rows(rows, {"tags": "a,b"})) == 1


class TestSortRows:
    def test_string_comparison(self):
        rows = [{"n": 9}, {"n": 10}, {"n": 1}]
        assert sort_rows(rows, {"field": "n"}) == [{"n": 1}, {"n": 10}, {"n": 9}]

    def test_stable_for_ties(self):
        rows = [{"k": "a", "i": 1}, {"k": "a", "i": 2}, {"k": "0", "i": 3}]
        assert [r["i"] for r in sort_rows(rows, SortSpec(field="k"))] == [3, 1, 2]

    def test_missing_values_sort_first(self):
        rows = [{"k": "b"}, {}, {"k": "a"}]
        assert sort_rows(rows, {"field": "k"}) == [{}, {"k": "a"}, {"k": "b"}]

    def test_unknown_order_is_ascending(self):
        assert SortSpec(field="k", order="sideways").order == "asc"
        assert SortSpec(field="k", order="DESC").order == "desc"

    def test_no_sort_keeps_order(self):
        rows = [{"k": "b"}, {"k": "a"}]
        assert sort_rows(rows, None) == rows


class TestPaginationParams:
    def test_limit_capped(self):
        assert PaginationParams(limit=10**6).resolve() == (config.QUERY_MAX_LIMIT, 0)

    @pytest.mark.parametrize("limit", [None, 0, -5, "abc"])
    def test_bad_limit_falls_back(self, limit):
        assert PaginationParams(limit=limit).resolve()[0] == config.QUERY_DEFAULT_LIMIT

    def test_negative_offset_clamped(self):
        assert PaginationParams(limit=5, offset=-3).resolve() == (5, 0)

    def test_page_wins_over_offset(self):
        assert PaginationParams(limit=5, offset=1, page=3).resolve() == (5, 10)

    def test_page_below_one(self):
        assert PaginationParams(limit=5, page=0).resolve() == (5, 0)

    def test_string_inputs(self):
        assert PaginationParams(limit="20", offset="40").resolve() == (20, 40)


class TestParamsFromQuery:
    def test_reserved_keys_split_out(self):
        params = params_from_query(
            {"state": "open", "sort": "number", "order": "desc", "page": "2", "limit": "3"}
        )
        assert params.filter == {"state": "open"}
        assert params.sort == SortSpec(field="number", order="desc")
        assert params.pagination.resolve() == (3, 3)

    def test_no_sort(self):
        params = params_from_query({"labels": "bug"})
        assert params.sort is None
        assert params.filter == {"labels": "bug"}

    def test_blank_values_dropped(self):
        assert params_from_query({"state": "", "sort": " "}).filter == {}
