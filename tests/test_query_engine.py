"""
Query engine tests: search, exact-match filters, stable sort, pagination.

Runs against plain dict collections; no app or store involved.
"""

import math

import pytest

from eduadmin.core.exceptions import InvalidInputError
from eduadmin.services.entity_registry import LEARNING_GROUPS, PROGRAMS
from eduadmin.services.query_engine import (
    QueryDescriptor,
    apply_filters,
    apply_search,
    apply_sort,
    paginate,
    run_query,
)


def _programs(n, **common):
    return [{"id": f"prog_{i:03d}", "name": f"Program {i}", **common} for i in range(n)]


# ── Pagination ───────────────────────────────────────────────────────────


class TestPagination:
    def test_third_page_of_25_with_limit_10(self):
        result = run_query(_programs(25), QueryDescriptor(page=3, limit=10), PROGRAMS)
        assert len(result.data) == 5
        assert result.pagination.total == 25
        assert result.pagination.total_pages == 3
        assert [r["id"] for r in result.data] == [f"prog_{i:03d}" for i in range(20, 25)]

    @pytest.mark.parametrize("n,limit", [(0, 10), (1, 1), (23, 5), (30, 10), (7, 100)])
    def test_pages_add_up_to_total(self, n, limit):
        records = _programs(n)
        first = run_query(records, QueryDescriptor(limit=limit), PROGRAMS)
        pages = first.pagination.total_pages
        assert pages == math.ceil(n / limit)

        seen = []
        for page in range(1, pages + 1):
            seen.extend(run_query(records, QueryDescriptor(page=page, limit=limit), PROGRAMS).data)
        assert len(seen) == n
        assert [r["id"] for r in seen] == [r["id"] for r in records]

    def test_page_past_the_end_is_empty_not_an_error(self):
        result = paginate(_programs(4), page=9, limit=2)
        assert result.data == []
        assert result.pagination.total == 4
        assert result.pagination.total_pages == 2

    def test_page_zero_is_empty(self):
        assert paginate(_programs(4), page=0, limit=2).data == []

    def test_pagination_block_uses_camel_case(self):
        block = paginate(_programs(3), page=1, limit=2).pagination.to_dict()
        assert block == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}


# ── Search ───────────────────────────────────────────────────────────────


class TestSearch:
    def test_no_match_gives_empty_page(self):
        result = run_query(_programs(5), QueryDescriptor(search="zzz-no-match"), PROGRAMS)
        assert result.data == []
        assert result.pagination.total == 0
        assert result.pagination.total_pages == 0

    def test_case_insensitive_across_searchable_fields(self):
        records = [
            {"id": "1", "name": "Mental Arithmetic", "description": ""},
            {"id": "2", "name": "Reading", "description": "improves MENTAL focus"},
            {"id": "3", "name": "Robotics", "description": "motors"},
        ]
        assert [r["id"] for r in apply_search(records, "mental", PROGRAMS.searchable)] == ["1", "2"]

    def test_non_searchable_field_is_ignored(self):
        records = [{"id": "1", "name": "Math", "category": "reading"}]
        assert apply_search(records, "reading", PROGRAMS.searchable) == []

    def test_search_is_idempotent(self):
        records = _programs(12) + [{"id": "x", "name": "Other"}]
        once = run_query(records, QueryDescriptor(search="program 1", limit=1000), PROGRAMS).data
        twice = run_query(once, QueryDescriptor(search="program 1", limit=1000), PROGRAMS).data
        assert once == twice
        assert len(once) == 3  # 1, 10, 11


# ── Filters ──────────────────────────────────────────────────────────────


class TestFilters:
    def test_exact_match_only(self):
        records = [
            {"id": "1", "status": "active"},
            {"id": "2", "status": "inactive"},
            {"id": "3", "status": "active"},
        ]
        assert [r["id"] for r in apply_filters(records, {"status": "active"})] == ["1", "3"]

    def test_all_filters_must_match(self):
        records = [
            {"id": "1", "status": "active", "category": "math"},
            {"id": "2", "status": "active", "category": "stem"},
        ]
        result = apply_filters(records, {"status": "active", "category": "stem"})
        assert [r["id"] for r in result] == ["2"]

    def test_numeric_value_matches_string_filter(self):
        records = [{"id": "1", "lcId": 7}, {"id": "2", "lcId": 8}]
        assert [r["id"] for r in apply_filters(records, {"lcId": "7"})] == ["1"]

    def test_missing_field_never_matches(self):
        assert apply_filters([{"id": "1"}], {"status": "active"}) == []


# ── Sorting ──────────────────────────────────────────────────────────────


class TestSort:
    def test_ties_keep_insertion_order(self):
        records = [{"id": str(i), "status": "active"} for i in range(5)]
        result = apply_sort(records, "status", "asc", PROGRAMS)
        assert [r["id"] for r in result] == ["0", "1", "2", "3", "4"]

    def test_ties_keep_insertion_order_descending(self):
        records = [
            {"id": "a", "price": 10},
            {"id": "b", "price": 20},
            {"id": "c", "price": 10},
            {"id": "d", "price": 20},
        ]
        result = apply_sort(records, "price", "desc", PROGRAMS)
        assert [r["id"] for r in result] == ["b", "d", "a", "c"]

    def test_numbers_sort_numerically(self):
        records = [{"id": "a", "price": 100}, {"id": "b", "price": 9}, {"id": "c", "price": 25.5}]
        assert [r["id"] for r in apply_sort(records, "price", "asc", PROGRAMS)] == ["b", "c", "a"]

    def test_dates_sort_chronologically(self):
        records = [
            {"id": "a", "startDate": "2025-03-01"},
            {"id": "b", "startDate": "2024-12-31"},
            {"id": "c", "startDate": "2025-01-15T10:00:00Z"},
        ]
        result = apply_sort(records, "startDate", "asc", LEARNING_GROUPS)
        assert [r["id"] for r in result] == ["b", "c", "a"]

    def test_records_without_value_stay_in_place(self):
        records = [{"id": "a", "price": 30}, {"id": "b"}, {"id": "c", "price": 10}]
        result = apply_sort(records, "price", "asc", PROGRAMS)
        assert [r["id"] for r in result] == ["c", "b", "a"]

    def test_mixed_types_leave_order_unchanged(self):
        records = [{"id": "a", "price": 30}, {"id": "b", "price": "cheap"}, {"id": "c", "price": 10}]
        assert apply_sort(records, "price", "asc", PROGRAMS) == records

    def test_unknown_field_leaves_order_unchanged(self):
        records = _programs(3)
        assert apply_sort(records, "nope", "asc", PROGRAMS) == records

    def test_sort_does_not_mutate_input(self):
        records = [{"id": "a", "price": 2}, {"id": "b", "price": 1}]
        apply_sort(records, "price", "asc", PROGRAMS)
        assert [r["id"] for r in records] == ["a", "b"]


# ── Descriptor parsing ───────────────────────────────────────────────────


class TestQueryDescriptor:
    def test_defaults(self):
        d = QueryDescriptor.from_args({}, PROGRAMS)
        assert (d.page, d.limit, d.sort_by, d.sort_order) == (1, 10, "createdAt", "desc")
        assert d.search is None
        assert d.filters == {}

    def test_filters_only_from_filterable_fields(self):
        d = QueryDescriptor.from_args(
            {"status": "ACTIVE", "category": "math", "name": "x", "userRole": "HQ"}, PROGRAMS,
        )
        assert d.filters == {"status": "active", "category": "math"}

    def test_blank_values_are_ignored(self):
        d = QueryDescriptor.from_args({"search": "  ", "status": ""}, PROGRAMS)
        assert d.search is None
        assert d.filters == {}

    def test_limit_is_capped(self):
        assert QueryDescriptor.from_args({"limit": "5000"}, PROGRAMS, max_limit=1000).limit == 1000

    @pytest.mark.parametrize("args", [
        {"page": "abc"},
        {"limit": "ten"},
        {"limit": "0"},
        {"limit": "-3"},
        {"sortOrder": "sideways"},
    ])
    def test_bad_paging_or_sort_is_invalid_input(self, args):
        with pytest.raises(InvalidInputError):
            QueryDescriptor.from_args(args, PROGRAMS)

    def test_sort_order_is_case_insensitive(self):
        assert QueryDescriptor.from_args({"sortOrder": "ASC"}, PROGRAMS).sort_order == "asc"
