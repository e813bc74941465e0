"""Tests for filter validation and predicate compilation."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from tidy_tortoise.domain import InvalidFilterError, Resource, SortOrder, UnauthenticatedError
from tidy_tortoise.query import (
    AllOf,
    AnyOf,
    Contains,
    Equals,
    NotNull,
    OneOf,
    PredicateKind,
    Range,
    RangeOp,
    compile_category_query,
    compile_task_query,
    compile_time_block_query,
)

from conftest import NOW, OWNER

CATEGORY = "3d9c0a8e-5a57-4bb8-8d7e-0c6f1c4d2b33"


def compile_tasks(filters=None, **kwargs):
    return compile_task_query(filters, OWNER, now=NOW, **kwargs)


def test_empty_filters_emit_only_ownership():
    query = compile_tasks({})
    assert query.predicates == (Equals("user_id", OWNER),)
    assert query.page.limit == 50
    assert query.page.offset == 0
    assert query.sort.column == "created_at"
    assert query.sort.order is SortOrder.DESC


@pytest.mark.parametrize(
    "filters",
    [
        {"status": "todo"},
        {"priority": "urgent", "search": "report"},
        {"dateRange": "overdue", "dueDateFrom": "2024-01-01T00:00:00Z"},
        {"categoryId": CATEGORY, "limit": "5", "offset": "10"},
    ],
)
def test_ownership_is_always_first(filters):
    query = compile_tasks(filters)
    assert query.predicates[0] == Equals("user_id", OWNER)


def test_missing_identity_fails_closed():
    with pytest.raises(UnauthenticatedError):
        compile_task_query({"status": "todo"}, None, now=NOW)
    with pytest.raises(UnauthenticatedError):
        compile_time_block_query({}, "")


def test_adding_a_filter_only_adds_predicates():
    narrow = compile_tasks({"status": "todo", "priority": "high"})
    broad = compile_tasks({"priority": "high"})
    assert set(broad.predicates) < set(narrow.predicates)
    assert Equals("status", "todo") in narrow.predicates


def test_blank_parameters_are_absent():
    query = compile_tasks({"status": "", "priority": None, "search": "   ", "limit": ""})
    assert query.predicates == (Equals("user_id", OWNER),)
    assert query.page.limit == 50


def test_search_or_is_grouped():
    query = compile_tasks({"search": "Budget"})
    search = query.predicates[-1]
    assert isinstance(search, AnyOf)
    assert search.kind is PredicateKind.ANY_OF
    title, description = search.predicates
    assert title == Contains("title", "Budget")
    assert description == AllOf((NotNull("description"), Contains("description", "Budget")))
    assert search.matches({"title": "q3 BUDGET review", "description": None})
    assert search.matches({"title": "Review", "description": "the budget"})
    assert not search.matches({"title": "Review", "description": None})


def test_named_and_custom_ranges_intersect():
    query = compile_tasks({"dateRange": "this_week", "dueDateTo": "2024-06-12T00:00:00Z"})
    ranges = [p for p in query.predicates if isinstance(p, Range)]
    assert Range("due_date", RangeOp.GTE, datetime(2024, 6, 9, tzinfo=timezone.utc)) in ranges
    assert Range("due_date", RangeOp.LT, datetime(2024, 6, 16, tzinfo=timezone.utc)) in ranges
    assert Range("due_date", RangeOp.LTE, datetime(2024, 6, 12, tzinfo=timezone.utc)) in ranges


def test_overdue_adds_open_status_condition():
    query = compile_tasks({"dateRange": "overdue"})
    assert OneOf("status", ("todo", "in_progress")) in query.predicates


def test_sort_and_paging_normalised():
    query = compile_tasks({"sortBy": "dueDate", "sortOrder": "asc", "limit": "20", "offset": "40"})
    assert query.sort.column == "due_date"
    assert not query.sort.descending
    assert (query.page.limit, query.page.offset) == (20, 40)


@pytest.mark.parametrize(
    "filters, field",
    [
        ({"status": "finished"}, "status"),
        ({"priority": "meh"}, "priority"),
        ({"categoryId": "not-a-uuid"}, "categoryId"),
        ({"dueDateFrom": "tomorrow"}, "dueDateFrom"),
        ({"dateRange": "someday"}, "dateRange"),
        ({"search": "x" * 256}, "search"),
        ({"limit": "0"}, "limit"),
        ({"limit": "501"}, "limit"),
        ({"sortBy": "colour"}, "sortBy"),
    ],
)
def test_invalid_filters_name_the_field(filters, field):
    with pytest.raises(InvalidFilterError) as excinfo:
        compile_tasks(filters)
    assert excinfo.value.field == field
    assert excinfo.value.kind == "validation"


def test_signature_is_order_independent():
    first = compile_tasks({"status": "todo", "priority": "high", "search": "a"})
    second = compile_tasks({"search": "a", "priority": "high", "status": "todo"})
    assert first.signature() == second.signature()
    assert hash(first.signature()) == hash(second.signature())


def test_signature_covers_pagination_and_sort():
    base = compile_tasks({"status": "todo"})
    assert base.signature() != compile_tasks({"status": "todo", "offset": 50}).signature()
    assert base.signature() != compile_tasks({"status": "todo", "sortOrder": "asc"}).signature()


def test_time_block_filters():
    query = compile_time_block_query(
        {
            "type": "break",
            "taskId": CATEGORY,
            "startDate": "2024-06-01T00:00:00Z",
            "endDate": "2024-06-30T00:00:00Z",
            "sortBy": "startTime",
        },
        OWNER,
    )
    assert query.resource is Resource.TIME_BLOCKS
    assert query.predicates == (
        Equals("user_id", OWNER),
        Equals("type", "break"),
        Equals("task_id", CATEGORY),
        Range("start_time", RangeOp.GTE, datetime(2024, 6, 1, tzinfo=timezone.utc)),
        Range("end_time", RangeOp.LTE, datetime(2024, 6, 30, tzinfo=timezone.utc)),
    )
    assert query.page.limit == 100
    assert query.sort.column == "start_time"


def test_category_query_orders_by_name():
    query = compile_category_query(OWNER)
    assert query.page.limit is None
    assert query.sort.column == "name"
    assert not query.sort.descending
