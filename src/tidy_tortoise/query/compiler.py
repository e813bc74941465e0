"""Compile loosely typed filter parameters into an ordered predicate conjunction.

The compiler is pure: it validates input, resolves date ranges against an
injected reference instant and never touches the record store. The ownership
predicate is always the first conjunct.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Hashable, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..domain.enums import Resource, SortOrder, TaskSortBy, TimeBlockSortBy
from ..domain.errors import InvalidFilterError, UnauthenticatedError, ValidationError
from .dates import resolve_custom_range, resolve_named_range
from .filters import TaskFilterParams, TimeBlockFilterParams
from .predicates import AllOf, AnyOf, Contains, Equals, NotNull, Predicate, Range, RangeOp

OWNER_FIELD = "user_id"

TASK_SORT_COLUMNS = {
    TaskSortBy.CREATED_AT: "created_at",
    TaskSortBy.UPDATED_AT: "updated_at",
    TaskSortBy.DUE_DATE: "due_date",
    TaskSortBy.PRIORITY: "priority",
    TaskSortBy.STATUS: "status",
    TaskSortBy.TITLE: "title",
    TaskSortBy.COMPLETED_AT: "completed_at",
}

TIME_BLOCK_SORT_COLUMNS = {
    TimeBlockSortBy.START_TIME: "start_time",
    TimeBlockSortBy.END_TIME: "end_time",
    TimeBlockSortBy.CREATED_AT: "created_at",
}

ParamsT = TypeVar("ParamsT", bound=BaseModel)


@dataclass(frozen=True, slots=True)
class Page:
    limit: Optional[int]
    offset: int = 0


@dataclass(frozen=True, slots=True)
class Sort:
    column: str
    order: SortOrder = SortOrder.DESC

    @property
    def descending(self) -> bool:
        return self.order is SortOrder.DESC


@dataclass(frozen=True, slots=True)
class CompiledQuery:
    resource: Resource
    predicates: Tuple[Predicate, ...]
    page: Page
    sort: Sort
    owner_id: str = field(default="")

    def signature(self) -> Hashable:
        """Order independent cache key covering predicates, pagination and sort."""

        return (
            self.resource.value,
            frozenset(predicate.signature() for predicate in self.predicates),
            self.page.limit,
            self.page.offset,
            self.sort.column,
            self.sort.order.value,
        )


def ownership_predicate(owner_id: Optional[str]) -> Equals:
    if not owner_id:
        raise UnauthenticatedError("No authenticated caller; refusing to build an unscoped query.")
    return Equals(OWNER_FIELD, str(owner_id))


def search_predicate(term: str) -> Predicate:
    # The OR stays wrapped so it cannot leak into the surrounding conjunction.
    return AnyOf(
        (
            Contains("title", term),
            AllOf((NotNull("description"), Contains("description", term))),
        )
    )


def _parse_params(model: Type[ParamsT], raw: Union[ParamsT, Mapping[str, Any], None]) -> ParamsT:
    if isinstance(raw, model):
        return raw
    try:
        return model.model_validate(dict(raw or {}))
    except PydanticValidationError as exc:
        raise InvalidFilterError.from_pydantic(exc) from exc


def _page(limit: Optional[int], offset: int, *, default_limit: int, max_limit: int) -> Page:
    resolved = default_limit if limit is None else limit
    if resolved > max_limit:
        raise InvalidFilterError(f"limit must not exceed {max_limit}", field="limit")
    return Page(limit=resolved, offset=offset)


def compile_task_query(
    raw: Union[TaskFilterParams, Mapping[str, Any], None],
    owner_id: Optional[str],
    *,
    now: datetime,
    timezone_name: str = "UTC",
    week_start: int = 0,
    default_limit: int = 50,
    max_limit: int = 500,
) -> CompiledQuery:
    owner = ownership_predicate(owner_id)
    params = _parse_params(TaskFilterParams, raw)

    predicates: list[Predicate] = [owner]
    if params.status is not None:
        predicates.append(Equals("status", params.status.value))
    if params.priority is not None:
        predicates.append(Equals("priority", params.priority.value))
    if params.category_id is not None:
        predicates.append(Equals("category_id", str(params.category_id)))
    if params.search:
        predicates.append(search_predicate(params.search))

    # Named and custom ranges intersect when both are supplied.
    try:
        if params.date_range is not None:
            named = resolve_named_range(
                params.date_range,
                now,
                timezone_name=timezone_name,
                week_start=week_start,
            )
            predicates.extend(named.to_predicates("due_date"))
        custom = resolve_custom_range(params.due_date_from, params.due_date_to)
    except ValidationError as exc:
        raise InvalidFilterError(exc.message, field=exc.field) from exc
    if custom is not None:
        predicates.extend(custom.to_predicates("due_date"))

    return CompiledQuery(
        resource=Resource.TASKS,
        predicates=tuple(predicates),
        page=_page(params.limit, params.offset, default_limit=default_limit, max_limit=max_limit),
        sort=Sort(TASK_SORT_COLUMNS[params.sort_by], params.sort_order),
        owner_id=str(owner_id),
    )


def compile_time_block_query(
    raw: Union[TimeBlockFilterParams, Mapping[str, Any], None],
    owner_id: Optional[str],
    *,
    default_limit: int = 100,
    max_limit: int = 500,
) -> CompiledQuery:
    owner = ownership_predicate(owner_id)
    params = _parse_params(TimeBlockFilterParams, raw)

    predicates: list[Predicate] = [owner]
    if params.type is not None:
        predicates.append(Equals("type", params.type.value))
    if params.task_id is not None:
        predicates.append(Equals("task_id", str(params.task_id)))
    if params.start_date is not None:
        predicates.append(Range("start_time", RangeOp.GTE, params.start_date))
    if params.end_date is not None:
        predicates.append(Range("end_time", RangeOp.LTE, params.end_date))

    return CompiledQuery(
        resource=Resource.TIME_BLOCKS,
        predicates=tuple(predicates),
        page=_page(params.limit, params.offset, default_limit=default_limit, max_limit=max_limit),
        sort=Sort(TIME_BLOCK_SORT_COLUMNS[params.sort_by], params.sort_order),
        owner_id=str(owner_id),
    )


def compile_category_query(owner_id: Optional[str]) -> CompiledQuery:
    return CompiledQuery(
        resource=Resource.CATEGORIES,
        predicates=(ownership_predicate(owner_id),),
        page=Page(limit=None),
        sort=Sort("name", SortOrder.ASC),
        owner_id=str(owner_id),
    )


__all__ = [
    "CompiledQuery",
    "OWNER_FIELD",
    "Page",
    "Sort",
    "TASK_SORT_COLUMNS",
    "TIME_BLOCK_SORT_COLUMNS",
    "compile_category_query",
    "compile_task_query",
    "compile_time_block_query",
    "ownership_predicate",
    "search_predicate",
]
