"""Filter validation, date range resolution and predicate compilation."""

from __future__ import annotations

from .compiler import (
    CompiledQuery,
    Page,
    Sort,
    compile_category_query,
    compile_task_query,
    compile_time_block_query,
)
from .dates import ResolvedRange, resolve_custom_range, resolve_named_range
from .filters import TaskFilterParams, TimeBlockFilterParams
from .predicates import AllOf, AnyOf, Contains, Equals, NotNull, OneOf, Predicate, PredicateKind, Range, RangeOp

__all__ = [
    "AllOf",
    "AnyOf",
    "CompiledQuery",
    "Contains",
    "Equals",
    "NotNull",
    "OneOf",
    "Page",
    "Predicate",
    "PredicateKind",
    "Range",
    "RangeOp",
    "ResolvedRange",
    "Sort",
    "TaskFilterParams",
    "TimeBlockFilterParams",
    "compile_category_query",
    "compile_task_query",
    "compile_time_block_query",
    "resolve_custom_range",
    "resolve_named_range",
]
