"""Typed predicates emitted by the filter compiler.

A compiled query is an ordered conjunction of these values. Each predicate is
immutable, exposes an order independent ``signature()`` used for cache keys, and
can be evaluated against a plain record mapping with ``matches()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Hashable, Mapping, Tuple, Union

from ..domain.models import parse_datetime


class PredicateKind(str, Enum):
    EQUALS = "equals"
    ONE_OF = "one_of"
    RANGE = "range"
    CONTAINS = "contains"
    NOT_NULL = "not_null"
    ALL_OF = "all_of"
    ANY_OF = "any_of"


class RangeOp(str, Enum):
    GTE = "gte"
    GT = "gt"
    LTE = "lte"
    LT = "lt"


def _normalize(value: Any) -> Hashable:
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass(frozen=True, slots=True)
class Equals:
    field: str
    value: Any
    kind: ClassVar[PredicateKind] = PredicateKind.EQUALS

    def signature(self) -> Hashable:
        return (self.kind.value, self.field, _normalize(self.value))

    def matches(self, record: Mapping[str, Any]) -> bool:
        return _normalize(record.get(self.field)) == _normalize(self.value)


@dataclass(frozen=True, slots=True)
class OneOf:
    field: str
    values: Tuple[Any, ...]
    kind: ClassVar[PredicateKind] = PredicateKind.ONE_OF

    def signature(self) -> Hashable:
        return (self.kind.value, self.field, frozenset(_normalize(value) for value in self.values))

    def matches(self, record: Mapping[str, Any]) -> bool:
        return _normalize(record.get(self.field)) in {_normalize(value) for value in self.values}


@dataclass(frozen=True, slots=True)
class Range:
    field: str
    op: RangeOp
    value: datetime
    kind: ClassVar[PredicateKind] = PredicateKind.RANGE

    def signature(self) -> Hashable:
        return (self.kind.value, self.field, self.op.value, _normalize(self.value))

    def matches(self, record: Mapping[str, Any]) -> bool:
        raw = record.get(self.field)
        if raw is None:
            return False
        current = parse_datetime(raw)
        if self.op is RangeOp.GTE:
            return current >= self.value
        if self.op is RangeOp.GT:
            return current > self.value
        if self.op is RangeOp.LTE:
            return current <= self.value
        return current < self.value


@dataclass(frozen=True, slots=True)
class Contains:
    """Case-insensitive substring containment."""

    field: str
    term: str
    kind: ClassVar[PredicateKind] = PredicateKind.CONTAINS

    def signature(self) -> Hashable:
        return (self.kind.value, self.field, self.term.casefold())

    def matches(self, record: Mapping[str, Any]) -> bool:
        raw = record.get(self.field)
        if raw is None:
            return False
        return self.term.casefold() in str(raw).casefold()


@dataclass(frozen=True, slots=True)
class NotNull:
    field: str
    kind: ClassVar[PredicateKind] = PredicateKind.NOT_NULL

    def signature(self) -> Hashable:
        return (self.kind.value, self.field)

    def matches(self, record: Mapping[str, Any]) -> bool:
        return record.get(self.field) is not None


@dataclass(frozen=True, slots=True)
class AllOf:
    predicates: Tuple["Predicate", ...]
    kind: ClassVar[PredicateKind] = PredicateKind.ALL_OF

    def signature(self) -> Hashable:
        return (self.kind.value, frozenset(item.signature() for item in self.predicates))

    def matches(self, record: Mapping[str, Any]) -> bool:
        return all(item.matches(record) for item in self.predicates)


@dataclass(frozen=True, slots=True)
class AnyOf:
    predicates: Tuple["Predicate", ...]
    kind: ClassVar[PredicateKind] = PredicateKind.ANY_OF

    def signature(self) -> Hashable:
        return (self.kind.value, frozenset(item.signature() for item in self.predicates))

    def matches(self, record: Mapping[str, Any]) -> bool:
        return any(item.matches(record) for item in self.predicates)


Predicate = Union[Equals, OneOf, Range, Contains, NotNull, AllOf, AnyOf]


def matches_all(predicates: Tuple[Predicate, ...], record: Mapping[str, Any]) -> bool:
    return all(predicate.matches(record) for predicate in predicates)


__all__ = [
    "AllOf",
    "AnyOf",
    "Contains",
    "Equals",
    "NotNull",
    "OneOf",
    "Predicate",
    "PredicateKind",
    "Range",
    "RangeOp",
    "matches_all",
]
