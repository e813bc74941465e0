"""Calendar-day arithmetic for named and custom date filters.

Named ranges resolve to half-open intervals ``[start, end)`` computed from the
calendar day of the reference instant in the storage timezone. Custom bounds are
inclusive on both ends.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AwareDatetime, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..domain.enums import DateRange, TaskStatus
from ..domain.errors import ValidationError
from .predicates import OneOf, Predicate, Range, RangeOp

OPEN_STATUSES: Tuple[TaskStatus, ...] = (TaskStatus.TODO, TaskStatus.IN_PROGRESS)

_INSTANT = TypeAdapter(AwareDatetime)


@dataclass(frozen=True, slots=True)
class ResolvedRange:
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    end_inclusive: bool = False
    status_in: Tuple[TaskStatus, ...] = ()

    def contains(self, instant: datetime) -> bool:
        if self.start is not None and instant < self.start:
            return False
        if self.end is not None:
            if self.end_inclusive:
                return instant <= self.end
            return instant < self.end
        return True

    def to_predicates(self, field: str, *, status_field: str = "status") -> Tuple[Predicate, ...]:
        predicates: list[Predicate] = []
        if self.start is not None:
            predicates.append(Range(field, RangeOp.GTE, self.start))
        if self.end is not None:
            predicates.append(Range(field, RangeOp.LTE if self.end_inclusive else RangeOp.LT, self.end))
        if self.status_in:
            predicates.append(OneOf(status_field, tuple(status.value for status in self.status_in)))
        return tuple(predicates)


def resolve_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"Unknown timezone: {name}", field="timezone") from exc


def parse_instant(value: Any, *, field: str) -> datetime:
    """Parse an ISO-8601 instant with an explicit offset."""

    try:
        return _INSTANT.validate_python(value)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid ISO-8601 instant: {value!r}", field=field) from exc


def _start_of(day: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def _first_of_next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def days_into_week(day: date, week_start: int = 0) -> int:
    """Offset of ``day`` from the start of its week; ``week_start`` 0 is Sunday."""

    python_start = (week_start - 1) % 7
    return (day.weekday() - python_start) % 7


def resolve_named_range(
    tag: Any,
    now: datetime,
    *,
    timezone_name: str = "UTC",
    week_start: int = 0,
) -> ResolvedRange:
    try:
        named = DateRange(tag)
    except ValueError as exc:
        allowed = ", ".join(item.value for item in DateRange)
        raise ValidationError(f"Unknown date range {tag!r}; expected one of {allowed}", field="dateRange") from exc

    tz = resolve_timezone(timezone_name)
    reference = now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)
    today = reference.astimezone(tz).date()
    start_of_today = _start_of(today, tz)

    if named is DateRange.OVERDUE:
        return ResolvedRange(end=start_of_today, status_in=OPEN_STATUSES)
    if named is DateRange.TODAY:
        return ResolvedRange(start=start_of_today, end=_start_of(today + timedelta(days=1), tz))
    if named is DateRange.TOMORROW:
        return ResolvedRange(
            start=_start_of(today + timedelta(days=1), tz),
            end=_start_of(today + timedelta(days=2), tz),
        )
    offset = days_into_week(today, week_start)
    if named is DateRange.THIS_WEEK:
        week_begin = today - timedelta(days=offset)
        return ResolvedRange(start=_start_of(week_begin, tz), end=_start_of(week_begin + timedelta(days=7), tz))
    if named is DateRange.NEXT_WEEK:
        # On day-0 this is a full 7 days forward, never 0.
        next_begin = today + timedelta(days=7 - offset)
        return ResolvedRange(start=_start_of(next_begin, tz), end=_start_of(next_begin + timedelta(days=7), tz))
    first = today.replace(day=1)
    return ResolvedRange(start=_start_of(first, tz), end=_start_of(_first_of_next_month(first), tz))


def resolve_custom_range(
    date_from: Any = None,
    date_to: Any = None,
    *,
    from_field: str = "dueDateFrom",
    to_field: str = "dueDateTo",
) -> Optional[ResolvedRange]:
    """Resolve explicit bounds; both ends inclusive. Returns ``None`` when neither is given."""

    start = parse_instant(date_from, field=from_field) if date_from is not None else None
    end = parse_instant(date_to, field=to_field) if date_to is not None else None
    if start is None and end is None:
        return None
    return ResolvedRange(start=start, end=end, end_inclusive=True)


__all__ = [
    "OPEN_STATUSES",
    "ResolvedRange",
    "days_into_week",
    "parse_instant",
    "resolve_custom_range",
    "resolve_named_range",
    "resolve_timezone",
]
