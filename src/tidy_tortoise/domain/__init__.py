"""Domain models for tasks, time blocks and calendar projection."""

from __future__ import annotations

from .enums import (
    DateRange,
    Resource,
    SortOrder,
    TaskPriority,
    TaskSortBy,
    TaskStatus,
    TimeBlockSortBy,
    TimeBlockType,
)
from .errors import (
    ConflictError,
    InvalidFilterError,
    InvariantError,
    NotFoundError,
    PlannerError,
    TransportError,
    UnauthenticatedError,
    ValidationError,
)
from .models import CalendarEvent, Category, Task, TimeBlock

__all__ = [
    "CalendarEvent",
    "Category",
    "ConflictError",
    "DateRange",
    "InvalidFilterError",
    "InvariantError",
    "NotFoundError",
    "PlannerError",
    "Resource",
    "SortOrder",
    "Task",
    "TaskPriority",
    "TaskSortBy",
    "TaskStatus",
    "TimeBlock",
    "TimeBlockSortBy",
    "TimeBlockType",
    "TransportError",
    "UnauthenticatedError",
    "ValidationError",
]
