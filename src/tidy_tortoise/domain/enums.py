from __future__ import annotations

from enum import Enum


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.CANCELLED)


class TimeBlockType(str, Enum):
    SCHEDULED = "scheduled"
    ACTUAL = "actual"
    BREAK = "break"


class DateRange(str, Enum):
    OVERDUE = "overdue"
    TODAY = "today"
    TOMORROW = "tomorrow"
    THIS_WEEK = "this_week"
    NEXT_WEEK = "next_week"
    THIS_MONTH = "this_month"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class TaskSortBy(str, Enum):
    CREATED_AT = "createdAt"
    UPDATED_AT = "updatedAt"
    DUE_DATE = "dueDate"
    PRIORITY = "priority"
    STATUS = "status"
    TITLE = "title"
    COMPLETED_AT = "completedAt"


class TimeBlockSortBy(str, Enum):
    START_TIME = "startTime"
    END_TIME = "endTime"
    CREATED_AT = "createdAt"


class Resource(str, Enum):
    TASKS = "tasks"
    TIME_BLOCKS = "time_blocks"
    CATEGORIES = "categories"
