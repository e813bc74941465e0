from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Union

from .enums import TaskPriority, TaskStatus, TimeBlockType
from .errors import InvariantError


def parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported datetime value: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_datetime(value: Any) -> Optional[datetime]:
    return parse_datetime(value) if value else None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _optional_int(value: Any) -> Optional[int]:
    return int(value) if value is not None else None


@dataclass(frozen=True, slots=True)
class Category:
    id: str
    owner_id: str
    name: str
    color: str = "#3B82F6"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Category":
        return cls(
            id=str(record["id"]),
            owner_id=str(record["user_id"]),
            name=str(record["name"]),
            color=record.get("color") or "#3B82F6",
            created_at=_optional_datetime(record.get("created_at")),
            updated_at=_optional_datetime(record.get("updated_at")),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.owner_id,
            "name": self.name,
            "color": self.color,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    owner_id: str
    title: str
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.TODO
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    category_id: Optional[str] = None
    estimated_minutes: Optional[int] = None
    actual_minutes: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Task":
        return cls(
            id=str(record["id"]),
            owner_id=str(record["user_id"]),
            title=str(record["title"]),
            description=record.get("description"),
            priority=TaskPriority(record.get("priority") or TaskPriority.MEDIUM),
            status=TaskStatus(record.get("status") or TaskStatus.TODO),
            due_date=_optional_datetime(record.get("due_date")),
            completed_at=_optional_datetime(record.get("completed_at")),
            category_id=record.get("category_id"),
            estimated_minutes=_optional_int(record.get("estimated_minutes")),
            actual_minutes=_optional_int(record.get("actual_minutes")),
            created_at=_optional_datetime(record.get("created_at")),
            updated_at=_optional_datetime(record.get("updated_at")),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.owner_id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "status": self.status.value,
            "due_date": _iso(self.due_date),
            "completed_at": _iso(self.completed_at),
            "category_id": self.category_id,
            "estimated_minutes": self.estimated_minutes,
            "actual_minutes": self.actual_minutes,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def with_status(self, status: TaskStatus, now: datetime) -> "Task":
        """Return a copy in ``status`` with ``completed_at`` stamped or cleared to match."""

        if status is TaskStatus.COMPLETED:
            completed_at = self.completed_at if self.status is TaskStatus.COMPLETED else now
        else:
            completed_at = None
        return replace(self, status=status, completed_at=completed_at)

    @property
    def toggled_status(self) -> TaskStatus:
        return TaskStatus.TODO if self.status is TaskStatus.COMPLETED else TaskStatus.COMPLETED

    def check_invariants(self) -> None:
        if not self.title or len(self.title) > 255:
            raise InvariantError("Title must be between 1 and 255 characters", field="title")
        if (self.completed_at is not None) != (self.status is TaskStatus.COMPLETED):
            raise InvariantError("completedAt must be set exactly when status is completed", field="completedAt")
        for name in ("estimated_minutes", "actual_minutes"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise InvariantError(f"{name} must not be negative", field=name)


@dataclass(frozen=True, slots=True)
class TimeBlock:
    id: str
    owner_id: str
    start_time: datetime
    end_time: datetime
    type: TimeBlockType = TimeBlockType.SCHEDULED
    title: Optional[str] = None
    description: Optional[str] = None
    task_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "TimeBlock":
        return cls(
            id=str(record["id"]),
            owner_id=str(record["user_id"]),
            start_time=parse_datetime(record["start_time"]),
            end_time=parse_datetime(record["end_time"]),
            type=TimeBlockType(record.get("type") or TimeBlockType.SCHEDULED),
            title=record.get("title"),
            description=record.get("description"),
            task_id=record.get("task_id"),
            created_at=_optional_datetime(record.get("created_at")),
            updated_at=_optional_datetime(record.get("updated_at")),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.owner_id,
            "title": self.title,
            "type": self.type.value,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "description": self.description,
            "task_id": self.task_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def check_invariants(self) -> None:
        if self.end_time <= self.start_time:
            raise InvariantError("End time must be after start time", field="endTime")


EventBoundary = Union[date, datetime]


@dataclass(frozen=True, slots=True)
class CalendarEvent:
    """Projection of a task or time block onto the calendar timeline.

    All-day events carry plain ``date`` boundaries; timed events carry zoned ``datetime``s.
    """

    id: str
    start: EventBoundary
    end: EventBoundary
    title: str
    color_key: str
    description: Optional[str] = None

    @property
    def all_day(self) -> bool:
        return not isinstance(self.start, datetime)
