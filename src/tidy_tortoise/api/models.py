from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..domain import CalendarEvent, Category, Task, TimeBlock
from ..domain import time_format


def _iso(value: Optional[Union[date, datetime]]) -> Optional[str]:
    return value.isoformat() if value else None


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CategoryPayload(_Payload):
    id: str
    owner_id: str = Field(alias="userId")
    name: str
    color: str
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")

    @classmethod
    def from_domain(cls, category: Category) -> "CategoryPayload":
        return cls(
            id=category.id,
            owner_id=category.owner_id,
            name=category.name,
            color=category.color,
            created_at=_iso(category.created_at),
            updated_at=_iso(category.updated_at),
        )


class TaskPayload(_Payload):
    id: str
    owner_id: str = Field(alias="userId")
    title: str
    description: Optional[str] = None
    priority: str
    status: str
    due_date: Optional[str] = Field(default=None, alias="dueDate")
    completed_at: Optional[str] = Field(default=None, alias="completedAt")
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    estimated_minutes: Optional[int] = Field(default=None, alias="estimatedMinutes")
    actual_minutes: Optional[int] = Field(default=None, alias="actualMinutes")
    estimated_time: str = Field(default="0m", alias="estimatedTime")
    actual_time: str = Field(default="0m", alias="actualTime")
    time_progress: int = Field(default=0, alias="timeProgress")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")

    @classmethod
    def from_domain(cls, task: Task) -> "TaskPayload":
        return cls(
            id=task.id,
            owner_id=task.owner_id,
            title=task.title,
            description=task.description,
            priority=task.priority.value,
            status=task.status.value,
            due_date=_iso(task.due_date),
            completed_at=_iso(task.completed_at),
            category_id=task.category_id,
            estimated_minutes=task.estimated_minutes,
            actual_minutes=task.actual_minutes,
            estimated_time=time_format.format_minutes(task.estimated_minutes),
            actual_time=time_format.format_minutes(task.actual_minutes),
            time_progress=time_format.time_progress(task.estimated_minutes, task.actual_minutes),
            created_at=_iso(task.created_at),
            updated_at=_iso(task.updated_at),
        )


class TimeBlockPayload(_Payload):
    id: str
    owner_id: str = Field(alias="userId")
    title: Optional[str] = None
    type: str
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    description: Optional[str] = None
    task_id: Optional[str] = Field(default=None, alias="taskId")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")

    @classmethod
    def from_domain(cls, block: TimeBlock) -> "TimeBlockPayload":
        return cls(
            id=block.id,
            owner_id=block.owner_id,
            title=block.title,
            type=block.type.value,
            start_time=block.start_time.isoformat(),
            end_time=block.end_time.isoformat(),
            description=block.description,
            task_id=block.task_id,
            created_at=_iso(block.created_at),
            updated_at=_iso(block.updated_at),
        )


class CalendarEventPayload(_Payload):
    id: str
    start: str
    end: str
    title: str
    all_day: bool = Field(alias="allDay")
    color_key: str = Field(alias="colorKey")
    description: Optional[str] = None

    @classmethod
    def from_domain(cls, event: CalendarEvent) -> "CalendarEventPayload":
        return cls(
            id=event.id,
            start=event.start.isoformat(),
            end=event.end.isoformat(),
            title=event.title,
            all_day=event.all_day,
            color_key=event.color_key,
            description=event.description,
        )
