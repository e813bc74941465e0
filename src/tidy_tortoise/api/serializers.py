from __future__ import annotations

from typing import Any, Dict

from ..domain import CalendarEvent, Category, Task, TimeBlock
from ..services import DashboardStats
from .models import CalendarEventPayload, CategoryPayload, TaskPayload, TimeBlockPayload


def serialize_category(category: Category) -> Dict[str, Any]:
    return CategoryPayload.from_domain(category).model_dump(by_alias=True)


def serialize_task(task: Task) -> Dict[str, Any]:
    return TaskPayload.from_domain(task).model_dump(by_alias=True)


def serialize_time_block(block: TimeBlock) -> Dict[str, Any]:
    return TimeBlockPayload.from_domain(block).model_dump(by_alias=True)


def serialize_event(event: CalendarEvent) -> Dict[str, Any]:
    return CalendarEventPayload.from_domain(event).model_dump(by_alias=True)


def serialize_stats(stats: DashboardStats) -> Dict[str, Any]:
    return {
        "totalTasks": stats.total_tasks,
        "completedToday": stats.completed_today,
        "overdueTasks": stats.overdue_tasks,
        "dueThisWeek": stats.due_this_week,
    }
