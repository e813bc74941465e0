from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from ..domain import Task, TaskPriority
from ..query.dates import days_into_week, resolve_timezone
from .context import ServiceContext
from .tasks import TaskService

PRIORITY_RANK = {
    TaskPriority.URGENT: 4,
    TaskPriority.HIGH: 3,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 1,
}
FOCUS_LIMIT = 3
RECENT_LIMIT = 5


@dataclass(frozen=True, slots=True)
class DashboardStats:
    total_tasks: int
    completed_today: int
    overdue_tasks: int
    due_this_week: int


def _focus_key(task: Task):
    # Highest priority first, then soonest due; undated tasks last.
    return (-PRIORITY_RANK[task.priority], task.due_date is None, task.due_date or datetime.max)


def compute_stats(
    tasks: Iterable[Task],
    now: datetime,
    *,
    timezone_name: str = "UTC",
    week_start: int = 0,
) -> DashboardStats:
    tz = resolve_timezone(timezone_name)
    today = now.astimezone(tz).date()
    today_start = datetime(today.year, today.month, today.day, tzinfo=tz)
    tomorrow_start = today_start + timedelta(days=1)
    week_begin = today - timedelta(days=days_into_week(today, week_start))
    week_start_at = datetime(week_begin.year, week_begin.month, week_begin.day, tzinfo=tz)
    week_end_at = week_start_at + timedelta(days=7)

    items = list(tasks)
    completed_today = sum(
        1 for task in items if task.completed_at is not None and today_start <= task.completed_at < tomorrow_start
    )
    open_dated = [task for task in items if not task.status.is_terminal and task.due_date is not None]
    overdue = sum(1 for task in open_dated if task.due_date < now)
    due_this_week = sum(1 for task in open_dated if week_start_at <= task.due_date < week_end_at)
    return DashboardStats(
        total_tasks=len(items),
        completed_today=completed_today,
        overdue_tasks=overdue,
        due_this_week=due_this_week,
    )


def todays_focus(tasks: Iterable[Task], now: datetime, *, timezone_name: str = "UTC", limit: int = FOCUS_LIMIT) -> List[Task]:
    """Open tasks due today or of high/urgent priority, best first."""

    tz = resolve_timezone(timezone_name)
    today = now.astimezone(tz).date()

    def wanted(task: Task) -> bool:
        if task.status.is_terminal:
            return False
        due_today = task.due_date is not None and task.due_date.astimezone(tz).date() == today
        return due_today or task.priority in (TaskPriority.URGENT, TaskPriority.HIGH)

    candidates = [task for task in tasks if wanted(task)]
    return sorted(candidates, key=_focus_key)[:limit]


@dataclass(slots=True)
class DashboardService:
    context: ServiceContext

    async def _all_tasks(self) -> List[Task]:
        return await TaskService(self.context).list_tasks({"limit": self.context.settings.query.max_page_size})

    async def stats(self, now: Optional[datetime] = None) -> DashboardStats:
        calendar = self.context.settings.calendar
        return compute_stats(
            await self._all_tasks(),
            now or self.context.now(),
            timezone_name=calendar.timezone,
            week_start=calendar.week_start,
        )

    async def todays_focus(self, now: Optional[datetime] = None) -> List[Task]:
        return todays_focus(
            await self._all_tasks(),
            now or self.context.now(),
            timezone_name=self.context.settings.calendar.timezone,
        )

    async def recent_activity(self) -> List[Task]:
        return await TaskService(self.context).list_tasks(
            {"sortBy": "updatedAt", "sortOrder": "desc", "limit": RECENT_LIMIT}
        )


__all__ = ["DashboardService", "DashboardStats", "compute_stats", "todays_focus"]
