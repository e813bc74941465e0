from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from ..domain import CalendarEvent, Task, TaskPriority, TimeBlock, TimeBlockType
from ..query.dates import resolve_timezone

TASK_DURATION = timedelta(hours=1)


class ColorKey:
    TASK_CRITICAL = "task-critical"
    TASK_HIGH = "task-high"
    TASK_MEDIUM = "task-medium"
    TASK_LOW = "task-low"
    TIMEBLOCK_SCHEDULED = "timeblock-scheduled"
    TIMEBLOCK_ACTUAL = "timeblock-actual"
    TIMEBLOCK_BREAK = "timeblock-break"


PRIORITY_COLORS = {
    TaskPriority.URGENT: ColorKey.TASK_CRITICAL,
    TaskPriority.HIGH: ColorKey.TASK_HIGH,
    TaskPriority.MEDIUM: ColorKey.TASK_MEDIUM,
    TaskPriority.LOW: ColorKey.TASK_LOW,
}

TIME_BLOCK_COLORS = {
    TimeBlockType.SCHEDULED: ColorKey.TIMEBLOCK_SCHEDULED,
    TimeBlockType.ACTUAL: ColorKey.TIMEBLOCK_ACTUAL,
    TimeBlockType.BREAK: ColorKey.TIMEBLOCK_BREAK,
}


def is_all_day(instant: datetime, timezone_name: str = "UTC") -> bool:
    """True when ``instant`` falls exactly on midnight in the storage timezone."""

    local = instant.astimezone(resolve_timezone(timezone_name))
    return local.hour == 0 and local.minute == 0 and local.second == 0


def project_task(task: Task, *, timezone_name: str = "UTC") -> Optional[CalendarEvent]:
    if task.due_date is None:
        return None

    tz = resolve_timezone(timezone_name)
    local_due = task.due_date.astimezone(tz)
    if is_all_day(task.due_date, timezone_name):
        day = local_due.date()
        start, end = day, day
    else:
        start = local_due
        end = (task.due_date + TASK_DURATION).astimezone(tz)

    return CalendarEvent(
        id=f"task-{task.id}",
        start=start,
        end=end,
        title=task.title,
        description=task.description or None,
        color_key=PRIORITY_COLORS[task.priority],
    )


def project_time_block(block: TimeBlock, *, timezone_name: str = "UTC") -> CalendarEvent:
    tz = resolve_timezone(timezone_name)
    return CalendarEvent(
        id=f"timeblock-{block.id}",
        start=block.start_time.astimezone(tz),
        end=block.end_time.astimezone(tz),
        title=block.title or f"{block.type.value} time block",
        description=block.description or None,
        color_key=TIME_BLOCK_COLORS[block.type],
    )


def merge_events(
    tasks: Iterable[Task] = (),
    time_blocks: Iterable[TimeBlock] = (),
    *,
    timezone_name: str = "UTC",
) -> List[CalendarEvent]:
    """Project tasks then time blocks, each in input order; undated tasks are skipped."""

    events: list[CalendarEvent] = []
    for task in tasks:
        event = project_task(task, timezone_name=timezone_name)
        if event is not None:
            events.append(event)
    events.extend(project_time_block(block, timezone_name=timezone_name) for block in time_blocks)
    return events
