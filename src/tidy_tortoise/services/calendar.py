from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from ..calendar import merge_events
from ..domain import CalendarEvent
from ..query.dates import resolve_timezone
from .context import ServiceContext
from .tasks import TaskService
from .time_blocks import TimeBlockService


@dataclass(slots=True)
class CalendarService:
    context: ServiceContext

    def default_window(self, anchor: Optional[datetime] = None) -> Tuple[datetime, datetime]:
        """First day of the previous month through the end of the next month."""

        tz = resolve_timezone(self.context.settings.calendar.timezone)
        today = (anchor or self.context.now()).astimezone(tz).date()
        first = today.replace(day=1)
        previous = (first - timedelta(days=1)).replace(day=1)
        after_next = first
        for _ in range(2):
            after_next = (after_next + timedelta(days=32)).replace(day=1)
        start = datetime(previous.year, previous.month, 1, tzinfo=tz)
        end = datetime(after_next.year, after_next.month, 1, tzinfo=tz) - timedelta(microseconds=1)
        return start, end

    async def events_between(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[CalendarEvent]:
        if start is None or end is None:
            default_start, default_end = self.default_window()
            start = start or default_start
            end = end or default_end
        limit = self.context.settings.query.max_page_size
        tasks = await TaskService(self.context).list_tasks(
            {"dueDateFrom": start, "dueDateTo": end, "limit": limit, "sortBy": "dueDate", "sortOrder": "asc"}
        )
        blocks = await TimeBlockService(self.context).list_time_blocks(
            {"startDate": start, "endDate": end, "limit": limit, "sortBy": "startTime", "sortOrder": "asc"}
        )
        return merge_events(tasks, blocks, timezone_name=self.context.settings.calendar.timezone)


__all__ = ["CalendarService"]
