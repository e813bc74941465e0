from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, List, Mapping, Union
from uuid import uuid4

from ..data.cache import CacheKey
from ..domain import Resource, Task
from ..query import CompiledQuery, TaskFilterParams, compile_task_query
from .context import ServiceContext
from .schemas import TaskCreate, TaskUpdate, parse_input

logger = logging.getLogger(__name__)

NULLABLE = frozenset({"description", "due_date", "category_id", "estimated_minutes", "actual_minutes"})


@dataclass(slots=True)
class TaskService:
    context: ServiceContext

    def compile(self, filters: Union[TaskFilterParams, Mapping[str, Any], None] = None) -> CompiledQuery:
        settings = self.context.settings
        return compile_task_query(
            filters,
            self.context.owner_id(),
            now=self.context.now(),
            timezone_name=settings.calendar.timezone,
            week_start=settings.calendar.week_start,
            default_limit=settings.query.task_page_size,
            max_limit=settings.query.max_page_size,
        )

    async def list_tasks(
        self,
        filters: Union[CompiledQuery, TaskFilterParams, Mapping[str, Any], None] = None,
    ) -> List[Task]:
        query = filters if isinstance(filters, CompiledQuery) else self.compile(filters)
        tasks = await self.context.cache.fetch(CacheKey.for_query(query), lambda: self.context.tasks.list(query))
        return list(tasks)

    async def get_task(self, task_id: str) -> Task:
        owner_id = self.context.owner_id()
        key = CacheKey.detail(Resource.TASKS, task_id)
        return await self.context.cache.fetch(key, lambda: self.context.tasks.get(task_id, owner_id))

    async def create_task(self, data: Union[TaskCreate, Mapping[str, Any]]) -> Task:
        payload = parse_input(TaskCreate, data)
        task = Task(
            id=str(uuid4()),
            owner_id=self.context.owner_id(),
            title=payload.title,
            description=payload.description,
            priority=payload.priority,
            due_date=payload.due_date,
            category_id=str(payload.category_id) if payload.category_id else None,
            estimated_minutes=payload.estimated_minutes,
        )
        task.check_invariants()
        created = await self.context.task_mutations.create(task)
        logger.info("Created task %s", created.id)
        return created

    async def update_task(self, task_id: str, data: Union[TaskUpdate, Mapping[str, Any]]) -> Task:
        payload = parse_input(TaskUpdate, data)
        changes = {key: value for key, value in payload.changes().items() if value is not None or key in NULLABLE}
        existing = await self.context.tasks.get(task_id, self.context.owner_id())
        now = self.context.now()

        # completedAt follows status against the stored record.
        candidate = replace(
            existing,
            title=changes.get("title", existing.title),
            estimated_minutes=changes.get("estimated_minutes", existing.estimated_minutes),
            actual_minutes=changes.get("actual_minutes", existing.actual_minutes),
        )
        if payload.status is not None and payload.status is not existing.status:
            candidate = candidate.with_status(payload.status, now)
            changes["completed_at"] = candidate.completed_at.isoformat() if candidate.completed_at else None
        candidate.check_invariants()

        changes["updated_at"] = now.isoformat()
        return await self.context.task_mutations.update(task_id, changes)

    async def delete_task(self, task_id: str) -> None:
        await self.context.task_mutations.delete(task_id)
        logger.info("Deleted task %s", task_id)

    async def toggle_status(self, task: Union[Task, str]) -> Task:
        if isinstance(task, str):
            task = await self.get_task(task)
        return await self.context.task_mutations.toggle_status(task)


__all__ = ["TaskService"]
