from __future__ import annotations

from ...domain import Resource, Task
from .base import RecordRepository


class TaskRepository(RecordRepository[Task]):
    resource = Resource.TASKS
    model = Task
    label = "Task"
