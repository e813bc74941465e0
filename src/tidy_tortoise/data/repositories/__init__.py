"""Typed repositories over the record store."""

from __future__ import annotations

from .base import RecordRepository
from .categories import CategoryRepository
from .tasks import TaskRepository
from .time_blocks import TimeBlockRepository

__all__ = ["CategoryRepository", "RecordRepository", "TaskRepository", "TimeBlockRepository"]
