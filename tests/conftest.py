"""Pytest fixtures for Tidy Tortoise tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from tidy_tortoise.config import (
    AppSettings,
    CacheSettings,
    CalendarSettings,
    QuerySettings,
    StorageSettings,
    SupabaseSettings,
)
from tidy_tortoise.data import LocalRecordStore, StaticIdentity
from tidy_tortoise.domain import Resource, Task, TaskPriority, TaskStatus, TimeBlock, TimeBlockType
from tidy_tortoise.query import CompiledQuery
from tidy_tortoise.services import ServiceContext

OWNER = "6f1c2f4e-3b1a-4c1e-9a57-2f9f3a0d1c11"
OTHER_OWNER = "0b7e8d52-91c4-4f0a-b3c2-7a6de5f4e922"

# Saturday.
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class ManualClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class RecordingStore:
    """Wraps a record store, counting reads and optionally failing or pausing calls."""

    def __init__(self, inner: LocalRecordStore) -> None:
        self.inner = inner
        self.fetch_calls: List[CompiledQuery] = []
        self.fail_with: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.update_gate: Optional[asyncio.Event] = None

    async def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def fetch_page(self, query: CompiledQuery) -> List[Dict[str, Any]]:
        self.fetch_calls.append(query)
        if self.gate is not None:
            await self.gate.wait()
        return await self.inner.fetch_page(query)

    async def fetch_one(self, resource: Resource, record_id: str, owner_id: str) -> Optional[Dict[str, Any]]:
        return await self.inner.fetch_one(resource, record_id, owner_id)

    async def insert(self, resource: Resource, record: Dict[str, Any]) -> Dict[str, Any]:
        await self._maybe_fail()
        return await self.inner.insert(resource, record)

    async def update(
        self,
        resource: Resource,
        record_id: str,
        owner_id: str,
        changes: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        if self.update_gate is not None:
            await self.update_gate.wait()
        await self._maybe_fail()
        return await self.inner.update(resource, record_id, owner_id, changes)

    async def delete(self, resource: Resource, record_id: str, owner_id: str) -> bool:
        await self._maybe_fail()
        return await self.inner.delete(resource, record_id, owner_id)


def make_settings(**storage_overrides: Any) -> AppSettings:
    storage = dict(
        backend="local",
        tasks_table="tasks",
        time_blocks_table="time_blocks",
        categories_table="categories",
        local_owner=OWNER,
    )
    storage.update(storage_overrides)
    return AppSettings(
        supabase=SupabaseSettings(url=None, anon_key=None),
        cache=CacheSettings(list_stale_time=timedelta(minutes=2), detail_stale_time=timedelta(minutes=5)),
        query=QuerySettings(task_page_size=50, time_block_page_size=100, max_page_size=500),
        calendar=CalendarSettings(timezone="UTC", week_start=0),
        storage=StorageSettings(**storage),
    )


def make_task(task_id: str = "task-1", **overrides: Any) -> Task:
    values: Dict[str, Any] = dict(
        id=task_id,
        owner_id=OWNER,
        title=f"Task {task_id}",
        priority=TaskPriority.MEDIUM,
        status=TaskStatus.TODO,
    )
    values.update(overrides)
    return Task(**values)


def make_block(block_id: str = "block-1", **overrides: Any) -> TimeBlock:
    values: Dict[str, Any] = dict(
        id=block_id,
        owner_id=OWNER,
        start_time=NOW,
        end_time=NOW + timedelta(hours=1),
        type=TimeBlockType.SCHEDULED,
    )
    values.update(overrides)
    return TimeBlock(**values)


@pytest.fixture
def settings() -> AppSettings:
    return make_settings()


@pytest.fixture
def local_store() -> LocalRecordStore:
    return LocalRecordStore(clock=lambda: NOW)


@pytest.fixture
def store(local_store: LocalRecordStore) -> RecordingStore:
    return RecordingStore(local_store)


@pytest.fixture
def context(settings: AppSettings, store: RecordingStore) -> ServiceContext:
    return ServiceContext(settings=settings, store=store, identity=StaticIdentity(OWNER), clock=lambda: NOW)
