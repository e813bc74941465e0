"""Tests for the mutation coordinator and the optimistic status toggle."""

from __future__ import annotations

import asyncio
import logging

import pytest

from tidy_tortoise.data import StaticIdentity
from tidy_tortoise.data.cache import CacheKey
from tidy_tortoise.domain import (
    NotFoundError,
    Resource,
    TaskStatus,
    TransportError,
    UnauthenticatedError,
)
from tidy_tortoise.services import (
    CategoryService,
    Mutation,
    MutationState,
    ServiceContext,
    TaskService,
    TimeBlockService,
)

from conftest import NOW


def list_entries(context: ServiceContext):
    return {key: entry.data for key, entry in context.cache.snapshot(Resource.TASKS).items()}


def test_mutation_lifecycle_is_one_way():
    mutation = Mutation(sequence=1, resource=Resource.TASKS, action="update", record_id="t1")
    assert mutation.state is MutationState.PENDING
    mutation.commit()
    assert mutation.state is MutationState.COMMITTED
    with pytest.raises(RuntimeError):
        mutation.roll_back()

    failed = Mutation(sequence=2, resource=Resource.TASKS, action="update")
    error = TransportError("offline")
    failed.roll_back(error)
    assert failed.state is MutationState.ROLLED_BACK
    assert failed.error is error


@pytest.mark.asyncio
async def test_create_invalidates_every_task_list(context, store):
    service = TaskService(context)
    await service.list_tasks({"status": "todo"})
    await service.list_tasks({"priority": "high"})
    assert len(store.fetch_calls) == 2

    created = await service.create_task({"title": "Write report", "priority": "high"})

    assert all(entry.invalidated for entry in context.cache.snapshot(Resource.TASKS).values())
    todo = await service.list_tasks({"status": "todo"})
    assert [task.id for task in todo] == [created.id]
    assert len(store.fetch_calls) == 3


@pytest.mark.asyncio
async def test_update_overwrites_detail_entry(context):
    service = TaskService(context)
    created = await service.create_task({"title": "Draft"})
    await service.get_task(created.id)
    await service.list_tasks()

    updated = await service.update_task(created.id, {"title": "Final", "status": "completed"})

    detail = context.cache.get_data(CacheKey.detail(Resource.TASKS, created.id))
    assert detail == updated
    assert detail.title == "Final"
    assert detail.completed_at == NOW
    assert all(entry.invalidated for entry in context.cache.snapshot(Resource.TASKS).values())


@pytest.mark.asyncio
async def test_leaving_completed_clears_completed_at(context):
    service = TaskService(context)
    created = await service.create_task({"title": "Ship"})
    await service.update_task(created.id, {"status": "completed"})
    reopened = await service.update_task(created.id, {"status": "in_progress"})
    assert reopened.status is TaskStatus.IN_PROGRESS
    assert reopened.completed_at is None


@pytest.mark.asyncio
async def test_delete_removes_detail_and_cascades_to_time_blocks(context):
    tasks = TaskService(context)
    blocks = TimeBlockService(context)
    created = await tasks.create_task({"title": "Focus"})
    await blocks.create_time_block(
        {"taskId": created.id, "startTime": "2024-06-15T09:00:00Z", "endTime": "2024-06-15T10:00:00Z"}
    )
    await tasks.get_task(created.id)
    assert len(await blocks.list_time_blocks()) == 1

    await tasks.delete_task(created.id)

    assert context.cache.get(CacheKey.detail(Resource.TASKS, created.id)) is None
    assert all(entry.invalidated for entry in context.cache.snapshot(Resource.TIME_BLOCKS).values())
    assert await blocks.list_time_blocks() == []
    with pytest.raises(NotFoundError):
        await tasks.get_task(created.id)


@pytest.mark.asyncio
async def test_category_delete_invalidates_tasks(context):
    categories = CategoryService(context)
    tasks = TaskService(context)
    category = await categories.create_category({"name": "Work"})
    created = await tasks.create_task({"title": "Plan", "categoryId": category.id})
    assert (await tasks.get_task(created.id)).category_id == category.id
    await tasks.list_tasks()

    await categories.delete_category(category.id)

    assert context.cache.get(CacheKey.detail(Resource.TASKS, created.id)).invalidated
    assert (await tasks.get_task(created.id)).category_id is None
    assert await categories.list_categories() == []


@pytest.mark.asyncio
async def test_toggle_is_visible_before_the_store_answers(context, store):
    service = TaskService(context)
    created = await service.create_task({"title": "Call bank"})
    await service.list_tasks({"status": "todo"})
    await service.list_tasks()
    all_key = CacheKey.for_query(service.compile())

    store.update_gate = asyncio.Event()
    toggle = asyncio.create_task(service.toggle_status(created))
    await asyncio.sleep(0)

    for data in list_entries(context).values():
        (task,) = data
        assert task.status is TaskStatus.COMPLETED
        assert task.completed_at == NOW
    assert context.task_mutations.pending

    store.update_gate.set()
    updated = await toggle

    assert updated.status is TaskStatus.COMPLETED
    assert updated.completed_at == NOW
    assert context.cache.get(all_key).invalidated
    assert context.cache.get_data(CacheKey.detail(Resource.TASKS, created.id)) == updated
    assert not context.task_mutations.pending


@pytest.mark.asyncio
async def test_toggle_failure_restores_every_snapshot(context, store, caplog):
    service = TaskService(context)
    created = await service.create_task({"title": "Renew passport"})
    await service.list_tasks({"status": "todo"})
    await service.list_tasks({"search": "passport"})
    before = list_entries(context)

    store.fail_with = TransportError("offline")
    with caplog.at_level(logging.WARNING):
        with pytest.raises(TransportError):
            await service.toggle_status(created)

    assert list_entries(context) == before
    assert all(entry.invalidated for entry in context.cache.snapshot(Resource.TASKS).values())
    assert "Rolled back status toggle" in caplog.text
    assert not context.task_mutations.pending

    store.fail_with = None
    assert (await service.get_task(created.id)).status is TaskStatus.TODO


@pytest.mark.asyncio
async def test_unexpected_store_error_still_rolls_back_toggle(context, store):
    service = TaskService(context)
    created = await service.create_task({"title": "File taxes"})
    await service.list_tasks()
    before = list_entries(context)

    store.fail_with = RuntimeError("client not initialised")
    with pytest.raises(TransportError):
        await service.toggle_status(created)

    assert list_entries(context) == before
    assert not context.task_mutations.pending


@pytest.mark.asyncio
async def test_unexpected_store_error_finishes_plain_mutations(context, store):
    service = TaskService(context)
    created = await service.create_task({"title": "Recycle"})

    store.fail_with = RuntimeError("client not initialised")
    with pytest.raises(TransportError):
        await context.task_mutations.delete(created.id)
    with pytest.raises(TransportError):
        await service.create_task({"title": "Another"})

    assert not context.task_mutations.pending


@pytest.mark.asyncio
async def test_failed_toggle_overlapping_another_reverts_only_its_task(context, store):
    service = TaskService(context)
    first = await service.create_task({"title": "Alpha"})
    second = await service.create_task({"title": "Beta"})
    await service.list_tasks()

    gates = {first.id: asyncio.Event(), second.id: asyncio.Event()}
    passthrough = store.update

    async def gated_update(resource, record_id, owner_id, changes):
        await gates[record_id].wait()
        if record_id == first.id:
            raise TransportError("offline")
        return await passthrough(resource, record_id, owner_id, changes)

    store.update = gated_update

    toggle_first = asyncio.create_task(service.toggle_status(first))
    toggle_second = asyncio.create_task(service.toggle_status(second))
    await asyncio.sleep(0)

    gates[first.id].set()
    with pytest.raises(TransportError):
        await toggle_first
    gates[second.id].set()
    await toggle_second

    statuses = {task.id: task.status for data in list_entries(context).values() for task in data}
    assert statuses == {first.id: TaskStatus.TODO, second.id: TaskStatus.COMPLETED}
    assert not context.task_mutations.pending


@pytest.mark.asyncio
async def test_toggle_back_to_todo(context):
    service = TaskService(context)
    created = await service.create_task({"title": "Water plants"})
    done = await service.toggle_status(created)
    reopened = await service.toggle_status(done)
    assert reopened.status is TaskStatus.TODO
    assert reopened.completed_at is None


@pytest.mark.asyncio
async def test_out_of_order_completion_keeps_latest_mutation(context, store):
    service = TaskService(context)
    created = await service.create_task({"title": "Original"})

    gates = [asyncio.Event(), asyncio.Event()]
    calls = []
    passthrough = store.update

    async def gated_update(resource, record_id, owner_id, changes):
        gate = gates[len(calls)]
        calls.append(changes)
        await gate.wait()
        return await passthrough(resource, record_id, owner_id, changes)

    store.update = gated_update

    first = asyncio.create_task(service.update_task(created.id, {"title": "First"}))
    await asyncio.sleep(0)
    second = asyncio.create_task(service.update_task(created.id, {"title": "Second"}))
    await asyncio.sleep(0)
    assert len(calls) == 2

    gates[1].set()
    await second
    gates[0].set()
    await first

    detail = context.cache.get_data(CacheKey.detail(Resource.TASKS, created.id))
    assert detail.title == "Second"


@pytest.mark.asyncio
async def test_missing_record_is_not_found(context):
    with pytest.raises(NotFoundError):
        await context.task_mutations.update("5c0e5d7e-0000-4000-8000-000000000000", {"title": "x"})
    assert not context.task_mutations.pending


@pytest.mark.asyncio
async def test_network_errors_surface_as_transport_errors(context, store):
    store.fail_with = ConnectionResetError("reset by peer")
    with pytest.raises(TransportError) as excinfo:
        await TaskService(context).create_task({"title": "Unsent"})
    assert excinfo.value.kind == "transport"


@pytest.mark.asyncio
async def test_missing_identity_fails_closed(settings, store):
    context = ServiceContext(settings=settings, store=store, identity=StaticIdentity(None), clock=lambda: NOW)
    with pytest.raises(UnauthenticatedError):
        await TaskService(context).list_tasks()
    assert store.fetch_calls == []
