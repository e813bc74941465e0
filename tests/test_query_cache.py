"""Tests for the query cache: freshness, reducers, in-flight sharing and ordering guards."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from tidy_tortoise.data.cache import CacheKey, CacheState, EntryKind, QueryCache, reduce
from tidy_tortoise.data.cache.query_cache import Invalidate, Populate, Restore, Rewrite
from tidy_tortoise.domain import Resource, TaskStatus
from tidy_tortoise.query import compile_task_query

from conftest import NOW, OWNER, ManualClock, make_task


def list_key(**filters) -> CacheKey:
    return CacheKey.for_query(compile_task_query(filters, OWNER, now=NOW))


class CountingLoader:
    def __init__(self, value=("a",)) -> None:
        self.calls = 0
        self.value = value

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(0)
        return self.value


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def cache(clock: ManualClock) -> QueryCache:
    return QueryCache(list_stale_time=timedelta(minutes=2), detail_stale_time=timedelta(minutes=5), clock=clock)


def test_keys_from_equivalent_filters_match():
    assert list_key(status="todo", priority="high") == list_key(priority="high", status="todo")
    assert list_key(status="todo") != list_key(status="completed")
    assert CacheKey.detail(Resource.TASKS, "1").kind is EntryKind.DETAIL


@pytest.mark.asyncio
async def test_fresh_reads_hit_the_store_once(cache: QueryCache):
    loader = CountingLoader()
    key = list_key(status="todo")
    assert await cache.fetch(key, loader) == ("a",)
    assert await cache.fetch(key, loader) == ("a",)
    assert loader.calls == 1


@pytest.mark.asyncio
async def test_stale_entry_is_refetched(cache: QueryCache, clock: ManualClock):
    loader = CountingLoader()
    key = list_key()
    await cache.fetch(key, loader)
    clock.advance(121)
    assert not cache.is_fresh(key)
    await cache.fetch(key, loader)
    assert loader.calls == 2


@pytest.mark.asyncio
async def test_detail_entries_use_their_own_window(cache: QueryCache, clock: ManualClock):
    loader = CountingLoader(value="detail")
    key = CacheKey.detail(Resource.TASKS, "t1")
    await cache.fetch(key, loader)
    clock.advance(200)
    await cache.fetch(key, loader)
    assert loader.calls == 1


@pytest.mark.asyncio
async def test_signatures_are_cached_independently(cache: QueryCache):
    todo, done = CountingLoader(("todo",)), CountingLoader(("done",))
    assert await cache.fetch(list_key(status="todo"), todo) == ("todo",)
    assert await cache.fetch(list_key(status="completed"), done) == ("done",)
    assert await cache.fetch(list_key(status="todo"), todo) == ("todo",)
    assert (todo.calls, done.calls) == (1, 1)


@pytest.mark.asyncio
async def test_concurrent_reads_share_one_load(cache: QueryCache):
    gate = asyncio.Event()
    calls = 0

    async def loader():
        nonlocal calls
        calls += 1
        await gate.wait()
        return ("shared",)

    key = list_key()
    first = asyncio.create_task(cache.fetch(key, loader))
    second = asyncio.create_task(cache.fetch(key, loader))
    await asyncio.sleep(0)
    assert cache.is_fetching(key)
    gate.set()
    assert await asyncio.gather(first, second) == [("shared",), ("shared",)]
    assert calls == 1
    assert not cache.is_fetching(key)


@pytest.mark.asyncio
async def test_abandoned_fetch_writes_nothing(cache: QueryCache):
    gate = asyncio.Event()

    async def loader():
        await gate.wait()
        return ("late",)

    key = list_key()
    reader = asyncio.create_task(cache.fetch(key, loader))
    await asyncio.sleep(0)
    reader.cancel()
    with pytest.raises(asyncio.CancelledError):
        await reader
    gate.set()
    await asyncio.sleep(0)
    assert cache.get(key) is None
    assert not cache.is_fetching(key)


@pytest.mark.asyncio
async def test_response_overtaken_by_write_is_dropped(cache: QueryCache):
    gate = asyncio.Event()

    async def loader():
        await gate.wait()
        return ("stale",)

    key = list_key()
    reader = asyncio.create_task(cache.fetch(key, loader))
    await asyncio.sleep(0)
    cache.set_data(key, ("fresh",))
    gate.set()
    assert await reader == ("stale",)
    assert cache.get_data(key) == ("fresh",)


@pytest.mark.asyncio
async def test_invalidation_supersedes_loads_in_flight(cache: QueryCache):
    gate = asyncio.Event()

    async def loader():
        await gate.wait()
        return ("before-write",)

    key = list_key()
    reader = asyncio.create_task(cache.fetch(key, loader))
    await asyncio.sleep(0)
    cache.invalidate(Resource.TASKS)
    gate.set()
    await reader
    assert cache.get(key) is None


@pytest.mark.asyncio
async def test_invalidate_marks_lists_only(cache: QueryCache):
    await cache.fetch(list_key(), CountingLoader())
    detail = CacheKey.detail(Resource.TASKS, "t1")
    cache.set_data(detail, "task")
    cache.invalidate(Resource.TASKS)
    assert cache.get(list_key()).invalidated
    assert cache.is_fresh(detail)


@pytest.mark.asyncio
async def test_invalidating_twice_is_a_no_op(cache: QueryCache):
    loader = CountingLoader()
    key = list_key()
    await cache.fetch(key, loader)
    seen = []
    cache.subscribe(seen.append)
    assert cache.invalidate(Resource.TASKS) == frozenset({key})
    state = cache.state
    assert cache.invalidate(Resource.TASKS) == frozenset()
    assert cache.state is state
    assert len(seen) == 1
    await cache.fetch(key, loader)
    assert loader.calls == 2


def test_reducer_is_pure():
    key = CacheKey.detail(Resource.TASKS, "t1")
    empty = CacheState()
    populated, changed = reduce(empty, Populate(key, "x", fetched_at=0.0, stale_after=10.0))
    assert changed == frozenset({key})
    assert key not in empty.entries
    assert populated.entries[key].data == "x"
    assert populated.version(key) == 1

    invalidated, _ = reduce(populated, Invalidate(Resource.TASKS, None))
    assert invalidated.entries[key].invalidated
    assert not populated.entries[key].invalidated


def test_rewrite_and_restore_respect_versions():
    task = make_task("t1")
    other = make_task("t2")
    key = list_key()
    state, _ = reduce(CacheState(), Populate(key, (task, other), fetched_at=0.0, stale_after=60.0))
    snapshot = dict(state.entries)

    def flip(item):
        return item.with_status(TaskStatus.COMPLETED, NOW) if item.id == "t1" else item

    rewritten, changed = reduce(state, Rewrite(Resource.TASKS, flip))
    assert changed == frozenset({key})
    assert rewritten.entries[key].data[0].status is TaskStatus.COMPLETED
    assert rewritten.entries[key].data[1] is other

    restored, _ = reduce(rewritten, Restore(snapshot, {key: rewritten.version(key)}))
    assert restored.entries[key].data == (task, other)

    # A newer write replaced the entry, so the snapshot no longer applies.
    newer, _ = reduce(rewritten, Populate(key, ("newer",), fetched_at=1.0, stale_after=60.0))
    untouched, changed = reduce(newer, Restore(snapshot, {key: rewritten.version(key)}))
    assert changed == frozenset()
    assert untouched.entries[key].data == ("newer",)


def test_restore_puts_back_selected_items_when_entry_moved_on():
    first = make_task("t1")
    second = make_task("t2")
    key = list_key()
    state, _ = reduce(CacheState(), Populate(key, (first, second), fetched_at=0.0, stale_after=60.0))
    snapshot = dict(state.entries)

    def flip_to(task_id):
        def flip(item):
            return item.with_status(TaskStatus.COMPLETED, NOW) if item.id == task_id else item

        return flip

    after_first, _ = reduce(state, Rewrite(Resource.TASKS, flip_to("t1")))
    expected = {key: after_first.version(key)}
    after_second, _ = reduce(after_first, Rewrite(Resource.TASKS, flip_to("t2")))

    restored, changed = reduce(after_second, Restore(snapshot, expected, lambda item: item.id == "t1"))

    assert changed == frozenset({key})
    data = restored.entries[key].data
    assert data[0] is first
    assert data[1].status is TaskStatus.COMPLETED


def test_subscribers_receive_changed_keys_and_can_unsubscribe(cache: QueryCache):
    seen = []
    unsubscribe = cache.subscribe(seen.append)
    key = CacheKey.detail(Resource.CATEGORIES, "c1")
    cache.set_data(key, "c")
    unsubscribe()
    cache.remove(key)
    assert seen == [frozenset({key})]
    assert cache.get(key) is None


def test_failing_listener_does_not_block_commit(cache: QueryCache):
    def broken(keys):
        raise RuntimeError("boom")

    cache.subscribe(broken)
    key = CacheKey.detail(Resource.TASKS, "t1")
    cache.set_data(key, "value")
    assert cache.get_data(key) == "value"
