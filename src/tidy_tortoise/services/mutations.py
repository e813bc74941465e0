"""Write path: runs mutations against the store and keeps the query cache consistent.

Every mutation gets a monotonically increasing sequence number. A successful
response only overwrites a detail entry when its mutation is still the most
recently initiated one for that record, so out-of-order completions never
clobber newer state.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Generic, Iterable, Optional, Tuple, TypeVar

from ..data.cache import CacheEntry, CacheKey, EntryKind, QueryCache
from ..data.records import IdentityProvider
from ..data.repositories.base import RecordRepository
from ..domain import PlannerError, Resource, Task, TransportError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")
ResultT = TypeVar("ResultT")

Cascade = Tuple[Resource, Optional[EntryKind]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MutationState(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass(slots=True)
class Mutation:
    sequence: int
    resource: Resource
    action: str
    record_id: Optional[str] = None
    state: MutationState = MutationState.PENDING
    snapshot: Dict[CacheKey, CacheEntry] = field(default_factory=dict)
    written: Dict[CacheKey, int] = field(default_factory=dict)
    error: Optional[BaseException] = None

    def commit(self) -> None:
        if self.state is not MutationState.PENDING:
            raise RuntimeError(f"Mutation {self.sequence} is already {self.state.value}")
        self.state = MutationState.COMMITTED

    def roll_back(self, error: Optional[BaseException] = None) -> None:
        if self.state is not MutationState.PENDING:
            raise RuntimeError(f"Mutation {self.sequence} is already {self.state.value}")
        self.state = MutationState.ROLLED_BACK
        self.error = error


class MutationCoordinator(Generic[ModelT]):
    """Create, update and delete for one resource, with cache invalidation on success.

    ``cascades`` lists the other cache regions a delete touches because the store
    cascades it (for example deleting a task removes its time blocks).
    """

    def __init__(
        self,
        cache: QueryCache,
        repository: RecordRepository[ModelT],
        identity: IdentityProvider,
        *,
        clock: Callable[[], datetime] = _utc_now,
        cascades: Iterable[Cascade] = (),
    ) -> None:
        self.cache = cache
        self.repository = repository
        self.identity = identity
        self.clock = clock
        self.cascades = tuple(cascades)
        self.pending: Dict[int, Mutation] = {}
        self._sequence = itertools.count(1)
        self._latest: Dict[str, int] = {}

    @property
    def resource(self) -> Resource:
        return self.repository.resource

    def _detail_key(self, record_id: str) -> CacheKey:
        return CacheKey.detail(self.resource, record_id)

    def _begin(self, action: str, record_id: Optional[str] = None) -> Mutation:
        mutation = Mutation(sequence=next(self._sequence), resource=self.resource, action=action, record_id=record_id)
        self.pending[mutation.sequence] = mutation
        if record_id is not None:
            self._latest[record_id] = mutation.sequence
        logger.debug("Mutation %d %s %s/%s pending", mutation.sequence, action, self.resource.value, record_id)
        return mutation

    def _finish(self, mutation: Mutation) -> None:
        self.pending.pop(mutation.sequence, None)
        if mutation.record_id is not None and self._latest.get(mutation.record_id) == mutation.sequence:
            del self._latest[mutation.record_id]

    def is_latest(self, mutation: Mutation) -> bool:
        return mutation.record_id is None or self._latest.get(mutation.record_id) == mutation.sequence

    async def _run(self, operation: Awaitable[ResultT]) -> ResultT:
        try:
            return await operation
        except PlannerError:
            raise
        except Exception as exc:
            logger.warning("Unexpected %s from the record store", exc.__class__.__name__, exc_info=exc)
            raise TransportError(str(exc) or exc.__class__.__name__) from exc

    async def _perform(self, mutation: Mutation, operation: Awaitable[ResultT]) -> ResultT:
        try:
            result = await self._run(operation)
        except PlannerError as exc:
            mutation.roll_back(exc)
            self._finish(mutation)
            logger.debug("Mutation %d %s failed: %s", mutation.sequence, mutation.action, exc.kind)
            raise
        except asyncio.CancelledError as exc:
            mutation.roll_back(exc)
            self._finish(mutation)
            raise
        mutation.commit()
        return result

    def _invalidate_lists(self) -> None:
        self.cache.invalidate(self.resource, EntryKind.LIST)

    async def create(self, item: ModelT) -> ModelT:
        mutation = self._begin("create", getattr(item, "id", None))
        created = await self._perform(mutation, self.repository.create(item))
        self._invalidate_lists()
        self._finish(mutation)
        return created

    async def update(self, record_id: str, changes: Dict[str, Any]) -> ModelT:
        owner_id = self.identity.current_user_id()
        mutation = self._begin("update", record_id)
        updated = await self._perform(mutation, self.repository.update(record_id, owner_id, changes))
        if self.is_latest(mutation):
            self.cache.set_data(self._detail_key(record_id), updated)
        else:
            logger.debug("Mutation %d superseded; leaving detail entry for %s", mutation.sequence, record_id)
        self._invalidate_lists()
        self._finish(mutation)
        return updated

    async def delete(self, record_id: str) -> None:
        owner_id = self.identity.current_user_id()
        mutation = self._begin("delete", record_id)
        await self._perform(mutation, self.repository.delete(record_id, owner_id))
        self.cache.remove(self._detail_key(record_id))
        self._invalidate_lists()
        for resource, kind in self.cascades:
            self.cache.invalidate(resource, kind)
        self._finish(mutation)


class TaskMutationCoordinator(MutationCoordinator[Task]):
    async def toggle_status(self, task: Task) -> Task:
        """Flip ``task`` between completed and todo, optimistically.

        Every cached task list showing the task is rewritten before the store is
        called. If the call fails the rewritten entries are restored from the
        snapshot; entries a newer write has touched since only get this task's
        row put back. Task lists are invalidated afterwards either way.
        """

        owner_id = self.identity.current_user_id()
        new_status = task.toggled_status
        now = self.clock()
        confirmed = task.with_status(new_status, now)

        mutation = self._begin("toggle_status", task.id)
        mutation.snapshot = self.cache.snapshot(Resource.TASKS, EntryKind.LIST)

        def is_target(item: Any) -> bool:
            return isinstance(item, Task) and item.id == task.id

        def flip(item: Any) -> Any:
            return item.with_status(new_status, now) if is_target(item) else item

        mutation.written = self.cache.rewrite(Resource.TASKS, flip)
        changes = {
            "status": new_status.value,
            "completed_at": confirmed.completed_at.isoformat() if confirmed.completed_at else None,
            "updated_at": now.isoformat(),
        }
        try:
            updated = await self._perform(mutation, self.repository.update(task.id, owner_id, changes))
        except BaseException:
            restored = self.cache.restore(mutation.snapshot, mutation.written, selects=is_target)
            logger.warning(
                "Rolled back status toggle for task %s (%d of %d entries restored)",
                task.id,
                len(restored),
                len(mutation.written),
            )
            raise
        else:
            if self.is_latest(mutation):
                self.cache.set_data(self._detail_key(task.id), updated)
            return updated
        finally:
            self._finish(mutation)
            self._invalidate_lists()
