from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from ..config import AppSettings, get_settings
from ..data import (
    IdentityProvider,
    LocalRecordStore,
    QueryCache,
    RecordStore,
    StaticIdentity,
    SupabaseGateway,
    SupabaseRecordStore,
)
from ..data.repositories import CategoryRepository, TaskRepository, TimeBlockRepository
from ..domain import Resource
from .mutations import MutationCoordinator, TaskMutationCoordinator

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class ServiceContext:
    """Aggregate root for services to share settings, the record store and the cache.

    Without an explicit ``store`` the backend is chosen from settings: the Supabase
    adapter by default, or the local JSON store when ``TIDY_STORE=local``.
    """

    settings: AppSettings = field(default_factory=get_settings)
    store: Optional[RecordStore] = None
    identity: Optional[IdentityProvider] = None
    clock: Callable[[], datetime] = _utc_now
    gateway: Optional[SupabaseGateway] = None
    cache: QueryCache = field(init=False)
    tasks: TaskRepository = field(init=False)
    time_blocks: TimeBlockRepository = field(init=False)
    categories: CategoryRepository = field(init=False)
    task_mutations: TaskMutationCoordinator = field(init=False)
    time_block_mutations: MutationCoordinator = field(init=False)
    category_mutations: MutationCoordinator = field(init=False)

    def __post_init__(self) -> None:
        if self.store is None:
            if self.settings.storage.backend == "local":
                self.store = LocalRecordStore.persistent()
            else:
                self.gateway = self.gateway or SupabaseGateway(self.settings.supabase)
                self.store = SupabaseRecordStore.from_settings(self.gateway, self.settings.storage)
            logger.debug("Using %s record store", self.settings.storage.backend)
        if self.identity is None:
            self.identity = self.gateway or StaticIdentity(self.settings.storage.local_owner)

        self.cache = QueryCache(
            list_stale_time=self.settings.cache.list_stale_time,
            detail_stale_time=self.settings.cache.detail_stale_time,
        )
        self.tasks = TaskRepository(self.store)
        self.time_blocks = TimeBlockRepository(self.store)
        self.categories = CategoryRepository(self.store)

        self.task_mutations = TaskMutationCoordinator(
            self.cache,
            self.tasks,
            self.identity,
            clock=self.clock,
            cascades=[(Resource.TIME_BLOCKS, None)],
        )
        self.time_block_mutations = MutationCoordinator(self.cache, self.time_blocks, self.identity, clock=self.clock)
        self.category_mutations = MutationCoordinator(
            self.cache,
            self.categories,
            self.identity,
            clock=self.clock,
            cascades=[(Resource.TASKS, None)],
        )

    def owner_id(self) -> str:
        return self.identity.current_user_id()

    def now(self) -> datetime:
        return self.clock()

    def reset_cache(self) -> None:
        self.cache.clear()
        logger.debug("Cache cleared")
