"""Client-side result cache keyed by filter signature.

State transitions are expressed as events reduced by :func:`reduce`, a pure
function ``(state, event) -> (state, changed_keys)``. :class:`QueryCache` holds
the current state, swaps it atomically on every commit, deduplicates concurrent
fetches for the same key and drops responses that were overtaken by a newer
write to the same key.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field, replace
from datetime import timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Hashable, List, Mapping, Optional, Tuple, Union

from ...domain.enums import Resource
from ...query.compiler import CompiledQuery

logger = logging.getLogger(__name__)


class EntryKind(str, Enum):
    LIST = "list"
    DETAIL = "detail"


@dataclass(frozen=True, slots=True)
class CacheKey:
    resource: Resource
    kind: EntryKind
    ident: Hashable

    @classmethod
    def for_query(cls, query: CompiledQuery) -> "CacheKey":
        return cls(query.resource, EntryKind.LIST, query.signature())

    @classmethod
    def detail(cls, resource: Resource, record_id: str) -> "CacheKey":
        return cls(resource, EntryKind.DETAIL, str(record_id))


@dataclass(frozen=True, slots=True)
class CacheEntry:
    data: Any
    fetched_at: float
    stale_after: float
    invalidated: bool = False

    def is_fresh(self, now: float) -> bool:
        return not self.invalidated and (now - self.fetched_at) < self.stale_after


@dataclass(frozen=True, slots=True)
class CacheState:
    entries: Mapping[CacheKey, CacheEntry] = field(default_factory=dict)
    versions: Mapping[CacheKey, int] = field(default_factory=dict)
    sequence: int = 0

    def version(self, key: CacheKey) -> int:
        return self.versions.get(key, 0)

    def select(self, resource: Resource, kind: EntryKind) -> Dict[CacheKey, CacheEntry]:
        return {key: entry for key, entry in self.entries.items() if key.resource is resource and key.kind is kind}


# Events ---------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Populate:
    key: CacheKey
    data: Any
    fetched_at: float
    stale_after: float


@dataclass(frozen=True, slots=True)
class Invalidate:
    resource: Resource
    kind: Optional[EntryKind] = EntryKind.LIST


@dataclass(frozen=True, slots=True)
class Remove:
    keys: Tuple[CacheKey, ...]


@dataclass(frozen=True, slots=True)
class Rewrite:
    """Apply ``transform`` to every item of every list entry for ``resource``."""

    resource: Resource
    transform: Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class Restore:
    """Put snapshotted entries back where the current version is still ``expected``.

    Where a newer write has moved an entry's version, only the items matched by
    ``selects`` are put back from the snapshot; the rest of the entry is kept.
    """

    snapshot: Mapping[CacheKey, Optional[CacheEntry]]
    expected: Mapping[CacheKey, int]
    selects: Optional[Callable[[Any], bool]] = None


CacheEvent = Union[Populate, Invalidate, Remove, Rewrite, Restore]


def _write(
    state: CacheState,
    updates: Mapping[CacheKey, Optional[CacheEntry]],
) -> Tuple[CacheState, FrozenSet[CacheKey]]:
    if not updates:
        return state, frozenset()
    sequence = state.sequence + 1
    entries = dict(state.entries)
    versions = dict(state.versions)
    for key, entry in updates.items():
        if entry is None:
            entries.pop(key, None)
        else:
            entries[key] = entry
        versions[key] = sequence
    return CacheState(entries=entries, versions=versions, sequence=sequence), frozenset(updates)


def reduce(state: CacheState, event: CacheEvent) -> Tuple[CacheState, FrozenSet[CacheKey]]:
    if isinstance(event, Populate):
        entry = CacheEntry(data=event.data, fetched_at=event.fetched_at, stale_after=event.stale_after)
        return _write(state, {event.key: entry})

    if isinstance(event, Invalidate):
        updates = {
            key: replace(entry, invalidated=True)
            for key, entry in state.entries.items()
            if key.resource is event.resource
            and (event.kind is None or key.kind is event.kind)
            and not entry.invalidated
        }
        return _write(state, updates)

    if isinstance(event, Remove):
        return _write(state, {key: None for key in event.keys if key in state.entries})

    if isinstance(event, Rewrite):
        updates: Dict[CacheKey, Optional[CacheEntry]] = {}
        for key, entry in state.select(event.resource, EntryKind.LIST).items():
            items = tuple(entry.data)
            rewritten = tuple(event.transform(item) for item in items)
            if any(new is not old for new, old in zip(rewritten, items)):
                updates[key] = replace(entry, data=rewritten)
        return _write(state, updates)

    if isinstance(event, Restore):
        updates = {}
        for key, entry in event.snapshot.items():
            if key not in event.expected:
                continue
            if state.version(key) == event.expected[key]:
                updates[key] = entry
                continue
            current = state.entries.get(key)
            if event.selects is None or entry is None or current is None:
                continue
            originals = [item for item in entry.data if event.selects(item)]
            if not originals:
                continue
            items = tuple(current.data)
            reverted = tuple(originals[0] if event.selects(item) else item for item in items)
            if any(new is not old for new, old in zip(reverted, items)):
                updates[key] = replace(current, data=reverted)
        return _write(state, updates)

    raise TypeError(f"Unsupported cache event: {event!r}")


# Store ----------------------------------------------------------------------

Listener = Callable[[FrozenSet[CacheKey]], None]
Loader = Callable[[], Awaitable[Any]]


@dataclass(slots=True)
class _Flight:
    version: int
    task: Optional["asyncio.Task[Any]"] = None
    waiters: int = 0
    superseded: bool = False


class QueryCache:
    """Injectable cache of list and detail results.

    Reads never block: they see whichever state was last committed. Every write
    goes through :func:`reduce` and replaces the whole state in one assignment.
    """

    def __init__(
        self,
        *,
        list_stale_time: timedelta = timedelta(minutes=2),
        detail_stale_time: timedelta = timedelta(minutes=5),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._state = CacheState()
        self._list_stale = list_stale_time.total_seconds()
        self._detail_stale = detail_stale_time.total_seconds()
        self._clock = clock
        self._inflight: Dict[CacheKey, _Flight] = {}
        self._listeners: List[Listener] = []

    @property
    def state(self) -> CacheState:
        return self._state

    def _stale_after(self, key: CacheKey) -> float:
        return self._list_stale if key.kind is EntryKind.LIST else self._detail_stale

    def dispatch(self, event: CacheEvent) -> FrozenSet[CacheKey]:
        new_state, changed = reduce(self._state, event)
        if not changed:
            return changed
        self._state = new_state
        logger.debug("Cache %s touched %d entr%s", type(event).__name__, len(changed), "y" if len(changed) == 1 else "ies")
        for listener in list(self._listeners):
            try:
                listener(changed)
            except Exception:  # noqa: BLE001
                logger.exception("Cache listener %r failed", listener)
        return changed

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Reads -----------------------------------------------------------------

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        return self._state.entries.get(key)

    def get_data(self, key: CacheKey) -> Any:
        entry = self.get(key)
        return entry.data if entry is not None else None

    def is_fresh(self, key: CacheKey) -> bool:
        entry = self.get(key)
        return entry is not None and entry.is_fresh(self._clock())

    def is_fetching(self, key: CacheKey) -> bool:
        return key in self._inflight

    async def fetch(self, key: CacheKey, loader: Loader) -> Any:
        """Return fresh cached data for ``key`` or load it, sharing concurrent loads.

        If every caller awaiting a load is cancelled, the load is cancelled and
        nothing is written.
        """

        entry = self.get(key)
        if entry is not None and entry.is_fresh(self._clock()):
            return entry.data

        version = self._state.version(key)
        flight = self._inflight.get(key)
        if flight is None or flight.superseded or flight.version != version:
            flight = _Flight(version=version)
            flight.task = asyncio.ensure_future(self._load(key, loader, flight))
            self._inflight[key] = flight

        flight.waiters += 1
        try:
            return await asyncio.shield(flight.task)
        finally:
            flight.waiters -= 1
            if flight.waiters == 0 and not flight.task.done():
                logger.debug("Abandoning fetch for %s", key)
                flight.task.cancel()
                if self._inflight.get(key) is flight:
                    del self._inflight[key]

    async def _load(self, key: CacheKey, loader: Loader, flight: _Flight) -> Any:
        try:
            data = await loader()
            if not flight.superseded and self._state.version(key) == flight.version:
                self.dispatch(Populate(key, data, self._clock(), self._stale_after(key)))
            else:
                logger.debug("Dropping response for %s overtaken by a newer write", key)
            return data
        finally:
            if self._inflight.get(key) is flight:
                del self._inflight[key]

    # Writes ----------------------------------------------------------------

    def set_data(self, key: CacheKey, data: Any) -> None:
        self.dispatch(Populate(key, data, self._clock(), self._stale_after(key)))

    def invalidate(self, resource: Resource, kind: Optional[EntryKind] = EntryKind.LIST) -> FrozenSet[CacheKey]:
        # Loads already in flight for these keys may predate the write.
        for key, flight in self._inflight.items():
            if key.resource is resource and (kind is None or key.kind is kind):
                flight.superseded = True
        return self.dispatch(Invalidate(resource, kind))

    def remove(self, *keys: CacheKey) -> FrozenSet[CacheKey]:
        for key in keys:
            flight = self._inflight.get(key)
            if flight is not None:
                flight.superseded = True
        return self.dispatch(Remove(tuple(keys)))

    def snapshot(self, resource: Resource, kind: EntryKind = EntryKind.LIST) -> Dict[CacheKey, CacheEntry]:
        return self._state.select(resource, kind)

    def rewrite(self, resource: Resource, transform: Callable[[Any], Any]) -> Dict[CacheKey, int]:
        """Rewrite list items in place; returns the version written for each changed key."""

        changed = self.dispatch(Rewrite(resource, transform))
        return {key: self._state.version(key) for key in changed}

    def restore(
        self,
        snapshot: Mapping[CacheKey, Optional[CacheEntry]],
        expected: Mapping[CacheKey, int],
        *,
        selects: Optional[Callable[[Any], bool]] = None,
    ) -> FrozenSet[CacheKey]:
        return self.dispatch(Restore(snapshot, expected, selects))

    def clear(self) -> None:
        self.dispatch(Remove(tuple(self._state.entries)))
