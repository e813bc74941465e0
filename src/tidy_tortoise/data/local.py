from __future__ import annotations

import logging
from copy import deepcopy
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import orjson
from platformdirs import user_data_dir

from ..domain.enums import Resource
from ..domain.errors import ConflictError, UnauthenticatedError
from ..domain.models import parse_datetime
from ..query.compiler import OWNER_FIELD, CompiledQuery
from ..query.predicates import matches_all
from .records import Record

logger = logging.getLogger(__name__)

APP_NAME = "Tidy Tortoise"
APP_AUTHOR = "TidyTortoise"
DATA_DIR = Path(user_data_dir(APP_NAME, APP_AUTHOR))
RECORDS_FILE = DATA_DIR / "records.json"

DATETIME_COLUMNS = frozenset({"created_at", "updated_at", "due_date", "completed_at", "start_time", "end_time"})


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _empty_state() -> Dict[str, Dict[str, Record]]:
    return {resource.value: {} for resource in Resource}


def _sort_value(column: str, value: Any) -> Any:
    if column in DATETIME_COLUMNS:
        return parse_datetime(value)
    return value


class StaticIdentity:
    """Identity provider for the single-user local mode and for tests."""

    def __init__(self, owner_id: Optional[str]) -> None:
        self._owner_id = owner_id

    def current_user_id(self) -> str:
        if not self._owner_id:
            raise UnauthenticatedError("No local owner configured.")
        return self._owner_id


class LocalRecordStore:
    """In-process record store evaluating compiled predicates directly.

    Mirrors the relational store's integrity rules: category names are unique per
    owner, deleting a category nulls dependent task references, and deleting a
    task removes its time blocks. When ``path`` is given the state is persisted
    as JSON after every write.
    """

    def __init__(self, path: Optional[Path] = None, *, clock: Callable[[], datetime] = _utc_now) -> None:
        self._path = path
        self._clock = clock
        self._state: Dict[str, Dict[str, Record]] = _empty_state()
        if path is not None and path.exists():
            raw = path.read_bytes()
            if raw:
                loaded = orjson.loads(raw)
                for resource in Resource:
                    self._state[resource.value] = dict(loaded.get(resource.value, {}))

    @classmethod
    def persistent(cls, path: Optional[Path] = None) -> "LocalRecordStore":
        target = path or RECORDS_FILE
        target.parent.mkdir(parents=True, exist_ok=True)
        return cls(target)

    def _persist(self) -> None:
        if self._path is None:
            return
        payload = orjson.dumps(self._state, option=orjson.OPT_INDENT_2)
        self._path.write_bytes(payload + b"\n")

    def _table(self, resource: Resource) -> Dict[str, Record]:
        return self._state[resource.value]

    def _owned(self, resource: Resource, record_id: str, owner_id: str) -> Optional[Record]:
        record = self._table(resource).get(record_id)
        if record is None or record.get(OWNER_FIELD) != owner_id:
            return None
        return record

    def _ensure_unique_category(self, record: Record) -> None:
        for existing in self._table(Resource.CATEGORIES).values():
            if existing["id"] == record["id"]:
                continue
            if existing.get(OWNER_FIELD) == record.get(OWNER_FIELD) and existing.get("name") == record.get("name"):
                raise ConflictError("A category with this name already exists")

    async def fetch_page(self, query: CompiledQuery) -> List[Record]:
        rows = [row for row in self._table(query.resource).values() if matches_all(query.predicates, row)]
        column = query.sort.column
        present = [row for row in rows if row.get(column) is not None]
        missing = [row for row in rows if row.get(column) is None]
        present.sort(key=lambda row: _sort_value(column, row[column]), reverse=query.sort.descending)
        # Relational default: NULLS LAST ascending, NULLS FIRST descending.
        ordered = missing + present if query.sort.descending else present + missing
        start = query.page.offset
        end = None if query.page.limit is None else start + query.page.limit
        return [deepcopy(row) for row in ordered[start:end]]

    async def fetch_one(self, resource: Resource, record_id: str, owner_id: str) -> Optional[Record]:
        record = self._owned(resource, record_id, owner_id)
        return deepcopy(record) if record is not None else None

    async def insert(self, resource: Resource, record: Record) -> Record:
        stored = dict(record)
        now = self._clock().isoformat()
        stored["created_at"] = stored.get("created_at") or now
        stored["updated_at"] = stored.get("updated_at") or now
        if resource is Resource.CATEGORIES:
            self._ensure_unique_category(stored)
        if stored["id"] in self._table(resource):
            raise ConflictError(f"Record {stored['id']} already exists")
        self._table(resource)[stored["id"]] = stored
        self._persist()
        logger.debug("Inserted %s/%s", resource.value, stored["id"])
        return deepcopy(stored)

    async def update(
        self,
        resource: Resource,
        record_id: str,
        owner_id: str,
        changes: Record,
    ) -> Optional[Record]:
        record = self._owned(resource, record_id, owner_id)
        if record is None:
            return None
        candidate = {**record, **changes, "id": record_id, OWNER_FIELD: owner_id}
        if resource is Resource.CATEGORIES:
            self._ensure_unique_category(candidate)
        self._table(resource)[record_id] = candidate
        self._persist()
        return deepcopy(candidate)

    async def delete(self, resource: Resource, record_id: str, owner_id: str) -> bool:
        if self._owned(resource, record_id, owner_id) is None:
            return False
        self._table(resource).pop(record_id)
        if resource is Resource.CATEGORIES:
            for task in self._table(Resource.TASKS).values():
                if task.get("category_id") == record_id:
                    task["category_id"] = None
        elif resource is Resource.TASKS:
            blocks = self._table(Resource.TIME_BLOCKS)
            for block_id in [key for key, block in blocks.items() if block.get("task_id") == record_id]:
                blocks.pop(block_id)
        self._persist()
        logger.debug("Deleted %s/%s", resource.value, record_id)
        return True
