"""Supabase-backed record store.

Compiled predicates are translated into PostgREST filter calls on the Supabase
query builder. Composite predicates (the search OR) are rendered into PostgREST's
logical filter syntax so they stay grouped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import httpx
from postgrest.exceptions import APIError

from ..config.settings import StorageSettings
from ..domain.enums import Resource
from ..domain.errors import ConflictError, PlannerError, TransportError, ValidationError
from ..query.compiler import OWNER_FIELD, CompiledQuery
from ..query.predicates import AllOf, AnyOf, Contains, Equals, NotNull, OneOf, Predicate, Range
from .records import Record
from .supabase import SupabaseGateway

logger = logging.getLogger(__name__)

_RESERVED = set(',.:()"\\')
UNIQUE_VIOLATION = "23505"
CHECK_VIOLATION = "23514"


def _text(value: Any) -> str:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def quote(value: Any) -> str:
    """Quote a value for PostgREST logical filters when it contains reserved characters."""

    text = _text(value)
    if any(char in _RESERVED for char in text) or text != text.strip():
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def like_pattern(term: str, *, wildcard: str = "%") -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{wildcard}{escaped}{wildcard}"


def render_filter(predicate: Predicate) -> str:
    if isinstance(predicate, Equals):
        return f"{predicate.field}.eq.{quote(predicate.value)}"
    if isinstance(predicate, OneOf):
        values = ",".join(quote(value) for value in predicate.values)
        return f"{predicate.field}.in.({values})"
    if isinstance(predicate, Range):
        return f"{predicate.field}.{predicate.op.value}.{quote(predicate.value)}"
    if isinstance(predicate, Contains):
        return f"{predicate.field}.ilike.{quote(like_pattern(predicate.term, wildcard='*'))}"
    if isinstance(predicate, NotNull):
        return f"{predicate.field}.not.is.null"
    if isinstance(predicate, AllOf):
        return "and(" + ",".join(render_filter(item) for item in predicate.predicates) + ")"
    if isinstance(predicate, AnyOf):
        return "or(" + ",".join(render_filter(item) for item in predicate.predicates) + ")"
    raise TypeError(f"Unsupported predicate: {predicate!r}")


def apply_predicate(builder: Any, predicate: Predicate) -> Any:
    if isinstance(predicate, Equals):
        return builder.eq(predicate.field, _text(predicate.value))
    if isinstance(predicate, OneOf):
        return builder.in_(predicate.field, [_text(value) for value in predicate.values])
    if isinstance(predicate, Range):
        return getattr(builder, predicate.op.value)(predicate.field, predicate.value.isoformat())
    if isinstance(predicate, Contains):
        return builder.ilike(predicate.field, like_pattern(predicate.term))
    if isinstance(predicate, NotNull):
        return builder.not_.is_(predicate.field, "null")
    if isinstance(predicate, AllOf):
        for item in predicate.predicates:
            builder = apply_predicate(builder, item)
        return builder
    if isinstance(predicate, AnyOf):
        return builder.or_(",".join(render_filter(item) for item in predicate.predicates))
    raise TypeError(f"Unsupported predicate: {predicate!r}")


def translate_error(exc: Exception) -> PlannerError:
    if isinstance(exc, APIError):
        code = getattr(exc, "code", None)
        message = getattr(exc, "message", None) or str(exc)
        if code == UNIQUE_VIOLATION:
            return ConflictError(message)
        if code == CHECK_VIOLATION:
            return ValidationError(message)
        return TransportError(message)
    return TransportError(str(exc) or exc.__class__.__name__)


@dataclass(slots=True)
class SupabaseRecordStore:
    gateway: SupabaseGateway
    tables: Mapping[Resource, str] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, gateway: SupabaseGateway, storage: StorageSettings) -> "SupabaseRecordStore":
        return cls(
            gateway=gateway,
            tables={
                Resource.TASKS: storage.tasks_table,
                Resource.TIME_BLOCKS: storage.time_blocks_table,
                Resource.CATEGORIES: storage.categories_table,
            },
        )

    def _table_name(self, resource: Resource) -> str:
        return self.tables.get(resource, resource.value)

    async def _execute(self, builder: Any) -> List[Record]:
        try:
            response = await builder.execute()
        except (APIError, httpx.HTTPError) as exc:
            error = translate_error(exc)
            logger.warning("Supabase request failed (%s): %s", error.kind, error.message)
            raise error from exc
        return list(response.data or [])

    async def fetch_page(self, query: CompiledQuery) -> List[Record]:
        builder = (await self.gateway.table(self._table_name(query.resource))).select("*")
        for predicate in query.predicates:
            builder = apply_predicate(builder, predicate)
        builder = builder.order(query.sort.column, desc=query.sort.descending)
        if query.page.limit is not None:
            builder = builder.range(query.page.offset, query.page.offset + query.page.limit - 1)
        return await self._execute(builder)

    async def fetch_one(self, resource: Resource, record_id: str, owner_id: str) -> Optional[Record]:
        builder = (
            (await self.gateway.table(self._table_name(resource)))
            .select("*")
            .eq("id", record_id)
            .eq(OWNER_FIELD, owner_id)
            .limit(1)
        )
        records = await self._execute(builder)
        return records[0] if records else None

    async def insert(self, resource: Resource, record: Record) -> Record:
        payload = {key: value for key, value in record.items() if value is not None}
        builder = (await self.gateway.table(self._table_name(resource))).insert(payload)
        records = await self._execute(builder)
        return records[0] if records else dict(record)

    async def update(
        self,
        resource: Resource,
        record_id: str,
        owner_id: str,
        changes: Dict[str, Any],
    ) -> Optional[Record]:
        builder = (
            (await self.gateway.table(self._table_name(resource)))
            .update(changes)
            .eq("id", record_id)
            .eq(OWNER_FIELD, owner_id)
        )
        records = await self._execute(builder)
        return records[0] if records else None

    async def delete(self, resource: Resource, record_id: str, owner_id: str) -> bool:
        builder = (
            (await self.gateway.table(self._table_name(resource)))
            .delete()
            .eq("id", record_id)
            .eq(OWNER_FIELD, owner_id)
        )
        records = await self._execute(builder)
        return bool(records)
