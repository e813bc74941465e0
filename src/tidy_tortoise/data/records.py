from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from ..domain.enums import Resource
from ..query.compiler import CompiledQuery

Record = Dict[str, Any]


@runtime_checkable
class RecordStore(Protocol):
    """Asynchronous query executor over persisted task, time block and category rows.

    Implementations enforce referential integrity themselves (deleting a category
    nulls dependent task references, deleting a task removes its time blocks).
    """

    async def fetch_page(self, query: CompiledQuery) -> List[Record]: ...

    async def fetch_one(self, resource: Resource, record_id: str, owner_id: str) -> Optional[Record]: ...

    async def insert(self, resource: Resource, record: Record) -> Record: ...

    async def update(
        self,
        resource: Resource,
        record_id: str,
        owner_id: str,
        changes: Record,
    ) -> Optional[Record]: ...

    async def delete(self, resource: Resource, record_id: str, owner_id: str) -> bool: ...


@runtime_checkable
class IdentityProvider(Protocol):
    def current_user_id(self) -> str: ...
