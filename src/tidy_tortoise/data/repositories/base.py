from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Generic, List, Type, TypeVar

from ...domain.enums import Resource
from ...domain.errors import NotFoundError
from ...query.compiler import CompiledQuery
from ..records import RecordStore

ModelT = TypeVar("ModelT")


@dataclass(slots=True)
class RecordRepository(Generic[ModelT]):
    """Typed access to one resource of the record store."""

    store: RecordStore
    resource: ClassVar[Resource]
    model: ClassVar[Type[Any]]
    label: ClassVar[str] = "Record"

    def _load(self, record: Dict[str, Any]) -> ModelT:
        return self.model.from_record(record)

    async def list(self, query: CompiledQuery) -> List[ModelT]:
        if query.resource is not self.resource:
            raise ValueError(f"Query for {query.resource.value} passed to {self.resource.value} repository")
        records = await self.store.fetch_page(query)
        return [self._load(record) for record in records]

    async def get(self, record_id: str, owner_id: str) -> ModelT:
        record = await self.store.fetch_one(self.resource, record_id, owner_id)
        if record is None:
            raise NotFoundError(f"{self.label} not found")
        return self._load(record)

    async def create(self, item: ModelT) -> ModelT:
        record = await self.store.insert(self.resource, item.to_record())
        return self._load(record)

    async def update(self, record_id: str, owner_id: str, changes: Dict[str, Any]) -> ModelT:
        record = await self.store.update(self.resource, record_id, owner_id, changes)
        if record is None:
            raise NotFoundError(f"{self.label} not found")
        return self._load(record)

    async def delete(self, record_id: str, owner_id: str) -> None:
        deleted = await self.store.delete(self.resource, record_id, owner_id)
        if not deleted:
            raise NotFoundError(f"{self.label} not found")
