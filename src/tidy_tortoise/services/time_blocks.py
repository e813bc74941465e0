from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, List, Mapping, Union
from uuid import uuid4

from ..data.cache import CacheKey
from ..domain import Resource, TimeBlock
from ..query import CompiledQuery, TimeBlockFilterParams, compile_time_block_query
from .context import ServiceContext
from .schemas import TimeBlockCreate, TimeBlockUpdate, parse_input

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TimeBlockService:
    context: ServiceContext

    def compile(self, filters: Union[TimeBlockFilterParams, Mapping[str, Any], None] = None) -> CompiledQuery:
        settings = self.context.settings
        return compile_time_block_query(
            filters,
            self.context.owner_id(),
            default_limit=settings.query.time_block_page_size,
            max_limit=settings.query.max_page_size,
        )

    async def list_time_blocks(
        self,
        filters: Union[CompiledQuery, TimeBlockFilterParams, Mapping[str, Any], None] = None,
    ) -> List[TimeBlock]:
        query = filters if isinstance(filters, CompiledQuery) else self.compile(filters)
        blocks = await self.context.cache.fetch(CacheKey.for_query(query), lambda: self.context.time_blocks.list(query))
        return list(blocks)

    async def get_time_block(self, block_id: str) -> TimeBlock:
        owner_id = self.context.owner_id()
        key = CacheKey.detail(Resource.TIME_BLOCKS, block_id)
        return await self.context.cache.fetch(key, lambda: self.context.time_blocks.get(block_id, owner_id))

    async def create_time_block(self, data: Union[TimeBlockCreate, Mapping[str, Any]]) -> TimeBlock:
        payload = parse_input(TimeBlockCreate, data)
        block = TimeBlock(
            id=str(uuid4()),
            owner_id=self.context.owner_id(),
            start_time=payload.start_time,
            end_time=payload.end_time,
            type=payload.type,
            title=payload.title,
            description=payload.description,
            task_id=str(payload.task_id) if payload.task_id else None,
        )
        block.check_invariants()
        return await self.context.time_block_mutations.create(block)

    async def update_time_block(self, block_id: str, data: Union[TimeBlockUpdate, Mapping[str, Any]]) -> TimeBlock:
        payload = parse_input(TimeBlockUpdate, data)
        changes = payload.changes()
        for name in ("type", "start_time", "end_time"):
            if name in changes and changes[name] is None:
                changes.pop(name)

        # Partial updates are checked against the stored bounds.
        existing = await self.context.time_blocks.get(block_id, self.context.owner_id())
        merged = replace(
            existing,
            start_time=payload.start_time or existing.start_time,
            end_time=payload.end_time or existing.end_time,
        )
        merged.check_invariants()

        changes["updated_at"] = self.context.now().isoformat()
        return await self.context.time_block_mutations.update(block_id, changes)

    async def delete_time_block(self, block_id: str) -> None:
        await self.context.time_block_mutations.delete(block_id)
        logger.info("Deleted time block %s", block_id)


__all__ = ["TimeBlockService"]
