from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Union
from uuid import uuid4

from ..data.cache import CacheKey
from ..domain import Category, ConflictError, Resource
from ..query import compile_category_query
from .context import ServiceContext
from .schemas import CategoryCreate, CategoryUpdate, parse_input

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CategoryService:
    context: ServiceContext

    async def list_categories(self) -> List[Category]:
        query = compile_category_query(self.context.owner_id())
        categories = await self.context.cache.fetch(
            CacheKey.for_query(query),
            lambda: self.context.categories.list(query),
        )
        return list(categories)

    async def get_category(self, category_id: str) -> Category:
        owner_id = self.context.owner_id()
        key = CacheKey.detail(Resource.CATEGORIES, category_id)
        return await self.context.cache.fetch(key, lambda: self.context.categories.get(category_id, owner_id))

    async def _ensure_name_available(self, name: str, *, exclude: Optional[str] = None) -> None:
        for category in await self.context.categories.list_for_owner(self.context.owner_id()):
            if category.name == name and category.id != exclude:
                raise ConflictError("A category with this name already exists")

    async def create_category(self, data: Union[CategoryCreate, Mapping[str, Any]]) -> Category:
        payload = parse_input(CategoryCreate, data)
        await self._ensure_name_available(payload.name)
        category = Category(
            id=str(uuid4()),
            owner_id=self.context.owner_id(),
            name=payload.name,
            color=payload.color,
        )
        created = await self.context.category_mutations.create(category)
        logger.info("Created category %s", created.id)
        return created

    async def update_category(self, category_id: str, data: Union[CategoryUpdate, Mapping[str, Any]]) -> Category:
        payload = parse_input(CategoryUpdate, data)
        changes = {key: value for key, value in payload.changes().items() if value is not None}
        if payload.name is not None:
            await self._ensure_name_available(payload.name, exclude=category_id)
        changes["updated_at"] = self.context.now().isoformat()
        return await self.context.category_mutations.update(category_id, changes)

    async def delete_category(self, category_id: str) -> None:
        await self.context.category_mutations.delete(category_id)
        logger.info("Deleted category %s", category_id)


__all__ = ["CategoryService"]
