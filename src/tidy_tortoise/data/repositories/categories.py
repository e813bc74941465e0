from __future__ import annotations

from typing import List

from ...domain import Category, Resource
from ...query.compiler import compile_category_query
from .base import RecordRepository


class CategoryRepository(RecordRepository[Category]):
    resource = Resource.CATEGORIES
    model = Category
    label = "Category"

    async def list_for_owner(self, owner_id: str) -> List[Category]:
        return await self.list(compile_category_query(owner_id))
