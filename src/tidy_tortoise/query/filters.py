from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ..domain.enums import (
    DateRange,
    SortOrder,
    TaskPriority,
    TaskSortBy,
    TaskStatus,
    TimeBlockSortBy,
    TimeBlockType,
)


class _FilterParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True, frozen=True)

    limit: Optional[int] = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)
    sort_order: SortOrder = Field(default=SortOrder.DESC, alias="sortOrder")

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        # Query strings arrive as "" for unset parameters.
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.model_fields[info.field_name].default
        return value


class TaskFilterParams(_FilterParams):
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    category_id: Optional[UUID] = Field(default=None, alias="categoryId")
    date_range: Optional[DateRange] = Field(default=None, alias="dateRange")
    due_date_from: Optional[AwareDatetime] = Field(default=None, alias="dueDateFrom")
    due_date_to: Optional[AwareDatetime] = Field(default=None, alias="dueDateTo")
    search: Optional[str] = Field(default=None, max_length=255)
    sort_by: TaskSortBy = Field(default=TaskSortBy.CREATED_AT, alias="sortBy")


class TimeBlockFilterParams(_FilterParams):
    type: Optional[TimeBlockType] = None
    task_id: Optional[UUID] = Field(default=None, alias="taskId")
    start_date: Optional[AwareDatetime] = Field(default=None, alias="startDate")
    end_date: Optional[AwareDatetime] = Field(default=None, alias="endDate")
    sort_by: TimeBlockSortBy = Field(default=TimeBlockSortBy.CREATED_AT, alias="sortBy")
