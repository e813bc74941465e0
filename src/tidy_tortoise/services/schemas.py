"""Validated input for create and update operations.

Update models distinguish an omitted field from an explicit ``null``: only the
fields the caller set end up in :meth:`_Input.changes`.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Type, TypeVar, Union
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..domain import TaskPriority, TaskStatus, TimeBlockType, ValidationError

DEFAULT_CATEGORY_COLOR = "#3B82F6"
HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"

InputT = TypeVar("InputT", bound="_Input")


class _Input(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    def changes(self) -> Dict[str, Any]:
        """Set fields keyed by storage column name."""

        values: Dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if isinstance(value, UUID):
                value = str(value)
            elif hasattr(value, "isoformat"):
                value = value.isoformat()
            elif hasattr(value, "value"):
                value = value.value
            values[name] = value
        return values


def parse_input(model: Type[InputT], raw: Union[InputT, Mapping[str, Any], None]) -> InputT:
    if isinstance(raw, model):
        return raw
    try:
        return model.model_validate(dict(raw or {}))
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


class TaskCreate(_Input):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[AwareDatetime] = Field(default=None, alias="dueDate")
    category_id: Optional[UUID] = Field(default=None, alias="categoryId")
    estimated_minutes: Optional[int] = Field(default=None, ge=0, alias="estimatedMinutes")


class TaskUpdate(_Input):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[AwareDatetime] = Field(default=None, alias="dueDate")
    category_id: Optional[UUID] = Field(default=None, alias="categoryId")
    estimated_minutes: Optional[int] = Field(default=None, ge=0, alias="estimatedMinutes")
    actual_minutes: Optional[int] = Field(default=None, ge=0, alias="actualMinutes")


class TimeBlockCreate(_Input):
    title: Optional[str] = Field(default=None, max_length=255)
    type: TimeBlockType = TimeBlockType.SCHEDULED
    start_time: AwareDatetime = Field(alias="startTime")
    end_time: AwareDatetime = Field(alias="endTime")
    description: Optional[str] = None
    task_id: Optional[UUID] = Field(default=None, alias="taskId")


class TimeBlockUpdate(_Input):
    title: Optional[str] = Field(default=None, max_length=255)
    type: Optional[TimeBlockType] = None
    start_time: Optional[AwareDatetime] = Field(default=None, alias="startTime")
    end_time: Optional[AwareDatetime] = Field(default=None, alias="endTime")
    description: Optional[str] = None
    task_id: Optional[UUID] = Field(default=None, alias="taskId")


class CategoryCreate(_Input):
    name: str = Field(min_length=1, max_length=50)
    color: str = Field(default=DEFAULT_CATEGORY_COLOR, pattern=HEX_COLOR)


class CategoryUpdate(_Input):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)


__all__ = [
    "CategoryCreate",
    "CategoryUpdate",
    "DEFAULT_CATEGORY_COLOR",
    "TaskCreate",
    "TaskUpdate",
    "TimeBlockCreate",
    "TimeBlockUpdate",
    "parse_input",
]
