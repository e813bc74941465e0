from __future__ import annotations

from ...domain import Resource, TimeBlock
from .base import RecordRepository


class TimeBlockRepository(RecordRepository[TimeBlock]):
    resource = Resource.TIME_BLOCKS
    model = TimeBlock
    label = "Time block"
