"""Projection of tasks and time blocks onto a single calendar timeline."""

from __future__ import annotations

from .events import ColorKey, is_all_day, merge_events, project_task, project_time_block

__all__ = ["ColorKey", "is_all_day", "merge_events", "project_task", "project_time_block"]
