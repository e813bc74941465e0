"""Configuration models and helpers."""

from __future__ import annotations

from .settings import (
    AppSettings,
    CacheSettings,
    CalendarSettings,
    QuerySettings,
    StorageSettings,
    SupabaseSettings,
    get_settings,
)

__all__ = [
    "AppSettings",
    "CacheSettings",
    "CalendarSettings",
    "QuerySettings",
    "StorageSettings",
    "SupabaseSettings",
    "get_settings",
]
