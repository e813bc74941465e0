from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class SupabaseSettings:
    url: Optional[str]
    anon_key: Optional[str]
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.anon_key)

    @property
    def has_stored_session(self) -> bool:
        return bool(self.access_token and self.refresh_token)

    @property
    def missing_env_vars(self) -> list[str]:
        missing = []
        if not self.url:
            missing.append("SUPABASE_URL")
        if not self.anon_key:
            missing.append("SUPABASE_ANON_KEY")
        return missing


@dataclass(frozen=True)
class CacheSettings:
    list_stale_time: timedelta
    detail_stale_time: timedelta


@dataclass(frozen=True)
class QuerySettings:
    task_page_size: int
    time_block_page_size: int
    max_page_size: int


@dataclass(frozen=True)
class CalendarSettings:
    timezone: str
    week_start: int


@dataclass(frozen=True)
class StorageSettings:
    backend: str
    tasks_table: str
    time_blocks_table: str
    categories_table: str
    local_owner: Optional[str]


@dataclass(frozen=True)
class AppSettings:
    supabase: SupabaseSettings
    cache: CacheSettings
    query: QuerySettings
    calendar: CalendarSettings
    storage: StorageSettings


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _seconds_from_env(name: str, default_seconds: int) -> timedelta:
    raw = os.getenv(name)
    if not raw:
        return timedelta(seconds=default_seconds)
    try:
        seconds = float(raw)
    except ValueError:
        return timedelta(seconds=default_seconds)
    return timedelta(seconds=seconds)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    supabase = SupabaseSettings(
        url=os.getenv("SUPABASE_URL"),
        anon_key=os.getenv("SUPABASE_ANON_KEY"),
        access_token=os.getenv("SUPABASE_ACCESS_TOKEN"),
        refresh_token=os.getenv("SUPABASE_REFRESH_TOKEN"),
    )

    cache = CacheSettings(
        list_stale_time=_seconds_from_env("TIDY_CACHE_STALE_SECONDS", 120),
        detail_stale_time=_seconds_from_env("TIDY_CACHE_DETAIL_STALE_SECONDS", 300),
    )

    query = QuerySettings(
        task_page_size=_int_from_env("TIDY_TASK_PAGE_SIZE", 50),
        time_block_page_size=_int_from_env("TIDY_TIME_BLOCK_PAGE_SIZE", 100),
        max_page_size=_int_from_env("TIDY_MAX_PAGE_SIZE", 500),
    )

    calendar = CalendarSettings(
        timezone=os.getenv("TIDY_STORAGE_TIMEZONE", "UTC"),
        week_start=_int_from_env("TIDY_WEEK_START", 0) % 7,
    )

    storage = StorageSettings(
        backend=os.getenv("TIDY_STORE", "supabase").lower(),
        tasks_table=os.getenv("TIDY_TASKS_TABLE", "tasks"),
        time_blocks_table=os.getenv("TIDY_TIME_BLOCKS_TABLE", "time_blocks"),
        categories_table=os.getenv("TIDY_CATEGORIES_TABLE", "categories"),
        local_owner=os.getenv("TIDY_LOCAL_OWNER"),
    )

    return AppSettings(supabase=supabase, cache=cache, query=query, calendar=calendar, storage=storage)
