"""Data access layer."""

from __future__ import annotations

from .cache import CacheKey, EntryKind, QueryCache
from .local import LocalRecordStore, StaticIdentity
from .postgrest import SupabaseRecordStore
from .records import IdentityProvider, RecordStore
from .supabase import SupabaseGateway, SupabaseNotInitializedError, SupabaseSessionMissingError

__all__ = [
    "CacheKey",
    "EntryKind",
    "IdentityProvider",
    "LocalRecordStore",
    "QueryCache",
    "RecordStore",
    "StaticIdentity",
    "SupabaseGateway",
    "SupabaseNotInitializedError",
    "SupabaseRecordStore",
    "SupabaseSessionMissingError",
]
