from __future__ import annotations

from .query_cache import CacheEntry, CacheKey, CacheState, EntryKind, QueryCache, reduce

__all__ = ["CacheEntry", "CacheKey", "CacheState", "EntryKind", "QueryCache", "reduce"]
