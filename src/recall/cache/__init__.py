"""Persistent memoization for async operations.

This package provides :class:`Memoizer`, which wraps coroutine functions so
their results are stored in a :class:`CacheStore` (by default a
:mod:`diskcache` directory under ``~/.recall_config/cache``) keyed by the
operation and its arguments, with an optional TTL in minutes. Setting
``RECALL_DISABLE_CACHE`` turns every cached operation into a pass-through.
"""

from recall.cache.cacheable import (
    DISABLE_ENV,
    ONE_DAY,
    BoundCachedOperation,
    CachedOperation,
    Memoizer,
    cache_disabled_from_env,
)
from recall.cache.default import cacheable, get_memoizer, reset_memoizer, set_memoizer
from recall.cache.keys import build_key, canonical_json
from recall.cache.store import MISSING, CacheStore, DiskStore, MemoryStore

__all__ = [
    "DISABLE_ENV",
    "MISSING",
    "ONE_DAY",
    "BoundCachedOperation",
    "CacheStore",
    "CachedOperation",
    "DiskStore",
    "Memoizer",
    "MemoryStore",
    "build_key",
    "cache_disabled_from_env",
    "cacheable",
    "canonical_json",
    "get_memoizer",
    "reset_memoizer",
    "set_memoizer",
]
