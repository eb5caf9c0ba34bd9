"""Persistent key/value stores backing the memoization layer.

:class:`DiskStore` uses :mod:`diskcache` to keep entries in a SQLite-backed
directory that survives process restarts and can be shared by concurrent
processes (diskcache serializes writes with SQLite transactions).
:class:`MemoryStore` keeps entries in a dict and is meant for tests and
processes that only want in-process memoization.

Both implement the async :class:`CacheStore` contract:

* ``get`` returns the stored value, or :data:`MISSING` when the key is
  absent or expired.
* ``set`` stores a value with an optional TTL in seconds.

Storage failures are raised as :class:`~recall.exceptions.CacheStoreError`
and are never reported as a miss.
"""

from __future__ import annotations

import abc
import asyncio
import copy
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any, Callable, Optional

import diskcache

from recall.exceptions import CacheStoreError

logger = logging.getLogger(__name__)


class _Missing:
    """Sentinel type for an absent cache entry."""

    _instance: Optional[_Missing] = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()
"""Returned by :meth:`CacheStore.get` when no live entry exists."""

_STORE_ERRORS = (sqlite3.Error, OSError, diskcache.Timeout)


class CacheStore(abc.ABC):
    """Abstract async key/value store with per-entry expiry."""

    @abc.abstractmethod
    async def get(self, key: str) -> Any:
        """Return the value stored under *key*, or :data:`MISSING`."""

    @abc.abstractmethod
    async def set(self, key: str, value: Any, expire: Optional[float] = None) -> None:
        """Store *value* under *key*; it expires after *expire* seconds if given."""

    @abc.abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove *key*; return ``True`` if an entry was removed."""

    @abc.abstractmethod
    async def clear(self) -> int:
        """Remove every entry; return the number removed."""

    @abc.abstractmethod
    def stats(self) -> dict[str, Any]:
        """Return a description of the store (backend, location, size)."""

    def close(self) -> None:
        """Release resources held by the store."""

    def __enter__(self) -> CacheStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class DiskStore(CacheStore):
    """Disk-backed store built on :class:`diskcache.Cache`.

    The underlying cache is opened lazily on first use so that constructing
    a store never touches the filesystem. Blocking calls run in a worker
    thread via :func:`asyncio.to_thread`.

    Args:
        directory: Directory holding the cache database.
        timeout: Seconds diskcache waits on a locked database before
            giving up.

    Example::

        store = DiskStore(get_cache_dir())
        await store.set("Tracker_get_issue_\\"ABC-1\\"", issue, expire=3600)
        hit = await store.get("Tracker_get_issue_\\"ABC-1\\"")
    """

    def __init__(self, directory: str | Path, timeout: float = 60) -> None:
        self._directory = Path(directory)
        self._timeout = timeout
        self._cache: Optional[diskcache.Cache] = None

    @property
    def directory(self) -> Path:
        return self._directory

    def _open(self) -> diskcache.Cache:
        if self._cache is None:
            try:
                self._cache = diskcache.Cache(str(self._directory), timeout=self._timeout)
            except _STORE_ERRORS as exc:
                raise CacheStoreError(
                    f"Cannot open cache store at {self._directory}: {exc}"
                ) from exc
            logger.debug("Opened cache store at %s", self._directory)
        return self._cache

    async def _run(self, action: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        cache = self._open()
        try:
            return await asyncio.to_thread(func, cache, *args, **kwargs)
        except _STORE_ERRORS as exc:
            raise CacheStoreError(
                f"Cache store {action} failed at {self._directory}: {exc}"
            ) from exc

    async def get(self, key: str) -> Any:
        return await self._run("read", diskcache.Cache.get, key, default=MISSING, retry=True)

    async def set(self, key: str, value: Any, expire: Optional[float] = None) -> None:
        await self._run("write", diskcache.Cache.set, key, value, expire=expire, retry=True)

    async def delete(self, key: str) -> bool:
        return await self._run("delete", diskcache.Cache.delete, key, retry=True)

    async def clear(self) -> int:
        return await self._run("clear", diskcache.Cache.clear, retry=True)

    def stats(self) -> dict[str, Any]:
        """Return ``backend``, ``directory`` and ``size`` (live entry count).

        Raises:
            CacheStoreError: If the store cannot be opened or counted.
        """
        cache = self._open()
        try:
            cache.expire()
            size = len(cache)
        except _STORE_ERRORS as exc:
            raise CacheStoreError(f"Cannot read cache store at {self._directory}: {exc}") from exc
        return {"backend": "disk", "directory": str(self._directory), "size": size}

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        if self._cache is not None:
            self._cache.close()
            self._cache = None


class MemoryStore(CacheStore):
    """In-process store with the same contract as :class:`DiskStore`.

    Values are deep-copied on the way in and out, so mutating a returned
    value never changes what later hits see.

    Args:
        clock: Returns the current time in seconds; defaults to
            :func:`time.monotonic`. Tests inject a fake clock to expire
            entries without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[Any, Optional[float]]] = {}

    def _live(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        expires_at = entry[1]
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[key]
            return False
        return True

    async def get(self, key: str) -> Any:
        if not self._live(key):
            return MISSING
        return copy.deepcopy(self._entries[key][0])

    async def set(self, key: str, value: Any, expire: Optional[float] = None) -> None:
        expires_at = self._clock() + expire if expire is not None else None
        self._entries[key] = (copy.deepcopy(value), expires_at)

    async def delete(self, key: str) -> bool:
        if not self._live(key):
            return False
        del self._entries[key]
        return True

    async def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def keys(self) -> list[str]:
        """Return the keys of all live entries."""
        return [key for key in list(self._entries) if self._live(key)]

    def stats(self) -> dict[str, Any]:
        return {"backend": "memory", "directory": None, "size": len(self.keys())}
