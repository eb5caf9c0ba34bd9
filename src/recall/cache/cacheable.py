"""Transparent memoization of async operations in a persistent store.

:class:`Memoizer` binds a :class:`~recall.cache.store.CacheStore` and the
process-wide disable flag. Its :meth:`~Memoizer.wrap` and
:meth:`~Memoizer.cacheable` methods turn a coroutine function into a
:class:`CachedOperation` with the same call signature. Each call:

1. Goes straight to the operation when caching is disabled.
2. Builds a key from the optional prefix, the operation identity and the
   call arguments (see :mod:`recall.cache.keys`).
3. Returns the stored value on a hit without calling the operation.
4. On a miss, awaits the operation, stores the result with the configured
   TTL and returns it. Exceptions from the operation propagate and are
   never cached.

Concurrent identical calls are not de-duplicated: both may miss, both call
the operation, and the last write wins.

Example::

    memo = Memoizer(DiskStore(get_cache_dir()), disabled=cache_disabled_from_env())

    class Tracker:
        @memo.cacheable(get_prefix=lambda tracker, *args: tracker.root, minutes=ONE_DAY)
        async def get_issue(self, issue_id: str) -> dict:
            ...
"""

from __future__ import annotations

import functools
import inspect
import logging
import os
from typing import Any, Callable, Mapping, Optional

from recall.cache.keys import build_key, operation_identity
from recall.cache.store import MISSING, CacheStore
from recall.exceptions import CacheKeyError, CacheStoreError, InvalidUsageError
from recall.models import CacheOptions

logger = logging.getLogger(__name__)

DISABLE_ENV = "RECALL_DISABLE_CACHE"
"""Caching is disabled when this variable is present, whatever its value."""

ONE_DAY = 60 * 24
"""One day in minutes, for use as ``minutes=ONE_DAY``."""


def cache_disabled_from_env(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Return ``True`` if :data:`DISABLE_ENV` is set in *environ* (default ``os.environ``)."""
    env = os.environ if environ is None else environ
    return DISABLE_ENV in env


class Memoizer:
    """Factory for cached operations sharing one store and disable flag.

    Args:
        store: Where results are kept.
        disabled: When ``True`` every cached operation is a pass-through
            and the store is never touched. Fixed for the memoizer's
            lifetime.
        default_minutes: TTL for operations that do not set ``minutes``;
            ``None`` keeps such entries until evicted.
    """

    def __init__(
        self,
        store: CacheStore,
        disabled: bool = False,
        default_minutes: Optional[float] = None,
    ) -> None:
        self._store = store
        self._disabled = disabled
        self._default_minutes = default_minutes

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def disabled(self) -> bool:
        return self._disabled

    def expire_seconds(self, options: CacheOptions) -> Optional[float]:
        """TTL in seconds for an operation configured with *options*."""
        if options.minutes is not None:
            return options.expire_seconds
        if self._default_minutes is not None:
            return self._default_minutes * 60
        return None

    def wrap(
        self,
        func: Callable[..., Any],
        options: Optional[CacheOptions] = None,
    ) -> CachedOperation:
        """Return a cached version of the coroutine function *func*.

        Raises:
            InvalidUsageError: If *func* is not a coroutine function.
        """
        return CachedOperation(func, options or CacheOptions(), lambda: self)

    def cacheable(
        self,
        *,
        get_prefix: Optional[Callable[..., Any]] = None,
        minutes: Optional[float] = None,
        name: Optional[str] = None,
        fallback_on_store_error: bool = False,
    ) -> Callable[[Callable[..., Any]], CachedOperation]:
        """Decorator form of :meth:`wrap`."""
        options = CacheOptions(
            get_prefix=get_prefix,
            minutes=minutes,
            name=name,
            fallback_on_store_error=fallback_on_store_error,
        )
        return functools.partial(self.wrap, options=options)


class CachedOperation:
    """A coroutine function whose results are memoized.

    Calls have the wrapped function's signature. Accessed through an
    instance (a decorated method) it binds like a function, and the
    instance becomes the call context passed first to ``get_prefix``; it
    is not part of the key arguments. Called through the class, as
    ``Tracker.get_issue(tracker, "ABC-1")``, the first argument plays the
    same role. A free function is called with a ``None`` context.

    Args:
        func: The coroutine function to cache.
        options: Per-operation settings.
        resolve_memoizer: Returns the :class:`Memoizer` to use. Called on
            every invocation so a lazily created default memoizer can be
            bound after decoration.

    Raises:
        InvalidUsageError: If *func* is not a coroutine function.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        options: CacheOptions,
        resolve_memoizer: Callable[[], Memoizer],
    ) -> None:
        if not inspect.iscoroutinefunction(func):
            raise InvalidUsageError(
                "cacheable can only wrap coroutine functions (async def), "
                f"not: {func!r}"
            )
        functools.update_wrapper(self, func)
        self._func = func
        self._options = options
        self._resolve_memoizer = resolve_memoizer
        self._is_method = False
        owner, operation = operation_identity(func)
        self.owner = owner
        self.operation = options.name or operation

    @property
    def options(self) -> CacheOptions:
        return self._options

    def __set_name__(self, owner: type, name: str) -> None:
        self._is_method = True

    def __get__(self, instance: Any, owner: Optional[type] = None) -> Any:
        if instance is None:
            return self
        return BoundCachedOperation(self, instance)

    def __repr__(self) -> str:
        return f"<CachedOperation {self.owner}_{self.operation}>"

    def _split_context(self, args: tuple) -> tuple[Any, tuple]:
        """Separate the instance from *args* when called through the class."""
        if self._is_method and args:
            return args[0], args[1:]
        return None, args

    async def __call__(self, *args: Any, **kwargs: Any) -> Any:
        ctx, key_args = self._split_context(args)
        return await self._invoke(ctx, args, key_args, kwargs)

    async def cache_key(self, *args: Any, **kwargs: Any) -> str:
        """Return the key a call with these arguments would use."""
        ctx, key_args = self._split_context(args)
        return await self._build_key(ctx, key_args, kwargs)

    async def invalidate(self, *args: Any, **kwargs: Any) -> bool:
        """Drop the cached entry for these arguments; ``True`` if one existed."""
        ctx, key_args = self._split_context(args)
        return await self._invalidate(ctx, key_args, kwargs)

    # ------------------------------------------------------------------
    # Internals shared with BoundCachedOperation
    # ------------------------------------------------------------------

    async def _build_key(self, ctx: Any, args: tuple, kwargs: dict[str, Any]) -> str:
        prefix: Any = ""
        get_prefix = self._options.get_prefix
        if get_prefix is not None:
            prefix = get_prefix(ctx, *args, **kwargs)
            if inspect.isawaitable(prefix):
                prefix = await prefix
            if not isinstance(prefix, str):
                raise CacheKeyError(
                    f"get_prefix for {self.owner}_{self.operation} must return str, "
                    f"got {type(prefix).__name__}"
                )
        return build_key(self.owner, self.operation, args, kwargs, prefix=prefix)

    async def _invalidate(self, ctx: Any, args: tuple, kwargs: dict[str, Any]) -> bool:
        memoizer = self._resolve_memoizer()
        key = await self._build_key(ctx, args, kwargs)
        return await memoizer.store.delete(key)

    def _store_failed(self, action: str, key: str, exc: CacheStoreError) -> None:
        """Re-raise *exc* unless this operation degrades on store errors."""
        if not self._options.fallback_on_store_error:
            raise exc
        logger.warning(
            "Cache %s failed for %s, continuing without cache: %s", action, key, exc
        )

    async def _invoke(
        self,
        ctx: Any,
        call_args: tuple,
        args: tuple,
        kwargs: dict[str, Any],
    ) -> Any:
        memoizer = self._resolve_memoizer()
        if memoizer.disabled:
            return await self._func(*call_args, **kwargs)

        key = await self._build_key(ctx, args, kwargs)
        try:
            cached = await memoizer.store.get(key)
        except CacheStoreError as exc:
            self._store_failed("read", key, exc)
            return await self._func(*call_args, **kwargs)

        if cached is not MISSING:
            logger.debug("Cache hit: %s", key)
            return cached

        logger.debug("Cache miss: %s", key)
        result = await self._func(*call_args, **kwargs)
        try:
            await memoizer.store.set(key, result, expire=memoizer.expire_seconds(self._options))
        except CacheStoreError as exc:
            self._store_failed("write", key, exc)
        return result


class BoundCachedOperation:
    """A :class:`CachedOperation` bound to an instance (the call context)."""

    def __init__(self, operation: CachedOperation, instance: Any) -> None:
        self._operation = operation
        self._instance = instance
        functools.update_wrapper(self, operation.__wrapped__)

    @property
    def __self__(self) -> Any:
        return self._instance

    def __repr__(self) -> str:
        return f"<bound {self._operation!r} of {self._instance!r}>"

    async def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return await self._operation._invoke(
            self._instance, (self._instance, *args), args, kwargs
        )

    async def cache_key(self, *args: Any, **kwargs: Any) -> str:
        """Return the key a call with these arguments would use."""
        return await self._operation._build_key(self._instance, args, kwargs)

    async def invalidate(self, *args: Any, **kwargs: Any) -> bool:
        """Drop the cached entry for these arguments; ``True`` if one existed."""
        return await self._operation._invalidate(self._instance, args, kwargs)
