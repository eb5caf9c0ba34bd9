"""Process-wide default :class:`~recall.cache.cacheable.Memoizer`.

Libraries that do not want to thread a memoizer through their code use the
module-level :func:`cacheable` decorator. It resolves the default memoizer
lazily at the first call, so importing a decorated module never touches
the filesystem or the environment.

The default memoizer stores entries in a
:class:`~recall.cache.store.DiskStore` at the ``cache.directory`` config
setting, or :func:`~recall.config.get_cache_dir` when unset, and reads
``RECALL_DISABLE_CACHE`` once when it is built.
"""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from recall.cache.cacheable import CachedOperation, Memoizer, cache_disabled_from_env
from recall.cache.store import DiskStore
from recall.config import get_cache_dir, read_config
from recall.models import CacheOptions, CacheSettings

logger = logging.getLogger(__name__)

_memoizer: Optional[Memoizer] = None


def _build_default_memoizer() -> Memoizer:
    settings = CacheSettings.from_config(read_config())
    if settings.directory:
        directory = Path(settings.directory).expanduser()
    else:
        directory = get_cache_dir()
    disabled = cache_disabled_from_env()
    if disabled:
        logger.debug("Caching disabled by environment")
    return Memoizer(
        DiskStore(directory),
        disabled=disabled,
        default_minutes=settings.default_minutes,
    )


def get_memoizer() -> Memoizer:
    """Return the default :class:`Memoizer`, creating it on first use.

    Raises:
        ConfigError: If the merged config has a malformed ``cache`` section.
    """
    global _memoizer
    if _memoizer is None:
        _memoizer = _build_default_memoizer()
    return _memoizer


def set_memoizer(memoizer: Memoizer) -> None:
    """Install *memoizer* as the default instance."""
    global _memoizer
    _memoizer = memoizer


def reset_memoizer() -> None:
    """Close and drop the default memoizer.

    The next :func:`get_memoizer` call builds a fresh one and re-reads the
    environment. Primarily useful in test suites.
    """
    global _memoizer
    if _memoizer is not None:
        _memoizer.store.close()
    _memoizer = None


def cacheable(
    *,
    get_prefix: Optional[Callable[..., Any]] = None,
    minutes: Optional[float] = None,
    name: Optional[str] = None,
    fallback_on_store_error: bool = False,
) -> Callable[[Callable[..., Any]], CachedOperation]:
    """Cache an async function's results in the default memoizer's store.

    Example::

        class Tracker:
            @cacheable(get_prefix=lambda tracker, *args: tracker.root, minutes=ONE_DAY)
            async def get_issue(self, issue_id: str) -> dict:
                ...

    Raises:
        InvalidUsageError: At decoration time, if the target is not a
            coroutine function.
    """
    options = CacheOptions(
        get_prefix=get_prefix,
        minutes=minutes,
        name=name,
        fallback_on_store_error=fallback_on_store_error,
    )
    return functools.partial(CachedOperation, options=options, resolve_memoizer=get_memoizer)
