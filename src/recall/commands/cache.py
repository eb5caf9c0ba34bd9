"""Cache commands -- inspect and empty the persistent memoization store.

Operates on the default memoizer's store (see
:func:`~recall.cache.get_memoizer`), i.e. the ``cache.directory`` setting or
``~/.recall_config/cache``.
"""

from __future__ import annotations

import asyncio

import typer

from recall.output import format_response, info, success, warning


cache_app = typer.Typer(no_args_is_help=True)


@cache_app.command("info")
def cache_info() -> None:
    """Show where the cache lives and how many live entries it holds.

    Example::

        recall cache info
        recall --json cache info
    """
    from recall.cache import get_memoizer

    memoizer = get_memoizer()
    if memoizer.disabled:
        warning("Caching is disabled by RECALL_DISABLE_CACHE")
    stats = memoizer.store.stats()
    stats["disabled"] = memoizer.disabled
    format_response(stats)


@cache_app.command("clear")
def cache_clear(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Remove every entry from the cache.

    Asks for confirmation unless ``--force`` is given.

    Raises:
        typer.Exit: If the user declines confirmation.
    """
    from recall.cache import get_memoizer

    memoizer = get_memoizer()
    if not force:
        directory = memoizer.store.stats()["directory"]
        confirmed = typer.confirm(f"Remove all cached entries in {directory}?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    removed = asyncio.run(memoizer.store.clear())
    success(f"Removed {removed} cached entries.")
