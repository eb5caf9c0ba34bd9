"""recall -- persistent memoization for async operations, plus hierarchical config.

Wrap an expensive coroutine function and its results are kept on disk
across process invocations, keyed by the operation and its arguments and
expiring after a TTL in minutes::

    from recall.cache import ONE_DAY, cacheable

    class Tracker:
        @cacheable(get_prefix=lambda tracker, *args: tracker.root, minutes=ONE_DAY)
        async def get_issue(self, issue_id: str) -> dict:
            ...

Set ``RECALL_DISABLE_CACHE`` to bypass the cache entirely.

Modules:
    cache: Memoizer, cached operations, key building and stores.
    config: ``.recallrc`` discovery, deep merge, and atomic writes.
    models: Pydantic models shared across the package.
    exceptions: Exception hierarchy with exit-code mapping.
    app: ``recall`` maintenance command (cache info/clear, config get/set).
"""

__version__ = "0.1.0"
