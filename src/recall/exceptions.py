"""Exception hierarchy for recall.

All exceptions inherit from :class:`RecallError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`recall.exit_codes`.
The ``recall`` command's entry point catches ``RecallError`` and exits with
the appropriate code; library callers catch the specific subclasses.

Subclass hierarchy::

    RecallError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- CacheKeyError       (exit 2)
    +-- CacheStoreError     (exit 5)
    +-- ConfigError         (exit 1)

A :class:`CacheStoreError` is never raised for a plain cache miss. It means
the store itself failed, so callers can tell "nothing cached" apart from
"cache broken".
"""

from recall.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_STORE_FAILURE,
)


class RecallError(Exception):
    """Base exception for all recall errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(RecallError):
    """Raised when the API is misused, e.g. wrapping a non-coroutine function."""

    exit_code = EXIT_INVALID_USAGE


class CacheKeyError(RecallError):
    """Raised when a call argument or prefix cannot be turned into a cache key."""

    exit_code = EXIT_INVALID_USAGE


class CacheStoreError(RecallError):
    """Raised when the persistent store cannot be opened, read, or written."""

    exit_code = EXIT_STORE_FAILURE


class ConfigError(RecallError):
    """Raised for unreadable or malformed configuration files."""

    exit_code = EXIT_GENERIC_FAILURE
