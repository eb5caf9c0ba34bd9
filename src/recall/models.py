"""Pydantic models shared across recall modules.

**Cache models**:
    :class:`CacheOptions` -- per-wrapper settings (prefix function, TTL,
    store-error policy), frozen once a wrapper is built.
    :class:`CacheSettings` -- the ``cache`` section of the merged config
    file, consumed by :func:`~recall.cache.get_memoizer`.

**Config models**:
    :class:`ConfigFile` -- a discovered config file and its parsed content.
    :class:`RequiredSetting` -- a dotted setting path that a caller needs
    present, with the question to ask the user when it is missing.

All models use Pydantic v2.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from recall.exceptions import ConfigError


# --- Cache ---


class CacheOptions(BaseModel):
    """Configuration of a single memoized operation.

    Immutable once the wrapper is constructed.

    Example::

        CacheOptions(
            get_prefix=lambda tracker, *args: tracker.root,
            minutes=ONE_DAY,
        )
    """

    model_config = ConfigDict(frozen=True)

    get_prefix: Optional[Callable[..., Any]] = Field(
        default=None,
        description="Called as get_prefix(ctx, *args, **kwargs); returns the key prefix",
    )
    minutes: Optional[float] = Field(
        default=None, gt=0, description="Entry TTL in minutes; None means no expiry"
    )
    name: Optional[str] = Field(
        default=None, description="Operation identity override (defaults to __name__)"
    )
    fallback_on_store_error: bool = Field(
        default=False,
        description="Log store failures and call the operation directly instead of raising",
    )

    @property
    def expire_seconds(self) -> Optional[float]:
        """TTL in seconds as the store expects it, or ``None``."""
        if self.minutes is None:
            return None
        return self.minutes * 60


class CacheSettings(BaseModel):
    """The ``cache`` section of the merged configuration."""

    directory: Optional[str] = Field(
        default=None, description="Store directory (defaults to ~/.recall_config/cache)"
    )
    default_minutes: Optional[float] = Field(
        default=None,
        gt=0,
        description="TTL applied to wrappers that do not set minutes themselves",
    )

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> CacheSettings:
        """Validate the ``cache`` section of *config*.

        Raises:
            ConfigError: If the section is present but malformed.
        """
        section = config.get("cache") or {}
        if not isinstance(section, dict):
            raise ConfigError(
                f"'cache' config section must be an object (got {type(section).__name__})"
            )
        try:
            return cls.model_validate(section)
        except ValueError as exc:
            raise ConfigError(f"Invalid 'cache' config section: {exc}") from exc


# --- Config ---


class ConfigFile(BaseModel):
    """A config file found on disk together with its parsed content."""

    path: Path
    data: dict[str, Any] = Field(default_factory=dict)


class RequiredSetting(BaseModel):
    """A setting a caller cannot run without."""

    path: tuple[str, ...]
    request: str = Field(description="Question to ask the user when the setting is missing")

    @property
    def key(self) -> str:
        """Dot-notation form of :attr:`path`, e.g. ``jira.user.login``."""
        return ".".join(self.path)
