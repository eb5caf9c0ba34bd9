"""Hierarchical configuration discovery, merging, and atomic writes.

This module handles all persistent configuration for recall:

* **Directory layout** -- ``~/.recall_config/`` holds application state,
  ``~/.recall_config/cache/`` the persistent memoization store. See
  :func:`get_home_dir`, :func:`get_app_dir`, :func:`get_cache_dir`.
* **Discovery** -- :func:`search_config` looks for ``.recallrc``,
  ``.recallrc.json``, ``.recallrc.yaml`` or ``.recallrc.yml`` starting in a
  directory and walking upward, stopping after the home directory.
* **Precedence resolution** -- :func:`read_config` deep-merges the
  home-directory file (defaults) with the nearest file found from the
  working directory (overrides).
* **Updates** -- :func:`write_config` merges a partial config into the
  nearest file, or into ``~/.recallrc`` when none exists.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, Sequence

import yaml

from recall.exceptions import ConfigError
from recall.models import ConfigFile, RequiredSetting

logger = logging.getLogger(__name__)

_APP_NAME = "recall"
_APP_DIR_NAME = f".{_APP_NAME}_config"
_DEFAULT_CONFIG_FILENAME = f".{_APP_NAME}rc"
CONFIG_FILENAMES = (
    _DEFAULT_CONFIG_FILENAME,
    f".{_APP_NAME}rc.json",
    f".{_APP_NAME}rc.yaml",
    f".{_APP_NAME}rc.yml",
)
"""File names checked in every directory during discovery, in order."""

CACHE_DIR_ENV = "RECALL_CACHE_DIR"


# --- Paths ---


def get_home_dir() -> Path:
    """Return the user's home directory (follows ``$HOME`` on POSIX)."""
    return Path.home()


def get_app_dir() -> Path:
    """Return ``~/.recall_config/``, creating it if necessary."""
    path = get_home_dir() / _APP_DIR_NAME
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the persistent store directory, creating it if necessary.

    ``$RECALL_CACHE_DIR`` wins when set, otherwise
    ``~/.recall_config/cache/``. Cached data can be safely deleted at any
    time.

    Returns:
        Absolute path to the cache directory (guaranteed to exist).
    """
    env_value = os.environ.get(CACHE_DIR_ENV, "")
    if env_value:
        path = Path(env_value).expanduser()
    else:
        path = get_app_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Parsing ---


def _parse_config_text(content: str, path: Path) -> dict[str, Any]:
    """Parse config file content as JSON or YAML.

    ``.yaml``/``.yml`` files go straight to YAML; everything else tries JSON
    first and falls back to YAML, so an extension-less ``.recallrc`` may
    hold either. Empty content parses as ``{}``.

    Raises:
        ConfigError: If the content cannot be parsed or is not a mapping.
    """
    if not content.strip():
        return {}

    result: Any = None
    parsed = False
    if path.suffix.lower() not in (".yaml", ".yml"):
        try:
            result = json.loads(content)
            parsed = True
        except json.JSONDecodeError as exc:
            if path.suffix.lower() == ".json":
                raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc

    if not parsed:
        try:
            result = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid config file {path}: {exc}") from exc

    if result is None:
        return {}
    if not isinstance(result, dict):
        raise ConfigError(
            f"Config file {path} must contain an object (got {type(result).__name__})"
        )
    return result


def load_config_file(path: Path) -> ConfigFile:
    """Read and parse a single config file.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    return ConfigFile(path=path, data=_parse_config_text(text, path))


# --- Discovery ---


def _search_dirs(start: Path, stop: Path) -> Iterator[Path]:
    """Yield *start* and its parents, ending at *stop* or the filesystem root."""
    current = start
    while True:
        yield current
        if current == stop or current.parent == current:
            return
        current = current.parent


def search_config(start: Optional[Path] = None) -> Optional[ConfigFile]:
    """Find the nearest config file from *start* upward.

    Args:
        start: Directory to begin in (defaults to the working directory).

    Returns:
        The first :class:`~recall.models.ConfigFile` found, or ``None``.

    Raises:
        ConfigError: If a found file is unreadable or malformed.
    """
    start_dir = Path(start).resolve() if start is not None else Path.cwd().resolve()
    home = get_home_dir().resolve()
    for directory in _search_dirs(start_dir, home):
        for name in CONFIG_FILENAMES:
            candidate = directory / name
            if candidate.is_file():
                logger.debug("Found config file %s", candidate)
                return load_config_file(candidate)
    return None


# --- Merging ---


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *override* on top of *base*.

    Nested mappings present in both merge key by key; any other value in
    *override* replaces the one in *base*. Neither input is mutated.

    Example::

        >>> deep_merge({"a": {"x": 9, "y": 5}, "c": 3}, {"a": {"x": 1}, "b": 2})
        {'a': {'x': 1, 'y': 5}, 'c': 3, 'b': 2}
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def read_config(cwd: Optional[Path] = None) -> dict[str, Any]:
    """Return the effective configuration.

    Precedence (high to low):
        1. Nearest config file found from *cwd* upward
        2. Config file in the home directory

    Args:
        cwd: Directory to start the search from (defaults to the working
            directory).

    Returns:
        The merged configuration; ``{}`` when no file exists.

    Raises:
        ConfigError: If a found file is unreadable or malformed.
    """
    local = search_config(cwd)
    home = search_config(get_home_dir())
    defaults = home.data if home is not None else {}
    overrides = local.data if local is not None else {}
    return deep_merge(defaults, overrides)


def _dump_config(data: dict[str, Any], target: Path) -> str:
    if target.suffix.lower() in (".yaml", ".yml"):
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    return json.dumps(data, indent=2) + "\n"


def write_config(partial: dict[str, Any], cwd: Optional[Path] = None) -> dict[str, Any]:
    """Merge *partial* into the closest config file and persist it.

    Values in *partial* take precedence over the file's content. When no
    config file is found, ``~/.recallrc`` is created.

    Args:
        partial: Settings to write.
        cwd: Directory to start the search from.

    Returns:
        *partial*, unchanged.

    Raises:
        ConfigError: If the existing file is malformed or cannot be written.
    """
    found = search_config(cwd)
    if found is not None:
        target = found.path
        existing = found.data
    else:
        target = get_home_dir() / _DEFAULT_CONFIG_FILENAME
        existing = {}

    merged = deep_merge(existing, partial)
    try:
        _atomic_write(target, _dump_config(merged, target))
    except OSError as exc:
        raise ConfigError(f"Cannot write config file {target}: {exc}") from exc
    logger.debug("Wrote config file %s", target)
    return partial


# --- Settings helpers ---


def _split_path(path: str | Sequence[str]) -> tuple[str, ...]:
    if isinstance(path, str):
        return tuple(path.split("."))
    return tuple(path)


def get_setting(config: dict[str, Any], path: str | Sequence[str], default: Any = None) -> Any:
    """Look up a nested setting by dot notation or key sequence.

    Returns *default* when any segment is missing or not a mapping.
    """
    target: Any = config
    for key in _split_path(path):
        if not isinstance(target, dict) or key not in target:
            return default
        target = target[key]
    return target


def nest_setting(path: str | Sequence[str], value: Any) -> dict[str, Any]:
    """Build a nested partial config, e.g. ``a.b`` → ``{"a": {"b": value}}``."""
    keys = _split_path(path)
    if not keys or not all(keys):
        raise ConfigError(f"Invalid config key: {path!r}")
    result: Any = value
    for key in reversed(keys):
        result = {key: result}
    return result


def missing_settings(
    config: dict[str, Any], required: Iterable[RequiredSetting]
) -> list[RequiredSetting]:
    """Return the required settings absent (or ``None``) in *config*, in order."""
    return [
        setting
        for setting in required
        if get_setting(config, setting.path) is None
    ]
