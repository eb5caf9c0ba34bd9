"""Deterministic cache keys for memoized calls.

A key has the shape ``{prefix}{owner}_{operation}{args}`` where ``args`` is
empty for a call without arguments and otherwise ``_`` followed by the
canonical form of each argument joined by ``_``. Keyword arguments follow
the positional ones, sorted by name, as ``name=<canonical>``.

The canonical form of a value is compact JSON with sorted object keys, after
normalising the Python types JSON does not know about (pydantic models,
dataclasses, enums, sets, paths, dates, UUIDs, decimals). A value is keyed
by its JSON form, so a set and the sorted list of its items, or a date and
its ISO string, share a key. Mapping keys must be strings: JSON would turn
``{1: "a"}`` into ``{"1": "a"}``, so other key types raise
:class:`~recall.exceptions.CacheKeyError`. Keys are an internal namespace,
not a security boundary, so they are not hashed.
"""

from __future__ import annotations

import dataclasses
import datetime
import decimal
import enum
import json
import uuid
from pathlib import PurePath
from typing import Any, Callable, Mapping, Sequence

from pydantic import BaseModel

from recall.exceptions import CacheKeyError


def _check_mapping_keys(value: Any, active: set[int]) -> None:
    """Raise :class:`TypeError` if a dict inside *value* has a non-``str`` key.

    Containers already on the current path are skipped so that
    ``json.dumps`` reports circular references itself.
    """
    if isinstance(value, dict):
        for key in value:
            if not isinstance(key, str):
                raise TypeError(f"mapping keys must be str, got {type(key).__name__} {key!r}")
        children: Any = value.values()
    elif isinstance(value, (list, tuple)):
        children = value
    else:
        return
    if id(value) in active:
        return
    active.add(id(value))
    for child in children:
        _check_mapping_keys(child, active)
    active.discard(id(value))


def _normalise(value: Any) -> Any:
    """``json.dumps`` *default* hook for the non-JSON types we accept."""
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
        _check_mapping_keys(value, set())
        return value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
        _check_mapping_keys(value, set())
        return value
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        items = [canonical_json(item) for item in value]
        return [json.loads(item) for item in sorted(items)]
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, (PurePath, uuid.UUID, decimal.Decimal)):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not serializable")


def canonical_json(value: Any) -> str:
    """Serialize *value* to its canonical string form.

    Raises:
        CacheKeyError: If *value* (or something nested in it) has no
            canonical form.
    """
    try:
        _check_mapping_keys(value, set())
        return json.dumps(
            value,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            default=_normalise,
        )
    except (TypeError, ValueError) as exc:
        raise CacheKeyError(f"Cannot build cache key from argument {value!r}: {exc}") from exc


def args_suffix(args: Sequence[Any], kwargs: Mapping[str, Any] | None = None) -> str:
    """Return the ``_``-joined argument part of a key, or ``""`` without arguments."""
    parts = [canonical_json(arg) for arg in args]
    if kwargs:
        parts.extend(f"{name}={canonical_json(kwargs[name])}" for name in sorted(kwargs))
    if not parts:
        return ""
    return "_" + "_".join(parts)


def build_key(
    owner: str,
    operation: str,
    args: Sequence[Any] = (),
    kwargs: Mapping[str, Any] | None = None,
    prefix: str = "",
) -> str:
    """Build the cache key for one call.

    Example::

        >>> build_key("Tracker", "get_issue", ("ABC-1",), prefix="https://jira/")
        'https://jira/Tracker_get_issue_"ABC-1"'
    """
    return f"{prefix}{owner}_{operation}{args_suffix(args, kwargs)}"


def operation_identity(func: Callable[..., Any]) -> tuple[str, str]:
    """Return ``(owner, operation)`` for a function.

    The owner is the full ``__module__`` followed by the enclosing part of
    ``__qualname__``: ``jira.client.Tracker`` for ``Tracker.get_issue``
    defined in ``jira.client``, plain ``jira.client`` for a module-level
    function. Enclosing function scopes are kept (``<locals>`` included),
    so same-named functions and classes never share an owner.
    """
    name = getattr(func, "__name__", None) or type(func).__name__
    qualname = getattr(func, "__qualname__", name)
    module = getattr(func, "__module__", None) or "__main__"
    scope = qualname.rsplit(".", 1)[0] if "." in qualname else ""
    owner = f"{module}.{scope}" if scope else module
    return owner, name
