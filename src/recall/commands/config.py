"""Config commands -- view and modify the hierarchical configuration.

``show`` and ``get`` read the merged configuration
(:func:`~recall.config.read_config`); ``set`` writes to the nearest config
file, or ``~/.recallrc`` when none exists
(:func:`~recall.config.write_config`).
"""

from __future__ import annotations

import json
from typing import Any

import typer

from recall.output import error, format_response, success


config_app = typer.Typer(no_args_is_help=True)

_UNSET = object()


def _parse_value(value: str) -> Any:
    """Interpret *value* as JSON (numbers, booleans, objects), else keep the string."""
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


@config_app.command("show")
def config_show() -> None:
    """Show the merged configuration.

    Example::

        recall config show
        recall --json config show
    """
    from recall.config import read_config

    format_response(read_config())


@config_app.command("get")
def config_get(
    key: str = typer.Argument(help="Config key (dot notation, e.g. 'cache.default_minutes')."),
) -> None:
    """Print a single configuration value.

    Raises:
        typer.Exit: With code 2 if the key is not set.
    """
    from recall.config import get_setting, read_config

    value = get_setting(read_config(), key, default=_UNSET)
    if value is _UNSET:
        error(f"Config key not set: {key}")
        raise typer.Exit(code=2)
    format_response(value)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key (dot notation, e.g. 'cache.default_minutes')."),
    value: str = typer.Argument(help="Value to set; parsed as JSON when possible."),
) -> None:
    """Set a configuration value in the nearest config file.

    Example::

        recall config set cache.default_minutes 60
        recall config set jira.root https://example.atlassian.net
    """
    from recall.config import nest_setting, write_config

    parsed = _parse_value(value)
    write_config(nest_setting(key, parsed))
    success(f"Set {key} = {json.dumps(parsed, default=str)}")
