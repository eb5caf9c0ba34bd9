"""Tests for the ``recall`` maintenance command (cache and config groups)."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from recall import __version__
from recall.app import app, main
from recall.cache import get_memoizer


class TestRoot:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"recall {__version__}" in result.output

    def test_no_args_shows_help(self, cli_runner) -> None:
        result = cli_runner.invoke(app, [])
        assert "cache" in result.output
        assert "config" in result.output


class TestCacheCommands:
    def test_info_json(self, cli_runner, isolated_home: Path) -> None:
        result = cli_runner.invoke(app, ["--json", "cache", "info"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["backend"] == "disk"
        assert data["directory"] == str(isolated_home / ".recall_config" / "cache")
        assert data["size"] == 0
        assert data["disabled"] is False

    def test_info_reports_disabled(
        self, cli_runner, isolated_home: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("RECALL_DISABLE_CACHE", "1")
        result = cli_runner.invoke(app, ["--json", "--no-color", "cache", "info"])
        assert result.exit_code == 0
        assert "disabled" in result.output.lower()

    def test_clear_with_force(self, cli_runner, isolated_home: Path) -> None:
        store = get_memoizer().store
        asyncio.run(store.set("a", 1))
        asyncio.run(store.set("b", 2))

        result = cli_runner.invoke(app, ["--no-color", "cache", "clear", "--force"])

        assert result.exit_code == 0, result.output
        assert "Removed 2 cached entries" in result.output
        assert store.stats()["size"] == 0

    def test_clear_declined(self, cli_runner, isolated_home: Path) -> None:
        store = get_memoizer().store
        asyncio.run(store.set("a", 1))

        result = cli_runner.invoke(app, ["--no-color", "cache", "clear"], input="n\n")

        assert result.exit_code == 0
        assert "Cancelled" in result.output
        assert store.stats()["size"] == 1


class TestConfigCommands:
    def test_show(self, cli_runner, isolated_home: Path) -> None:
        (isolated_home / ".recallrc").write_text(json.dumps({"jira": {"root": "r"}}))
        result = cli_runner.invoke(app, ["--json", "config", "show"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"jira": {"root": "r"}}

    def test_set_then_get(self, cli_runner, isolated_home: Path) -> None:
        result = cli_runner.invoke(app, ["--no-color", "config", "set", "cache.default_minutes", "60"])
        assert result.exit_code == 0, result.output
        assert json.loads((isolated_home / ".recallrc").read_text()) == {
            "cache": {"default_minutes": 60}
        }

        result = cli_runner.invoke(app, ["--json", "config", "get", "cache.default_minutes"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == 60

    def test_set_keeps_non_json_value_as_string(self, cli_runner, isolated_home: Path) -> None:
        cli_runner.invoke(app, ["config", "set", "jira.root", "https://jira.example.com"])
        data = json.loads((isolated_home / ".recallrc").read_text())
        assert data == {"jira": {"root": "https://jira.example.com"}}

    def test_get_missing_key(self, cli_runner, isolated_home: Path) -> None:
        result = cli_runner.invoke(app, ["--no-color", "config", "get", "nope"])
        assert result.exit_code == 2
        assert "not set" in result.output


class TestMain:
    def test_recall_error_exit_code(
        self, isolated_home: Path, monkeypatch: pytest.MonkeyPatch, capsys
    ) -> None:
        (isolated_home / ".recallrc").write_text("[1, 2]")
        monkeypatch.setattr("sys.argv", ["recall", "--no-color", "config", "show"])
        with pytest.raises(SystemExit) as excinfo:
            main()
        assert excinfo.value.code == 1
        assert "must contain an object" in capsys.readouterr().err

    def test_success_exit_code(
        self, isolated_home: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("sys.argv", ["recall", "--json", "config", "show"])
        with pytest.raises(SystemExit) as excinfo:
            main()
        assert excinfo.value.code == 0
