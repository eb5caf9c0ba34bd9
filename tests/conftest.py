"""Shared test fixtures for recall.

Provides an isolated home directory, in-memory stores with a controllable
clock, and a CLI runner. Global state (the default memoizer and the output
manager) is reset after every test.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from recall.cache import Memoizer, MemoryStore, reset_memoizer
from recall.output import reset_output


@pytest.fixture(autouse=True)
def _reset_globals_between_tests() -> None:
    """Drop the default memoizer and output manager after every test."""
    yield
    reset_memoizer()
    reset_output()


class FakeClock:
    """Manually advanced clock for expiring :class:`MemoryStore` entries."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> MemoryStore:
    return MemoryStore(clock=clock)


@pytest.fixture
def memoizer(memory_store: MemoryStore) -> Memoizer:
    """An enabled memoizer over the in-memory store."""
    return Memoizer(memory_store)


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point ``$HOME`` at a fresh directory and make it the working directory.

    Clears all RECALL_* environment variables so that tests never touch
    the real user's config or cache.

    Returns:
        The temporary home directory.
    """
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for var in ("RECALL_DISABLE_CACHE", "RECALL_CACHE_DIR"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(home)
    return home


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
