"""Shared fixtures for tuidb tests."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from tuidb.config import ConnectionStore
from tuidb.panes.coordinator import PaneCoordinator
from tuidb.services.clipboard import MemoryClipboard
from tuidb.services.jobs import SyncJobRunner
from tuidb.services.registry import ConnectionRegistry
from tuidb.vim.keymap import reset_vim_keymap

from tests.fixtures.mysql import *  # noqa: F401,F403


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep every test away from the real ~/.tuidb."""
    config_dir = tmp_path / "config"
    monkeypatch.setattr("tuidb.config.CONFIG_DIR", config_dir)
    monkeypatch.setattr("tuidb.config.CONFIG_PATH", config_dir / "connections.json")
    monkeypatch.setattr("tuidb.config.LOG_PATH", config_dir / "tuidb.log")
    yield config_dir
    reset_vim_keymap()


@pytest.fixture
def users_db(tmp_path: Path) -> Path:
    """SQLite file with a three-row users table and a keyless log table."""
    path = tmp_path / "app.db"
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT NOT NULL, age INTEGER);
        INSERT INTO users (id, name, age) VALUES (1, 'ada', 36), (2, 'bob', NULL), (3, 'cy', 41);
        CREATE TABLE log (msg TEXT, level INTEGER);
        INSERT INTO log VALUES ('a', 1), ('a', 1), ('b', 2);
        """
    )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def store(tmp_path: Path) -> ConnectionStore:
    return ConnectionStore(tmp_path / "profiles.json")


@pytest.fixture
def coordinator(store: ConnectionStore) -> PaneCoordinator:
    """Coordinator whose jobs complete inside submit()."""
    coord = PaneCoordinator(
        registry=ConnectionRegistry(),
        runner=SyncJobRunner(),
        store=store,
        clipboard=MemoryClipboard(),
    )
    yield coord
    coord.shutdown()
