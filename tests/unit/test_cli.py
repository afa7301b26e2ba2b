"""Tests for the command-line entry point and subcommands."""

from __future__ import annotations

import json
import logging

import pytest

from tuidb import cli
from tuidb.cli import main
from tuidb.config import ConnectionStore


def saved() -> ConnectionStore:
    store = ConnectionStore()
    store.load()
    return store


@pytest.fixture
def sqlite_profile(users_db):
    assert main(["connection", "create", "-n", "app", "-t", "sqlite", "--file-path", str(users_db)]) == 0
    return "app"


class TestConnectionCommands:
    """connection list/create/edit/delete manage the saved profiles."""

    def test_create_and_list(self, capsys):
        assert main(["connection", "create", "-n", "local", "-t", "mysql", "-s", "localhost", "-u", "root"]) == 0
        config = saved().get("local")
        assert config.server == "localhost"
        assert config.port == "3306"

        assert main(["connection", "list"]) == 0
        out = capsys.readouterr().out
        assert "local" in out
        assert "root@localhost:3306" in out

    def test_list_empty(self, capsys):
        assert main(["connection", "list"]) == 0
        assert "No saved connections" in capsys.readouterr().out

    def test_create_duplicate_name(self, capsys):
        main(["connection", "create", "-n", "x", "-t", "mysql", "-s", "a"])
        assert main(["connection", "create", "-n", "x", "-t", "mysql", "-s", "b"]) == 1
        assert "already exists" in capsys.readouterr().err

    def test_sqlite_needs_file(self, capsys):
        assert main(["connection", "create", "-n", "x"]) == 1
        assert "--file-path" in capsys.readouterr().err

    def test_edit_renames(self):
        main(["connection", "create", "-n", "old", "-t", "mysql", "-s", "a"])
        assert main(["connection", "edit", "old", "-n", "new", "-P", "3307"]) == 0
        store = saved()
        assert store.get("old") is None
        assert store.get("new").port == "3307"

    def test_edit_missing(self):
        assert main(["connection", "edit", "ghost", "-s", "x"]) == 1

    def test_delete(self):
        main(["connection", "create", "-n", "gone", "-t", "mysql", "-s", "a"])
        assert main(["connection", "delete", "gone"]) == 0
        assert main(["connection", "delete", "gone"]) == 1
        assert saved().all() == []

    def test_connection_without_subcommand(self):
        assert main(["connection"]) == 1


class TestQueryCommand:
    """query runs statements against a saved profile."""

    def test_json_output(self, sqlite_profile, capsys):
        capsys.readouterr()
        code = main(["query", "-c", sqlite_profile, "-q", "SELECT id, name FROM users ORDER BY id", "-o", "json"])
        assert code == 0
        rows = json.loads(capsys.readouterr().out)
        assert rows[0] == {"id": 1, "name": "ada"}
        assert len(rows) == 3

    def test_csv_output_shows_null_as_empty(self, sqlite_profile, capsys):
        capsys.readouterr()
        main(["query", "-c", sqlite_profile, "-q", "SELECT name, age FROM users WHERE id = 2", "-o", "csv"])
        lines = capsys.readouterr().out.splitlines()
        assert lines == ["name,age", "bob,"]

    def test_limit(self, sqlite_profile, capsys):
        capsys.readouterr()
        main(["query", "-c", sqlite_profile, "-q", "SELECT * FROM users", "-o", "json", "--limit", "2"])
        assert len(json.loads(capsys.readouterr().out)) == 2

    def test_write_reports_rows_affected(self, sqlite_profile, capsys):
        assert main(["query", "-c", sqlite_profile, "-q", "UPDATE users SET age = 1"]) == 0
        assert "3 row(s) affected" in capsys.readouterr().out

    def test_file(self, sqlite_profile, tmp_path, capsys):
        script = tmp_path / "q.sql"
        script.write_text("DELETE FROM log;\nSELECT COUNT(*) AS n FROM log;\n")
        capsys.readouterr()
        assert main(["query", "-c", sqlite_profile, "-f", str(script), "-o", "csv"]) == 0
        out = capsys.readouterr().out
        assert "3 row(s) affected" in out
        assert out.splitlines()[-1] == "0"

    def test_failing_statement(self, sqlite_profile, capsys):
        code = main(["query", "-c", sqlite_profile, "-q", "SELECT 1; SELEC 2"])
        assert code == 1
        assert "Statement 2 failed" in capsys.readouterr().err

    def test_unknown_profile(self, capsys):
        assert main(["query", "-c", "ghost", "-q", "SELECT 1"]) == 1
        assert "not found" in capsys.readouterr().err

    def test_missing_query(self, sqlite_profile):
        assert main(["query", "-c", sqlite_profile]) == 1


class TestLaunch:
    """Options for the interactive client are checked before it starts."""

    def test_bad_dsn_exits_before_ui(self, capsys):
        assert main(["--mysql", "not-a-dsn"]) == 2
        assert "mysql://" in capsys.readouterr().err

    def test_tui_parser_accepts_path_and_dsn(self):
        args = cli.build_tui_parser().parse_args(["app.db", "--mariadb", "mariadb://u@h/db"])
        assert args.path == "app.db"
        assert args.mariadb == "mariadb://u@h/db"


class TestLogging:
    """--debug sends records to the log file, never the terminal."""

    def test_debug_writes_log_file(self, tmp_path, monkeypatch):
        log_path = tmp_path / "logs" / "tuidb.log"
        monkeypatch.setattr(cli, "LOG_PATH", log_path)
        logger = logging.getLogger("tuidb")
        before = list(logger.handlers)
        try:
            cli.configure_logging(True)
            logging.getLogger("tuidb.test").debug("hello log")
            for handler in logger.handlers:
                handler.flush()
            assert "hello log" in log_path.read_text()
        finally:
            for handler in logger.handlers[len(before):]:
                handler.close()
            logger.handlers = before
            logger.setLevel(logging.NOTSET)
