"""Tests for the per-dialect UPDATE / INSERT / DELETE builders."""

from __future__ import annotations

import pytest

from tuidb.db.adapters.mariadb import MariaDBAdapter
from tuidb.db.adapters.mysql import MySQLAdapter
from tuidb.db.adapters.sqlite import SQLiteAdapter
from tuidb.db.values import Value, ValueKind


def text(s: str) -> Value:
    return Value(ValueKind.TEXT, s)


def integer(n: int) -> Value:
    return Value(ValueKind.INTEGER, n)


class TestSQLiteBuilders:
    """SQLite uses ? markers and double-quoted identifiers."""

    def setup_method(self):
        self.adapter = SQLiteAdapter()

    def test_update_by_primary_key(self):
        stmt = self.adapter.build_update("users", ["id"], [integer(1)], [("name", text("ada2"))])
        assert stmt.sql == 'UPDATE "users" SET "name" = ? WHERE "id" = ?'
        assert stmt.params == ("ada2", 1)

    def test_null_key_uses_is_null(self):
        stmt = self.adapter.build_update(
            "users",
            ["id", "age"],
            [integer(2), Value.null()],
            [("age", integer(30))],
        )
        assert stmt.sql == 'UPDATE "users" SET "age" = ? WHERE "id" = ? AND "age" IS NULL'
        assert stmt.params == (30, 2)

    def test_null_assignment_is_bound(self):
        stmt = self.adapter.build_update("users", ["id"], [integer(1)], [("age", Value.null())])
        assert stmt.params == (None, 1)

    def test_identifier_quotes_are_escaped(self):
        stmt = self.adapter.build_delete('we"ird', ["id"], [integer(1)])
        assert stmt.sql == 'DELETE FROM "we""ird" WHERE "id" = ?'

    def test_insert_only_given_columns(self):
        stmt = self.adapter.build_insert("users", [("name", text("dee"))])
        assert stmt.sql == 'INSERT INTO "users" ("name") VALUES (?)'
        assert stmt.params == ("dee",)

    def test_empty_insert_uses_default_values(self):
        assert self.adapter.build_insert("users", []).sql == 'INSERT INTO "users" DEFAULT VALUES'

    def test_main_schema_is_not_qualified(self):
        stmt = self.adapter.build_delete("users", ["id"], [integer(1)], schema="main")
        assert stmt.sql.startswith('DELETE FROM "users"')

    def test_single_row_goes_through_rowid(self):
        stmt = self.adapter.build_delete("log", ["msg"], [text("a")], single_row=True)
        assert stmt.sql == (
            'DELETE FROM "log" WHERE rowid IN (SELECT rowid FROM "log" WHERE "msg" = ? LIMIT 1)'
        )
        assert stmt.params == ("a",)

    def test_update_without_changes_is_rejected(self):
        with pytest.raises(ValueError):
            self.adapter.build_update("users", ["id"], [integer(1)], [])


@pytest.mark.parametrize("adapter_cls", [MySQLAdapter, MariaDBAdapter])
class TestMySQLBuilders:
    """MySQL and MariaDB use %s markers and backticks."""

    def test_update_is_schema_qualified(self, adapter_cls):
        stmt = adapter_cls().build_update(
            "users", ["id"], [integer(1)], [("name", text("x"))], schema="shop"
        )
        assert stmt.sql == "UPDATE `shop`.`users` SET `name` = %s WHERE `id` = %s"
        assert stmt.params == ("x", 1)

    def test_full_row_key_limits_to_one_row(self, adapter_cls):
        stmt = adapter_cls().build_delete(
            "log", ["msg", "level"], [text("a"), integer(1)], single_row=True
        )
        assert stmt.sql == "DELETE FROM `log` WHERE `msg` = %s AND `level` = %s LIMIT 1"

    def test_backticks_are_escaped(self, adapter_cls):
        assert adapter_cls().quote_identifier("a`b") == "`a``b`"

    def test_empty_insert(self, adapter_cls):
        assert adapter_cls().build_insert("t", []).sql == "INSERT INTO `t` () VALUES ()"
