"""Tests for pending edits and the commit plan they produce."""

from __future__ import annotations

import pytest

from tuidb.db.adapters.base import ColumnInfo, QueryResult
from tuidb.db.adapters.mysql import MySQLAdapter
from tuidb.db.adapters.sqlite import SQLiteAdapter
from tuidb.db.exceptions import ValidationError
from tuidb.db.values import Value, ValueKind
from tuidb.editing import ChangeKind, EditBuffer, TableContext


def v(obj) -> Value:
    return Value.from_native(obj)


USERS = QueryResult(
    columns=("id", "name", "age"),
    rows=(
        (v(1), v("ada"), v(36)),
        (v(2), v("bob"), v(None)),
        (v(3), v("cy"), v(41)),
    ),
)
USERS_CONTEXT = TableContext(
    table="users",
    schema="main",
    columns=(
        ColumnInfo("id", "INTEGER", is_primary_key=True),
        ColumnInfo("name", "TEXT", nullable=False),
        ColumnInfo("age", "INTEGER"),
    ),
)

LOG = QueryResult(columns=("msg", "level"), rows=((v("a"), v(1)), (v("a"), v(1))))
LOG_CONTEXT = TableContext(
    table="log",
    schema="shop",
    columns=(ColumnInfo("msg", "TEXT"), ColumnInfo("level", "INTEGER")),
)


class TestOverlay:
    """Edits overlay the fetched rows without changing them."""

    def test_set_cell(self):
        buffer = EditBuffer(USERS)
        buffer.set_cell(0, 1, v("ada2"))

        assert buffer.cell(0, 1) == v("ada2")
        assert buffer.original(0, 1) == v("ada")
        assert USERS.cell(0, 1) == v("ada")
        assert buffer.is_cell_dirty(0, 1)
        assert buffer.is_row_dirty(0)
        assert buffer.change_count == 1

    def test_setting_original_value_clears_edit(self):
        buffer = EditBuffer(USERS)
        buffer.set_cell(0, 1, v("x"))
        buffer.set_cell(0, 1, v("ada"))
        assert not buffer.is_dirty

    def test_out_of_range_cell(self):
        with pytest.raises(ValidationError):
            EditBuffer(USERS).set_cell(5, 0, v(1))

    def test_toggle_delete(self):
        buffer = EditBuffer(USERS)
        assert buffer.toggle_delete(1) is True
        assert buffer.is_deleted(1)
        assert buffer.toggle_delete(1) is False
        assert not buffer.is_dirty

    def test_new_rows_start_null(self):
        buffer = EditBuffer(USERS)
        index = buffer.add_row()
        assert buffer.new_row(index) == [Value.null()] * 3
        assert not buffer.is_new_cell_set(index, 0)

    def test_discard(self):
        buffer = EditBuffer(USERS)
        buffer.set_cell(0, 1, v("x"))
        buffer.toggle_delete(2)
        buffer.add_row()
        buffer.discard()
        assert not buffer.is_dirty
        assert buffer.change_count == 0


class TestPlan:
    """The commit plan: updates, then deletes, then inserts."""

    def test_order_and_keys(self):
        buffer = EditBuffer(USERS)
        new = buffer.add_row()
        buffer.set_new_cell(new, 1, v("dee"))
        buffer.toggle_delete(2)
        buffer.set_cell(1, 2, v(30))

        planned = buffer.plan(USERS_CONTEXT, SQLiteAdapter())

        assert [p.kind for p in planned] == [ChangeKind.UPDATE, ChangeKind.DELETE, ChangeKind.INSERT]
        update, delete, insert = planned
        assert update.statement.sql == 'UPDATE "users" SET "age" = ? WHERE "id" = ?'
        assert update.statement.params == (30, 2)
        assert update.unit == "row 2"
        assert delete.statement.sql == 'DELETE FROM "users" WHERE "id" = ?'
        assert delete.statement.params == (3,)
        assert insert.statement.sql == 'INSERT INTO "users" ("name") VALUES (?)'
        assert insert.unit == "new row 1"

    def test_only_touched_columns_are_written(self):
        buffer = EditBuffer(USERS)
        buffer.set_cell(0, 1, v("ada2"))
        (update,) = buffer.plan(USERS_CONTEXT, SQLiteAdapter())
        assert '"age"' not in update.statement.sql.split("WHERE")[0]

    def test_edits_on_deleted_rows_are_dropped(self):
        buffer = EditBuffer(USERS)
        buffer.set_cell(0, 1, v("x"))
        buffer.toggle_delete(0)
        assert [p.kind for p in buffer.plan(USERS_CONTEXT, SQLiteAdapter())] == [ChangeKind.DELETE]

    def test_explicit_null_in_new_row_is_written(self):
        buffer = EditBuffer(USERS)
        index = buffer.add_row()
        buffer.set_new_cell(index, 2, Value.null())
        (insert,) = buffer.plan(USERS_CONTEXT, SQLiteAdapter())
        assert insert.statement.sql == 'INSERT INTO "users" ("age") VALUES (?)'
        assert insert.statement.params == (None,)

    def test_keyless_table_matches_full_row(self):
        buffer = EditBuffer(LOG)
        buffer.toggle_delete(1)
        (delete,) = buffer.plan(LOG_CONTEXT, MySQLAdapter())
        assert delete.statement.sql == "DELETE FROM `shop`.`log` WHERE `msg` = %s AND `level` = %s LIMIT 1"
        assert delete.statement.params == ("a", 1)

    def test_key_uses_original_values(self):
        buffer = EditBuffer(USERS)
        buffer.set_cell(0, 0, Value(ValueKind.INTEGER, 10))
        (update,) = buffer.plan(USERS_CONTEXT, SQLiteAdapter())
        assert update.statement.params == (10, 1)

    def test_new_rows_insert_in_creation_order(self):
        buffer = EditBuffer(USERS)
        for name in ("dee", "eve", "fay"):
            index = buffer.add_row()
            buffer.set_new_cell(index, 1, v(name))

        planned = buffer.plan(USERS_CONTEXT, SQLiteAdapter())

        assert [p.kind for p in planned] == [ChangeKind.INSERT] * 3
        assert [p.statement.params for p in planned] == [("dee",), ("eve",), ("fay",)]
        assert [p.unit for p in planned] == ["new row 1", "new row 2", "new row 3"]
