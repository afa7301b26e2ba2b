"""MySQL adapter behavior that needs no server."""

from __future__ import annotations

from unittest.mock import MagicMock

import mysql.connector
import pytest

from tuidb.db.adapters.mysql import MySQLAdapter
from tuidb.db.exceptions import QueryError, SchemaSwitchError

LOST = "Lost connection to MySQL server during query"


def failing_conn() -> MagicMock:
    conn = MagicMock()
    conn.cursor.return_value.execute.side_effect = mysql.connector.Error(msg=LOST, errno=2013)
    return conn


def conn_returning(rows) -> MagicMock:
    conn = MagicMock()
    conn.cursor.return_value.fetchall.return_value = rows
    return conn


class TestDriverErrors:
    """Driver errors from schema context calls come back as tuidb errors."""

    def test_current_schema(self):
        with pytest.raises(QueryError) as exc_info:
            MySQLAdapter().current_schema(failing_conn())
        assert str(exc_info.value) == LOST

    def test_clear_database_context(self):
        conn = failing_conn()
        with pytest.raises(SchemaSwitchError) as exc_info:
            MySQLAdapter().clear_database_context(conn)
        assert str(exc_info.value) == LOST
        conn.cursor.return_value.close.assert_called_once()

    def test_use_schema(self):
        with pytest.raises(SchemaSwitchError):
            MySQLAdapter().use_schema(failing_conn(), "shop")


class TestIndexes:
    """STATISTICS rows are grouped into one entry per index."""

    def test_grouped_in_key_order(self):
        conn = conn_returning(
            [
                ("PRIMARY", "id", 0),
                ("by_name", "last", 1),
                ("by_name", "first", 1),
                ("by_lower", None, 1),
            ]
        )
        indexes = MySQLAdapter().get_indexes(conn, "users", "shop")

        assert [(i.name, i.columns, i.is_unique) for i in indexes] == [
            ("PRIMARY", ("id",), True),
            ("by_name", ("last", "first"), False),
            ("by_lower", ("<expr>",), False),
        ]
        assert conn.cursor.return_value.execute.call_args.args[1] == ("shop", "users")
