"""SQLite adapter using the built-in sqlite3 module."""

from __future__ import annotations

import os
import sqlite3
from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..exceptions import ConnectError, ConnectErrorKind, SchemaSwitchError
from ..values import Value
from .base import ColumnInfo, DatabaseAdapter, IndexInfo

if TYPE_CHECKING:
    from ...config import ConnectionConfig

MAIN_SCHEMA = "main"
MEMORY_PATH = ":memory:"


def resolve_sqlite_path(file_path: str) -> str:
    """Absolute, user-expanded, symlink-resolved path (``:memory:`` is kept)."""
    if file_path == MEMORY_PATH:
        return file_path
    return os.path.realpath(os.path.expanduser(file_path))


class SQLiteAdapter(DatabaseAdapter):
    """Adapter for SQLite database files."""

    @property
    def name(self) -> str:
        return "SQLite"

    @property
    def supports_multiple_databases(self) -> bool:
        return False

    @property
    def placeholder(self) -> str:
        return "?"

    @property
    def driver_errors(self) -> tuple[type[BaseException], ...]:
        return (sqlite3.Error, sqlite3.Warning)

    def connect(self, config: ConnectionConfig, timeout: float = 10.0) -> Any:
        """Open an existing SQLite file. Missing files are never created."""
        if not config.file_path:
            raise ConnectError("No database file given", ConnectErrorKind.MALFORMED)
        path = resolve_sqlite_path(config.file_path)
        if path != MEMORY_PATH and not Path(path).is_file():
            raise ConnectError(f"Database file not found: {path}", ConnectErrorKind.NOT_FOUND)
        try:
            # Autocommit; every statement applies as soon as it runs.
            conn = sqlite3.connect(path, timeout=timeout, isolation_level=None, check_same_thread=False)
        except sqlite3.Error as e:
            raise ConnectError(str(e), ConnectErrorKind.NOT_FOUND) from e
        try:
            conn.execute("SELECT 1 FROM sqlite_master LIMIT 1").fetchall()
        except sqlite3.DatabaseError as e:
            conn.close()
            raise ConnectError(f"{path}: {e}", ConnectErrorKind.MALFORMED) from e
        return conn

    def list_schemas(self, conn: Any) -> list[str]:
        return [MAIN_SCHEMA]

    def _attached(self, conn: Any) -> list[str]:
        return [row[1] for row in conn.execute("PRAGMA database_list").fetchall()]

    def use_schema(self, conn: Any, name: str) -> None:
        if name not in self._attached(conn):
            raise SchemaSwitchError(f"Unknown schema: {name}")

    def current_schema(self, conn: Any) -> str | None:
        return MAIN_SCHEMA

    def list_tables(self, conn: Any, schema: str | None = None) -> list[str]:
        master = f"{self.quote_identifier(schema)}.sqlite_master" if schema else "sqlite_master"
        cursor = conn.execute(
            f"SELECT name FROM {master} "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [row[0] for row in cursor.fetchall()]

    def get_columns(self, conn: Any, table: str, schema: str | None = None) -> list[ColumnInfo]:
        prefix = f"{self.quote_identifier(schema)}." if schema else ""
        cursor = conn.execute(f"PRAGMA {prefix}table_info({self.quote_identifier(table)})")
        # cid, name, type, notnull, dflt_value, pk
        return [
            ColumnInfo(
                name=row[1],
                data_type=row[2] or "",
                is_primary_key=row[5] > 0,
                nullable=not row[3],
                default=row[4],
            )
            for row in cursor.fetchall()
        ]

    def get_indexes(self, conn: Any, table: str, schema: str | None = None) -> list[IndexInfo]:
        prefix = f"{self.quote_identifier(schema)}." if schema else ""
        # seq, name, unique, origin, partial
        listed = conn.execute(f"PRAGMA {prefix}index_list({self.quote_identifier(table)})").fetchall()
        indexes = []
        for row in sorted(listed, key=lambda r: r[1]):
            info = conn.execute(f"PRAGMA {prefix}index_info({self.quote_identifier(row[1])})").fetchall()
            # seqno, cid, name; name is NULL for expression columns
            columns = tuple(col[2] or "<expr>" for col in sorted(info))
            indexes.append(IndexInfo(name=row[1], table_name=table, columns=columns, is_unique=bool(row[2])))
        return indexes

    def quote_identifier(self, name: str) -> str:
        escaped = name.replace('"', '""')
        return f'"{escaped}"'

    def qualified_name(self, table: str, schema: str | None = None) -> str:
        if schema and schema != MAIN_SCHEMA:
            return f"{self.quote_identifier(schema)}.{self.quote_identifier(table)}"
        return self.quote_identifier(table)

    def _single_row(self, qualified: str, where: str) -> tuple[str, str]:
        # UPDATE/DELETE ... LIMIT needs a non-default build; keyless tables always have a rowid
        return f"rowid IN (SELECT rowid FROM {qualified} WHERE {where} LIMIT 1)", ""

    def bind_value(self, value: Value) -> Any:
        native = value.to_native()
        if isinstance(native, Decimal):
            # sqlite3 cannot bind Decimal; NUMERIC affinity converts the text back
            return str(native)
        return native
