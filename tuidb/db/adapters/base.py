"""Abstract database adapter and the result types shared by every backend."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

from ..exceptions import ConnectError, ConnectErrorKind, MissingDriverError, QueryError
from ..values import Value, ValueKind, kind_for_declared_type

if TYPE_CHECKING:
    from ...config import ConnectionConfig


DEFAULT_FETCH_LIMIT = 1000


@dataclass
class ColumnInfo:
    """Column metadata as reported by the backend."""

    name: str
    data_type: str
    is_primary_key: bool = False
    nullable: bool = True
    default: str | None = None

    @property
    def kind(self) -> ValueKind:
        return kind_for_declared_type(self.data_type)


@dataclass
class IndexInfo:
    """Index metadata as reported by the backend."""

    name: str
    table_name: str
    columns: tuple[str, ...] = ()
    is_unique: bool = False


@dataclass(frozen=True)
class QueryResult:
    """Rows returned by a read. Never mutated after it is built."""

    columns: tuple[str, ...]
    rows: tuple[tuple[Value, ...], ...]
    truncated: bool = False
    elapsed_ms: float = 0.0

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.columns)

    def cell(self, row: int, col: int) -> Value:
        return self.rows[row][col]


@dataclass(frozen=True)
class NonQueryResult:
    """Outcome of a write statement."""

    rows_affected: int
    elapsed_ms: float = 0.0


QueryOutcome = Union[QueryResult, NonQueryResult]


@dataclass(frozen=True)
class Statement:
    """A parameterized statement ready for the driver."""

    sql: str
    params: tuple[Any, ...] = ()


class DatabaseAdapter(ABC):
    """Capability interface implemented once per backend.

    Adapters are stateless; every method takes the raw DB-API connection
    returned by :meth:`connect`.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name."""

    @property
    def install_package(self) -> str | None:
        return None

    @property
    def driver_import_names(self) -> tuple[str, ...]:
        return ()

    @property
    def supports_multiple_databases(self) -> bool:
        return True

    @property
    @abstractmethod
    def placeholder(self) -> str:
        """Parameter marker understood by the driver."""

    @property
    @abstractmethod
    def driver_errors(self) -> tuple[type[BaseException], ...]:
        """Exception types raised by the driver for failed statements."""

    def import_driver(self) -> Any:
        """Import the driver module, raising MissingDriverError if it is absent."""
        import importlib

        module_name = self.driver_import_names[0]
        try:
            return importlib.import_module(module_name)
        except ImportError as e:
            raise MissingDriverError(self.name, module_name, self.install_package or module_name) from e

    # ─────────────────────────────────────────────────────────────────
    # Connection lifecycle
    # ─────────────────────────────────────────────────────────────────

    @abstractmethod
    def connect(self, config: ConnectionConfig) -> Any:
        """Open a raw connection or raise ConnectError."""

    def close(self, conn: Any) -> None:
        conn.close()

    def classify_connect_error(self, error: Exception) -> ConnectError:
        return ConnectError(str(error), ConnectErrorKind.UNKNOWN)

    # ─────────────────────────────────────────────────────────────────
    # Schema navigation
    # ─────────────────────────────────────────────────────────────────

    @abstractmethod
    def list_schemas(self, conn: Any) -> list[str]:
        """Schemas the user can browse, system schemas excluded."""

    @abstractmethod
    def use_schema(self, conn: Any, name: str) -> None:
        """Switch the active schema or raise SchemaSwitchError."""

    @abstractmethod
    def current_schema(self, conn: Any) -> str | None:
        """Active schema, or None when no schema is selected."""

    def clear_database_context(self, conn: Any) -> None:
        """Drop back to a neutral context before switching schemas."""

    @abstractmethod
    def list_tables(self, conn: Any, schema: str | None = None) -> list[str]:
        """Table names in ``schema`` (or the active schema)."""

    @abstractmethod
    def get_columns(self, conn: Any, table: str, schema: str | None = None) -> list[ColumnInfo]:
        """Columns of ``table`` in backend order."""

    @abstractmethod
    def get_indexes(self, conn: Any, table: str, schema: str | None = None) -> list[IndexInfo]:
        """Indexes on ``table``, each with its columns in key order."""

    # ─────────────────────────────────────────────────────────────────
    # Reads and writes
    # ─────────────────────────────────────────────────────────────────

    @abstractmethod
    def quote_identifier(self, name: str) -> str:
        """Quote an identifier for this backend."""

    def qualified_name(self, table: str, schema: str | None = None) -> str:
        return self.quote_identifier(table)

    def build_select_query(self, table: str, limit: int, schema: str | None = None) -> str:
        """Build SELECT LIMIT query."""
        return f"SELECT * FROM {self.qualified_name(table, schema)} LIMIT {limit}"

    def _cursor(self, conn: Any) -> Any:
        return conn.cursor()

    def _commit(self, conn: Any) -> None:
        conn.commit()

    def bind_value(self, value: Value) -> Any:
        return value.to_native()

    def fetch_rows(
        self,
        conn: Any,
        table: str,
        limit: int = DEFAULT_FETCH_LIMIT,
        schema: str | None = None,
    ) -> QueryResult:
        """Fetch the first ``limit`` rows of a table."""
        outcome = self.execute(conn, self.build_select_query(table, limit + 1, schema), max_rows=limit)
        assert isinstance(outcome, QueryResult)
        return outcome

    def execute(self, conn: Any, query: str, max_rows: int | None = DEFAULT_FETCH_LIMIT) -> QueryOutcome:
        """Run one statement. Backend errors surface verbatim as QueryError."""
        start = time.perf_counter()
        cursor = self._cursor(conn)
        try:
            cursor.execute(query)
            if cursor.description:
                columns = tuple(col[0] for col in cursor.description)
                if max_rows is not None:
                    raw = cursor.fetchmany(max_rows + 1)
                    truncated = len(raw) > max_rows
                    if truncated:
                        raw = raw[:max_rows]
                else:
                    raw = cursor.fetchall()
                    truncated = False
                rows = tuple(tuple(Value.from_native(v) for v in row) for row in raw)
                return QueryResult(columns, rows, truncated, _elapsed(start))
            rowcount = int(cursor.rowcount)
            self._commit(conn)
            return NonQueryResult(rows_affected=max(rowcount, 0), elapsed_ms=_elapsed(start))
        except self.driver_errors as e:
            raise QueryError(str(e)) from e
        finally:
            cursor.close()

    def execute_statement(self, conn: Any, statement: Statement) -> int:
        """Run a parameterized write and return the affected row count."""
        cursor = self._cursor(conn)
        try:
            cursor.execute(statement.sql, statement.params)
            rowcount = int(cursor.rowcount)
            self._commit(conn)
            return rowcount
        except self.driver_errors as e:
            raise QueryError(str(e)) from e
        finally:
            cursor.close()

    # ─────────────────────────────────────────────────────────────────
    # Statement builders (pure)
    # ─────────────────────────────────────────────────────────────────

    def _ident(self, name: str) -> str:
        """Quote an identifier for use inside a parameterized statement."""
        return self.quote_identifier(name)

    def _where(self, key_columns: Sequence[str], key_values: Sequence[Value]) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        for column, value in zip(key_columns, key_values):
            if value.is_null:
                clauses.append(f"{self._ident(column)} IS NULL")
            else:
                clauses.append(f"{self._ident(column)} = {self.placeholder}")
                params.append(self.bind_value(value))
        return " AND ".join(clauses), params

    def _single_row(self, qualified: str, where: str) -> tuple[str, str]:
        """(where clause, suffix) restricting a write to one matching row."""
        return where, ""

    def build_update(
        self,
        table: str,
        key_columns: Sequence[str],
        key_values: Sequence[Value],
        changes: Sequence[tuple[str, Value]],
        schema: str | None = None,
        single_row: bool = False,
    ) -> Statement:
        """UPDATE one row identified by ``key_columns``.

        ``single_row`` is set when the key is the full row rather than a
        primary key, so only one of several identical rows is touched.
        """
        if not changes:
            raise ValueError("build_update needs at least one changed column")
        if not key_columns:
            raise ValueError("build_update needs at least one key column")
        assignments = ", ".join(f"{self._ident(column)} = {self.placeholder}" for column, _ in changes)
        params = [self.bind_value(value) for _, value in changes]
        where, where_params = self._where(key_columns, key_values)
        qualified = self._qualified(table, schema)
        suffix = ""
        if single_row:
            where, suffix = self._single_row(qualified, where)
        sql = f"UPDATE {qualified} SET {assignments} WHERE {where}{suffix}"
        return Statement(sql, tuple(params + where_params))

    def _empty_insert_sql(self, qualified: str) -> str:
        return f"INSERT INTO {qualified} DEFAULT VALUES"

    def build_insert(
        self,
        table: str,
        values: Sequence[tuple[str, Value]],
        schema: str | None = None,
    ) -> Statement:
        """INSERT one row with only the columns the user set."""
        qualified = self._qualified(table, schema)
        if not values:
            return Statement(self._empty_insert_sql(qualified))
        columns = ", ".join(self._ident(column) for column, _ in values)
        markers = ", ".join(self.placeholder for _ in values)
        params = tuple(self.bind_value(value) for _, value in values)
        return Statement(f"INSERT INTO {qualified} ({columns}) VALUES ({markers})", params)

    def build_delete(
        self,
        table: str,
        key_columns: Sequence[str],
        key_values: Sequence[Value],
        schema: str | None = None,
        single_row: bool = False,
    ) -> Statement:
        """DELETE one row identified by ``key_columns``."""
        if not key_columns:
            raise ValueError("build_delete needs at least one key column")
        where, params = self._where(key_columns, key_values)
        qualified = self._qualified(table, schema)
        suffix = ""
        if single_row:
            where, suffix = self._single_row(qualified, where)
        return Statement(f"DELETE FROM {qualified} WHERE {where}{suffix}", tuple(params))

    def _qualified(self, table: str, schema: str | None) -> str:
        return self.qualified_name(table, schema)


def _elapsed(start: float) -> float:
    return (time.perf_counter() - start) * 1000
