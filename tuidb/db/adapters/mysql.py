"""MySQL adapter using mysql-connector-python."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..exceptions import ConnectError, ConnectErrorKind, QueryError, SchemaSwitchError
from .base import ColumnInfo, DatabaseAdapter, IndexInfo

if TYPE_CHECKING:
    from ...config import ConnectionConfig

NEUTRAL_SCHEMA = "information_schema"
SYSTEM_SCHEMAS = frozenset({"information_schema", "mysql", "performance_schema", "sys"})
CONNECT_TIMEOUT = 10

# Client and server error numbers used to classify connect failures.
_AUTH_ERRNOS = frozenset({1044, 1045, 1698, 2059})
_NOT_FOUND_ERRNOS = frozenset({1049})
_NETWORK_ERRNOS = frozenset({2002, 2003, 2005, 2006, 2013, 2055})


class MySQLAdapter(DatabaseAdapter):
    """Adapter for MySQL using mysql-connector-python."""

    @property
    def name(self) -> str:
        return "MySQL"

    @property
    def install_package(self) -> str | None:
        return "mysql-connector-python"

    @property
    def driver_import_names(self) -> tuple[str, ...]:
        return ("mysql.connector",)

    @property
    def placeholder(self) -> str:
        return "%s"

    @property
    def driver_errors(self) -> tuple[type[BaseException], ...]:
        mysql_connector = self.import_driver()
        return (mysql_connector.Error,)

    def connect(self, config: ConnectionConfig) -> Any:
        """Connect to a MySQL-compatible server.

        With no database in the profile the session starts in
        information_schema so that statements never land in a random schema.
        """
        mysql_connector = self.import_driver()
        from mysql.connector.constants import ClientFlag

        try:
            port = int(config.port) if config.port else 3306
        except ValueError as e:
            raise ConnectError(f"Invalid port: {config.port}", ConnectErrorKind.MALFORMED) from e
        if not config.server:
            raise ConnectError("No host given", ConnectErrorKind.MALFORMED)

        try:
            conn = mysql_connector.connect(
                host=config.server,
                port=port,
                user=config.username or None,
                password=config.password or "",
                database=config.database or None,
                connection_timeout=CONNECT_TIMEOUT,
                autocommit=True,
                # rowcount reports matched rows, not changed rows
                client_flags=[ClientFlag.FOUND_ROWS],
            )
        except mysql_connector.Error as e:
            raise self.classify_connect_error(e) from e
        if not config.database:
            try:
                self.clear_database_context(conn)
            except SchemaSwitchError as e:
                conn.close()
                raise ConnectError(str(e), ConnectErrorKind.UNKNOWN) from e
        return conn

    def classify_connect_error(self, error: Exception) -> ConnectError:
        errno = getattr(error, "errno", None)
        message = _message(error)
        if errno in _AUTH_ERRNOS:
            return ConnectError(message, ConnectErrorKind.AUTH)
        if errno in _NOT_FOUND_ERRNOS:
            return ConnectError(message, ConnectErrorKind.NOT_FOUND)
        if errno in _NETWORK_ERRNOS or errno is None:
            return ConnectError(message, ConnectErrorKind.NETWORK)
        return ConnectError(message, ConnectErrorKind.UNKNOWN)

    def _cursor(self, conn: Any) -> Any:
        # Buffered so a partially fetched result never blocks the next statement.
        return conn.cursor(buffered=True)

    def _scalar(self, conn: Any, query: str, params: tuple[Any, ...] = ()) -> Any:
        cursor = self._cursor(conn)
        try:
            cursor.execute(query, params)
            row = cursor.fetchone()
            return row[0] if row else None
        finally:
            cursor.close()

    def list_schemas(self, conn: Any) -> list[str]:
        cursor = self._cursor(conn)
        try:
            cursor.execute("SHOW DATABASES")
            names = [_text(row[0]) for row in cursor.fetchall()]
        finally:
            cursor.close()
        return [name for name in names if name.lower() not in SYSTEM_SCHEMAS]

    def use_schema(self, conn: Any, name: str) -> None:
        try:
            cursor = self._cursor(conn)
            try:
                cursor.execute(f"USE {self.quote_identifier(name)}")
            finally:
                cursor.close()
            active = self.current_schema(conn)
        except (QueryError, *self.driver_errors) as e:
            raise SchemaSwitchError(_message(e)) from e
        if active != name:
            raise SchemaSwitchError(f"Failed to switch to database {name} (active: {active})")

    def current_schema(self, conn: Any) -> str | None:
        try:
            active = self._scalar(conn, "SELECT DATABASE()")
        except self.driver_errors as e:
            raise QueryError(_message(e)) from e
        if active is None:
            return None
        active = _text(active)
        return None if active == NEUTRAL_SCHEMA else active

    def clear_database_context(self, conn: Any) -> None:
        try:
            cursor = self._cursor(conn)
            try:
                cursor.execute(f"USE {NEUTRAL_SCHEMA}")
            finally:
                cursor.close()
        except self.driver_errors as e:
            raise SchemaSwitchError(_message(e)) from e

    def list_tables(self, conn: Any, schema: str | None = None) -> list[str]:
        schema = schema or self.current_schema(conn)
        if not schema:
            return []
        cursor = self._cursor(conn)
        try:
            cursor.execute(
                "SELECT TABLE_NAME FROM information_schema.TABLES "
                "WHERE TABLE_SCHEMA = %s AND TABLE_TYPE = 'BASE TABLE' ORDER BY TABLE_NAME",
                (schema,),
            )
            return [_text(row[0]) for row in cursor.fetchall()]
        finally:
            cursor.close()

    def get_columns(self, conn: Any, table: str, schema: str | None = None) -> list[ColumnInfo]:
        schema = schema or self.current_schema(conn)
        cursor = self._cursor(conn)
        try:
            cursor.execute(
                "SELECT COLUMN_NAME, COLUMN_TYPE, COLUMN_KEY, IS_NULLABLE, COLUMN_DEFAULT "
                "FROM information_schema.COLUMNS "
                "WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s ORDER BY ORDINAL_POSITION",
                (schema, table),
            )
            rows = cursor.fetchall()
        finally:
            cursor.close()
        return [
            ColumnInfo(
                name=_text(row[0]),
                data_type=_text(row[1]),
                is_primary_key=_text(row[2]) == "PRI",
                nullable=_text(row[3]) == "YES",
                default=None if row[4] is None else _text(row[4]),
            )
            for row in rows
        ]

    def get_indexes(self, conn: Any, table: str, schema: str | None = None) -> list[IndexInfo]:
        schema = schema or self.current_schema(conn)
        cursor = self._cursor(conn)
        try:
            cursor.execute(
                "SELECT INDEX_NAME, COLUMN_NAME, NON_UNIQUE FROM information_schema.STATISTICS "
                "WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s ORDER BY INDEX_NAME, SEQ_IN_INDEX",
                (schema, table),
            )
            rows = cursor.fetchall()
        finally:
            cursor.close()
        indexes: dict[str, IndexInfo] = {}
        for name, column, non_unique in rows:
            name = _text(name)
            index = indexes.setdefault(name, IndexInfo(name=name, table_name=table, is_unique=not int(non_unique)))
            # functional key parts have no column name
            index.columns += (_text(column) if column is not None else "<expr>",)
        return list(indexes.values())

    def quote_identifier(self, name: str) -> str:
        escaped = name.replace("`", "``")
        return f"`{escaped}`"

    def qualified_name(self, table: str, schema: str | None = None) -> str:
        if schema:
            return f"{self.quote_identifier(schema)}.{self.quote_identifier(table)}"
        return self.quote_identifier(table)

    def _empty_insert_sql(self, qualified: str) -> str:
        return f"INSERT INTO {qualified} () VALUES ()"

    def _single_row(self, qualified: str, where: str) -> tuple[str, str]:
        return where, " LIMIT 1"


def _text(value: Any) -> str:
    """information_schema columns can come back as bytes on some servers."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _message(error: BaseException) -> str:
    """Driver errors carry the server text in ``msg``; str() adds the errno."""
    return getattr(error, "msg", None) or str(error)
