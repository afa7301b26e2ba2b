from .base import (
    DEFAULT_FETCH_LIMIT,
    ColumnInfo,
    DatabaseAdapter,
    IndexInfo,
    NonQueryResult,
    QueryOutcome,
    QueryResult,
    Statement,
)
from .mariadb import MariaDBAdapter
from .mysql import MySQLAdapter
from .sqlite import SQLiteAdapter

__all__ = [
    "DEFAULT_FETCH_LIMIT",
    "ColumnInfo",
    "DatabaseAdapter",
    "IndexInfo",
    "NonQueryResult",
    "QueryOutcome",
    "QueryResult",
    "Statement",
    "MariaDBAdapter",
    "MySQLAdapter",
    "SQLiteAdapter",
    "get_adapter",
]


def get_adapter(db_type: str) -> DatabaseAdapter:
    from ..providers import get_adapter as _get_adapter

    return _get_adapter(db_type)
