from .adapters import (
    ColumnInfo,
    DatabaseAdapter,
    IndexInfo,
    NonQueryResult,
    QueryOutcome,
    QueryResult,
    Statement,
    get_adapter,
)
from .values import Value, ValueKind

__all__ = [
    "ColumnInfo",
    "DatabaseAdapter",
    "IndexInfo",
    "NonQueryResult",
    "QueryOutcome",
    "QueryResult",
    "Statement",
    "Value",
    "ValueKind",
    "get_adapter",
]
