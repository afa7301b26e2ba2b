"""Pending edits over a fetched result, and their translation to SQL.

The buffer never touches the fetched rows. It keeps sparse overlays:
replaced cells of existing rows, new rows in creation order, and existing
rows marked for deletion. Existing rows and new rows are indexed separately,
so a row can never be both.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..db.adapters.base import ColumnInfo, IndexInfo, QueryResult, Statement
from ..db.exceptions import CommitError, QueryError, ValidationError
from ..db.values import Value

if TYPE_CHECKING:
    from ..db.adapters.base import DatabaseAdapter
    from ..services.registry import LiveConnection

LOG = logging.getLogger(__name__)

Cell = tuple[int, int]


class ChangeKind(Enum):
    UPDATE = "update"
    DELETE = "delete"
    INSERT = "insert"


@dataclass(frozen=True)
class TableContext:
    """The table a result was fetched from."""

    table: str
    schema: str | None
    columns: tuple[ColumnInfo, ...]
    indexes: tuple[IndexInfo, ...] = ()

    @property
    def key_columns(self) -> list[str]:
        return [c.name for c in self.columns if c.is_primary_key]

    @property
    def has_primary_key(self) -> bool:
        return any(c.is_primary_key for c in self.columns)

    @property
    def display_name(self) -> str:
        return f"{self.schema}.{self.table}" if self.schema else self.table


@dataclass(frozen=True)
class PlannedStatement:
    """One statement of a commit and the row it writes."""

    kind: ChangeKind
    statement: Statement
    row: int | None = None
    new_index: int | None = None

    @property
    def unit(self) -> str:
        if self.row is not None:
            return f"row {self.row + 1}"
        return f"new row {(self.new_index or 0) + 1}"


class EditBuffer:
    """Sparse overlay of uncommitted changes on a QueryResult."""

    def __init__(self, result: QueryResult) -> None:
        self._result = result
        self._cells: dict[Cell, Value] = {}
        self._new_rows: list[list[Value]] = []
        self._new_touched: list[set[int]] = []
        self._deleted: set[int] = set()

    @property
    def result(self) -> QueryResult:
        return self._result

    @property
    def is_dirty(self) -> bool:
        return bool(self._cells or self._new_rows or self._deleted)

    @property
    def change_count(self) -> int:
        rows = {row for row, _ in self._cells} - self._deleted
        return len(rows) + len(self._new_rows) + len(self._deleted)

    def discard(self) -> None:
        """Drop every pending change."""
        self._cells.clear()
        self._new_rows.clear()
        self._new_touched.clear()
        self._deleted.clear()

    # ─────────────────────────────────────────────────────────────────
    # Existing rows
    # ─────────────────────────────────────────────────────────────────

    def _check_cell(self, row: int, col: int) -> None:
        if not (0 <= row < self._result.row_count and 0 <= col < self._result.column_count):
            raise ValidationError(f"No cell at row {row + 1}, column {col + 1}")

    def original(self, row: int, col: int) -> Value:
        return self._result.cell(row, col)

    def cell(self, row: int, col: int) -> Value:
        """Current value of a cell, pending edits applied."""
        return self._cells.get((row, col), self._result.cell(row, col))

    def set_cell(self, row: int, col: int, value: Value) -> None:
        """Replace a cell. Setting the original value back clears the edit."""
        self._check_cell(row, col)
        if value == self._result.cell(row, col):
            self._cells.pop((row, col), None)
        else:
            self._cells[(row, col)] = value

    def is_cell_dirty(self, row: int, col: int) -> bool:
        return (row, col) in self._cells

    def is_row_dirty(self, row: int) -> bool:
        return any(r == row for r, _ in self._cells)

    def dirty_cells(self) -> list[Cell]:
        return sorted(self._cells)

    def toggle_delete(self, row: int) -> bool:
        """Mark or unmark an existing row for deletion. Returns the new mark."""
        if not 0 <= row < self._result.row_count:
            raise ValidationError(f"No row {row + 1}")
        if row in self._deleted:
            self._deleted.discard(row)
            return False
        self._deleted.add(row)
        return True

    def is_deleted(self, row: int) -> bool:
        return row in self._deleted

    @property
    def deleted_rows(self) -> list[int]:
        return sorted(self._deleted)

    # ─────────────────────────────────────────────────────────────────
    # New rows
    # ─────────────────────────────────────────────────────────────────

    @property
    def new_row_count(self) -> int:
        return len(self._new_rows)

    def add_row(self) -> int:
        """Append a blank row. Returns its index in creation order."""
        self._new_rows.append([Value.null() for _ in self._result.columns])
        self._new_touched.append(set())
        return len(self._new_rows) - 1

    def new_row(self, index: int) -> list[Value]:
        return list(self._new_rows[index])

    def new_cell(self, index: int, col: int) -> Value:
        return self._new_rows[index][col]

    def set_new_cell(self, index: int, col: int, value: Value) -> None:
        if not 0 <= col < self._result.column_count:
            raise ValidationError(f"No column {col + 1}")
        self._new_rows[index][col] = value
        self._new_touched[index].add(col)

    def is_new_cell_set(self, index: int, col: int) -> bool:
        return col in self._new_touched[index]

    def remove_new_row(self, index: int) -> None:
        del self._new_rows[index]
        del self._new_touched[index]

    # ─────────────────────────────────────────────────────────────────
    # Commit
    # ─────────────────────────────────────────────────────────────────

    def _row_key(self, row: int, context: TableContext) -> tuple[list[str], list[Value], bool]:
        """Columns and original values identifying ``row``.

        Without a primary key the whole original row is the key.
        """
        names = list(self._result.columns)
        if context.has_primary_key:
            keys = [name for name in context.key_columns if name in names]
            if len(keys) == len(context.key_columns):
                return keys, [self.original(row, names.index(k)) for k in keys], False
        return names, [self.original(row, i) for i in range(len(names))], True

    def plan(self, context: TableContext, adapter: DatabaseAdapter) -> list[PlannedStatement]:
        """Statements that write every pending change.

        Order: updates by row, deletes by row, then inserts in creation order.
        Edits to rows marked for deletion are dropped.
        """
        names = self._result.columns
        planned: list[PlannedStatement] = []

        rows = sorted({row for row, _ in self._cells} - self._deleted)
        for row in rows:
            changes = [
                (names[col], self._cells[(row, col)])
                for col in range(len(names))
                if (row, col) in self._cells
            ]
            key_columns, key_values, single_row = self._row_key(row, context)
            statement = adapter.build_update(
                context.table, key_columns, key_values, changes, context.schema, single_row=single_row
            )
            planned.append(PlannedStatement(ChangeKind.UPDATE, statement, row=row))

        for row in sorted(self._deleted):
            key_columns, key_values, single_row = self._row_key(row, context)
            statement = adapter.build_delete(
                context.table, key_columns, key_values, context.schema, single_row=single_row
            )
            planned.append(PlannedStatement(ChangeKind.DELETE, statement, row=row))

        for index, values in enumerate(self._new_rows):
            touched = self._new_touched[index]
            statement = adapter.build_insert(
                context.table,
                [(names[col], values[col]) for col in range(len(names)) if col in touched],
                context.schema,
            )
            planned.append(PlannedStatement(ChangeKind.INSERT, statement, new_index=index))

        return planned


def apply_plan(handle: LiveConnection, planned: list[PlannedStatement]) -> int:
    """Execute planned statements in order on one connection.

    Stops at the first failure and raises CommitError naming the row.
    Statements already executed stay applied. Returns the number executed.
    """
    adapter = handle.adapter
    for done, item in enumerate(planned):
        try:
            affected = handle.run(lambda raw, s=item.statement: adapter.execute_statement(raw, s))
        except QueryError as e:
            LOG.warning("Commit stopped at %s after %d statements: %s", item.unit, done, e)
            raise CommitError(str(e), item.row, item.statement.sql, unit=item.unit) from e
        if item.kind is not ChangeKind.INSERT and affected == 0:
            LOG.warning("Commit stopped at %s: no row matched", item.unit)
            raise CommitError("row no longer matches", item.row, item.statement.sql, unit=item.unit)
    return len(planned)
