"""Result viewer pane.

Shows a QueryResult through an EditBuffer, keeps the row/column cursor in
view with minimal scrolling, and edits cells in place when the result was
fetched from a table. Tables opened from the browser also get read-only
Schema and Indexes tabs built from their column and index metadata.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from ..db.values import Value, ValueKind
from ..editing.edit_buffer import EditBuffer, TableContext
from ..vim.commands import Command, CommandKind as K
from .effects import PaneEffect, ViewerRow, ViewerSnapshot

if TYPE_CHECKING:
    from ..db.adapters.base import QueryResult
    from ..services.registry import LiveConnection
    from .coordinator import PaneCoordinator

DEFAULT_VISIBLE_ROWS = 20
DEFAULT_VISIBLE_COLUMNS = 6


class ViewerTab(Enum):
    """What the viewer shows for a table opened from the browser."""

    DATA = "Data"
    SCHEMA = "Schema"
    INDEXES = "Indexes"


TAB_KEYS = {"1": ViewerTab.DATA, "2": ViewerTab.SCHEMA, "3": ViewerTab.INDEXES}

SCHEMA_HEADERS = ("Column", "Type", "Null", "Default", "Key")
INDEX_HEADERS = ("Index", "Columns", "Unique")


class ViewerPane:
    """Grid over the current result.

    Display rows list uncommitted new rows first, newest on top, followed by
    the fetched rows.
    """

    def __init__(self, coordinator: PaneCoordinator) -> None:
        self._coordinator = coordinator
        self.result: QueryResult | None = None
        self.buffer: EditBuffer | None = None
        self.context: TableContext | None = None
        self.handle: LiveConnection | None = None
        self.row = 0
        self.col = 0
        self.row_offset = 0
        self.col_offset = 0
        self.visible_rows = DEFAULT_VISIBLE_ROWS
        self.visible_columns = DEFAULT_VISIBLE_COLUMNS
        self.editing: tuple[int, int] | None = None
        self.edit_text = ""
        self.last_search = ""
        self.message = ""
        self.tab = ViewerTab.DATA
        self.structure_row = 0
        self.structure_offset = 0

    @property
    def accepts_insert(self) -> bool:
        return self.editing is not None

    @property
    def wants_insert(self) -> bool:
        return self.editing is not None

    @property
    def cursor(self) -> tuple[int, int]:
        if self.tab is not ViewerTab.DATA:
            return (self.structure_row, 0)
        return (self.row, self.col)

    @property
    def column_count(self) -> int:
        return self.result.column_count if self.result else 0

    @property
    def row_count(self) -> int:
        if self.result is None or self.buffer is None:
            return 0
        return self.buffer.new_row_count + self.result.row_count

    # ─────────────────────────────────────────────────────────────────
    # Loading
    # ─────────────────────────────────────────────────────────────────

    def show_result(
        self,
        result: QueryResult,
        context: TableContext | None = None,
        handle: LiveConnection | None = None,
        message: str = "",
    ) -> None:
        """Replace the grid. Table-backed results keep their context for edits."""
        keep_position = context is not None and self.context is not None and context.table == self.context.table
        self.result = result
        self.buffer = EditBuffer(result)
        self.context = context
        self.handle = handle
        self.editing = None
        self.edit_text = ""
        self.message = message
        if not keep_position:
            self.row = self.col = self.row_offset = self.col_offset = 0
            self.tab = ViewerTab.DATA
            self.structure_row = self.structure_offset = 0
        self._clamp()

    def show_message(self, message: str) -> None:
        """Clear the grid and show a one-line outcome (e.g. rows affected)."""
        self.result = None
        self.buffer = None
        self.context = None
        self.handle = None
        self.editing = None
        self.message = message
        self.row = self.col = self.row_offset = self.col_offset = 0
        self.tab = ViewerTab.DATA

    def evict(self, handle: LiveConnection) -> None:
        """Drop table state bound to a closed connection."""
        if self.handle is handle:
            self.handle = None
            self.context = None
            self.editing = None
            self.tab = ViewerTab.DATA

    def set_viewport(self, visible_rows: int, visible_columns: int) -> None:
        self.visible_rows = max(1, visible_rows)
        self.visible_columns = max(1, visible_columns)
        self._scroll_into_view()

    # ─────────────────────────────────────────────────────────────────
    # Cursor and scrolling
    # ─────────────────────────────────────────────────────────────────

    def _clamp(self) -> None:
        self.row = max(0, min(self.row, self.row_count - 1))
        self.col = max(0, min(self.col, self.column_count - 1))
        self._scroll_into_view()

    def _scroll_into_view(self) -> None:
        if self.col < self.col_offset:
            self.col_offset = self.col
        elif self.col >= self.col_offset + self.visible_columns:
            self.col_offset = self.col - self.visible_columns + 1
        if self.row < self.row_offset:
            self.row_offset = self.row
        elif self.row >= self.row_offset + self.visible_rows:
            self.row_offset = self.row - self.visible_rows + 1

    def move_to(self, row: int, col: int) -> None:
        self.row, self.col = row, col
        self._clamp()

    def locate(self, display_row: int) -> tuple[bool, int]:
        """(is_new, index) of a display row."""
        assert self.buffer is not None
        new_count = self.buffer.new_row_count
        if display_row < new_count:
            return True, new_count - 1 - display_row
        return False, display_row - new_count

    def cell_value(self, display_row: int, col: int) -> Value:
        assert self.buffer is not None
        is_new, index = self.locate(display_row)
        if is_new:
            return self.buffer.new_cell(index, col)
        return self.buffer.cell(index, col)

    # ─────────────────────────────────────────────────────────────────
    # Dispatch
    # ─────────────────────────────────────────────────────────────────

    def dispatch(self, command: Command, insert: bool) -> PaneEffect:
        if self.editing is not None:
            return self._dispatch_editing(command)
        if self.tab is not ViewerTab.DATA:
            return self._dispatch_structure(command)

        kind = command.kind
        count = command.count
        if kind in (K.MOVE_LEFT, K.WORD_BACKWARD):
            self.move_to(self.row, self.col - count)
        elif kind in (K.MOVE_RIGHT, K.WORD_FORWARD):
            self.move_to(self.row, self.col + count)
        elif kind == K.MOVE_UP:
            self.move_to(self.row - count, self.col)
        elif kind == K.MOVE_DOWN:
            self.move_to(self.row + count, self.col)
        elif kind == K.GOTO_TOP:
            self.move_to(0, self.col)
        elif kind == K.GOTO_BOTTOM:
            self.move_to(self.row_count - 1, self.col)
        elif kind == K.LINE_START:
            self.move_to(self.row, 0)
        elif kind == K.LINE_END:
            self.move_to(self.row, self.column_count - 1)
        elif kind in (K.EDIT_CELL, K.ENTER_INSERT, K.ENTER_INSERT_AFTER):
            return self.start_edit()
        elif kind == K.NEW_ROW:
            return self.new_row()
        elif kind in (K.DELETE, K.DELETE_CHAR):
            return self.toggle_delete()
        elif kind == K.DELETE_SELECTION:
            return self._delete_selection(command)
        elif kind == K.YANK:
            return self._yank_cell()
        elif kind == K.YANK_SELECTION:
            return self._yank_selection(command)
        elif kind == K.PASTE:
            return self._paste()
        elif kind == K.COMMIT:
            return self._coordinator.commit_edits()
        elif kind == K.DISCARD_CHANGES:
            return self.discard()
        elif kind == K.REFRESH:
            return self._refresh()
        elif kind == K.SUBMIT_SEARCH:
            self.last_search = command.text
            return self._find(forward=True)
        elif kind == K.NEXT_MATCH:
            return self._find(forward=True)
        elif kind == K.PREV_MATCH:
            return self._find(forward=False)
        elif kind in (K.ESCAPE, K.EXIT_VISUAL, K.ENTER_VISUAL):
            pass
        else:
            return PaneEffect.unhandled()
        return PaneEffect(action=kind.name.lower())

    # ─────────────────────────────────────────────────────────────────
    # Structure tabs
    # ─────────────────────────────────────────────────────────────────

    def switch_tab(self, tab: ViewerTab) -> PaneEffect:
        if tab is not ViewerTab.DATA and self.context is None:
            return PaneEffect.warning("Schema and indexes are shown for tables opened from the browser")
        if tab is not self.tab:
            self.tab = tab
            self.structure_row = self.structure_offset = 0
        return PaneEffect(action="tab")

    def structure_rows(self) -> list[tuple[str, ...]]:
        """Rows of the Schema or Indexes tab."""
        if self.context is None:
            return []
        if self.tab is ViewerTab.SCHEMA:
            return [
                (
                    column.name,
                    column.data_type,
                    "YES" if column.nullable else "NO",
                    "" if column.default is None else column.default,
                    "PK" if column.is_primary_key else "",
                )
                for column in self.context.columns
            ]
        if self.tab is ViewerTab.INDEXES:
            return [
                (index.name, ", ".join(index.columns), "YES" if index.is_unique else "NO")
                for index in self.context.indexes
            ]
        return []

    def _move_structure(self, row: int) -> None:
        last = len(self.structure_rows()) - 1
        self.structure_row = max(0, min(row, last))
        if self.structure_row < self.structure_offset:
            self.structure_offset = self.structure_row
        elif self.structure_row >= self.structure_offset + self.visible_rows:
            self.structure_offset = self.structure_row - self.visible_rows + 1

    def _dispatch_structure(self, command: Command) -> PaneEffect:
        kind = command.kind
        if kind == K.MOVE_UP:
            self._move_structure(self.structure_row - command.count)
        elif kind == K.MOVE_DOWN:
            self._move_structure(self.structure_row + command.count)
        elif kind == K.GOTO_TOP:
            self._move_structure(0)
        elif kind == K.GOTO_BOTTOM:
            self._move_structure(len(self.structure_rows()) - 1)
        elif kind == K.YANK:
            rows = self.structure_rows()
            if not rows:
                return PaneEffect.warning("Nothing to copy")
            self._coordinator.yank("\t".join(rows[self.structure_row]))
            return PaneEffect(action="yank", message="Row copied")
        elif kind == K.COMMIT:
            return self._coordinator.commit_edits()
        elif kind == K.DISCARD_CHANGES:
            return self.discard()
        elif kind == K.REFRESH:
            return self._refresh()
        elif kind in (
            K.EDIT_CELL,
            K.ENTER_INSERT,
            K.ENTER_INSERT_AFTER,
            K.NEW_ROW,
            K.DELETE,
            K.DELETE_CHAR,
            K.DELETE_SELECTION,
            K.PASTE,
        ):
            return PaneEffect.warning(f"{self.tab.value} is read-only (1 shows the data)")
        elif kind in (K.ESCAPE, K.EXIT_VISUAL, K.ENTER_VISUAL):
            pass
        else:
            return PaneEffect.unhandled()
        return PaneEffect(action=kind.name.lower())

    def _structure_snapshot(self) -> ViewerSnapshot:
        assert self.context is not None
        rows = self.structure_rows()
        headers = SCHEMA_HEADERS if self.tab is ViewerTab.SCHEMA else INDEX_HEADERS
        window = rows[self.structure_offset : self.structure_offset + self.visible_rows]
        empty = "No indexes" if self.tab is ViewerTab.INDEXES else "No columns"
        return ViewerSnapshot(
            title=self.context.display_name,
            columns=headers,
            rows=tuple(
                ViewerRow(label=str(self.structure_offset + offset + 1), cells=row)
                for offset, row in enumerate(window)
            ),
            cursor=(self.structure_row, 0),
            row_offset=self.structure_offset,
            col_offset=0,
            total_rows=len(rows),
            total_columns=len(headers),
            pending_changes=self.buffer.change_count if self.buffer else 0,
            message="" if rows else empty,
            tab=self.tab.value,
            tabs=tuple(tab.value for tab in ViewerTab),
        )

    # ─────────────────────────────────────────────────────────────────
    # Cell editing
    # ─────────────────────────────────────────────────────────────────

    def _check_editable(self) -> PaneEffect | None:
        if self.result is None or self.buffer is None:
            return PaneEffect.error("Nothing to edit")
        if self.context is None:
            return PaneEffect.error("Only tables opened from the browser can be edited")
        if self.handle is None or self.handle.closed:
            return PaneEffect.error("The connection for this table is closed")
        return None

    def start_edit(self) -> PaneEffect:
        rejected = self._check_editable()
        if rejected is not None:
            return rejected
        if self.row_count == 0 or self.column_count == 0:
            return PaneEffect.warning("No cell to edit (Ctrl+N adds a row)")
        self.editing = (self.row, self.col)
        is_new, index = self.locate(self.row)
        if is_new and not self.buffer.is_new_cell_set(index, self.col):
            self.edit_text = ""
        else:
            self.edit_text = self.cell_value(self.row, self.col).edit_text()
        return PaneEffect(action="edit_cell")

    def new_row(self) -> PaneEffect:
        rejected = self._check_editable()
        if rejected is not None:
            return rejected
        assert self.buffer is not None
        self.buffer.add_row()
        self.move_to(0, 0)
        return self.start_edit()

    def _column_kind(self, col: int) -> ValueKind:
        if self.context is not None and self.result is not None:
            name = self.result.columns[col]
            for info in self.context.columns:
                if info.name == name:
                    return info.kind
        return ValueKind.TEXT

    def save_edit(self) -> None:
        """Write the edited text into the buffer and leave cell edit."""
        if self.editing is None or self.buffer is None:
            self.editing = None
            return
        row, col = self.editing
        is_new, index = self.locate(row)
        if is_new and not self.edit_text and not self.buffer.is_new_cell_set(index, col):
            # left blank: the column keeps its default
            self.editing = None
            return
        if is_new:
            self.buffer.set_new_cell(index, col, Value.from_input(self.edit_text, self._column_kind(col)))
        elif self.edit_text == self.buffer.original(index, col).edit_text():
            # unchanged text keeps the fetched value and its kind
            self.buffer.set_cell(index, col, self.buffer.original(index, col))
        elif self.edit_text != self.buffer.cell(index, col).edit_text():
            self.buffer.set_cell(index, col, Value.from_input(self.edit_text, self._column_kind(col)))
        self.editing = None
        self.edit_text = ""

    def _dispatch_editing(self, command: Command) -> PaneEffect:
        kind = command.kind
        if kind == K.INSERT_CHAR:
            self.edit_text += command.text
        elif kind == K.BACKSPACE:
            self.edit_text = self.edit_text[:-1]
        elif kind in (K.EXIT_INSERT, K.INSERT_NEWLINE, K.ESCAPE):
            self.save_edit()
            return PaneEffect(action="cell_saved")
        elif kind in (K.MOVE_LEFT, K.MOVE_RIGHT, K.MOVE_UP, K.MOVE_DOWN, K.INSERT_TAB):
            self.save_edit()
            dr = {K.MOVE_UP: -1, K.MOVE_DOWN: 1}.get(kind, 0)
            dc = {K.MOVE_LEFT: -1, K.MOVE_RIGHT: 1, K.INSERT_TAB: 1}.get(kind, 0)
            self.move_to(self.row + dr, self.col + dc)
            return self.start_edit()
        elif kind == K.COMMIT:
            self.save_edit()
            return self._coordinator.commit_edits()
        elif kind == K.DISCARD_CHANGES:
            self.editing = None
            return self.discard()
        elif kind == K.NEW_ROW:
            self.save_edit()
            return self.new_row()
        else:
            return PaneEffect.unhandled()
        return PaneEffect(action="edit_text")

    # ─────────────────────────────────────────────────────────────────
    # Row operations
    # ─────────────────────────────────────────────────────────────────

    def toggle_delete(self) -> PaneEffect:
        rejected = self._check_editable()
        if rejected is not None:
            return rejected
        if self.row_count == 0:
            return PaneEffect.warning("No row to delete")
        assert self.buffer is not None
        is_new, index = self.locate(self.row)
        if is_new:
            self.buffer.remove_new_row(index)
            self._clamp()
            return PaneEffect(action="delete", message="New row removed")
        marked = self.buffer.toggle_delete(index)
        return PaneEffect(action="delete", message="Row marked for deletion" if marked else "Deletion undone")

    def _delete_selection(self, command: Command) -> PaneEffect:
        rejected = self._check_editable()
        if rejected is not None or command.selection is None:
            return rejected or PaneEffect()
        assert self.buffer is not None
        (r1, _), (r2, _) = command.selection
        marked = 0
        for display_row in range(min(r1, r2), max(r1, r2) + 1):
            is_new, index = self.locate(display_row)
            if not is_new and not self.buffer.is_deleted(index):
                self.buffer.toggle_delete(index)
                marked += 1
        return PaneEffect(action="delete", message=f"{marked} row(s) marked for deletion")

    def discard(self) -> PaneEffect:
        if self.buffer is None or not self.buffer.is_dirty:
            return PaneEffect(action="discard", message="No pending changes")
        self.buffer.discard()
        self._clamp()
        return PaneEffect(action="discard", message="Pending changes discarded")

    def _refresh(self) -> PaneEffect:
        if self.context is None or self.handle is None:
            return PaneEffect.warning("Only table results can be refreshed")
        if self.buffer is not None and self.buffer.is_dirty:
            return PaneEffect.warning("Commit (Ctrl+S) or discard (Ctrl+D) pending changes first")
        return self._coordinator.load_table(self.handle, self.context.schema, self.context.table)

    # ─────────────────────────────────────────────────────────────────
    # Clipboard
    # ─────────────────────────────────────────────────────────────────

    def _yank_cell(self) -> PaneEffect:
        if self.row_count == 0 or self.column_count == 0:
            return PaneEffect.warning("Nothing to copy")
        text = self.cell_value(self.row, self.col).display()
        self._coordinator.yank(text)
        return PaneEffect(action="yank", message="Cell copied")

    def _yank_selection(self, command: Command) -> PaneEffect:
        if command.selection is None or self.row_count == 0:
            return PaneEffect.warning("Nothing to copy")
        (r1, c1), (r2, c2) = command.selection
        rows = range(max(0, min(r1, r2)), min(self.row_count, max(r1, r2) + 1))
        cols = range(max(0, min(c1, c2)), min(self.column_count, max(c1, c2) + 1))
        text = "\n".join("\t".join(self.cell_value(r, c).display() for c in cols) for r in rows)
        self._coordinator.yank(text)
        return PaneEffect(action="yank", message=f"{len(rows)}x{len(cols)} cells copied")

    def _paste(self) -> PaneEffect:
        rejected = self._check_editable()
        if rejected is not None:
            return rejected
        register = self._coordinator.engine.register.rstrip("\n")
        if self.row_count == 0:
            return PaneEffect.warning("No cell to paste into")
        self.editing = (self.row, self.col)
        self.edit_text = register
        self.save_edit()
        return PaneEffect(action="paste")

    # ─────────────────────────────────────────────────────────────────
    # Search
    # ─────────────────────────────────────────────────────────────────

    def _find(self, forward: bool) -> PaneEffect:
        needle = self.last_search.lower()
        if not needle or self.row_count == 0:
            return PaneEffect.warning("No previous search")
        width = self.column_count
        total = self.row_count * width
        start = self.row * width + self.col
        step = 1 if forward else -1
        for i in range(1, total + 1):
            pos = (start + step * i) % total
            row, col = divmod(pos, width)
            if needle in self.cell_value(row, col).display().lower():
                self.move_to(row, col)
                return PaneEffect(action="search")
        return PaneEffect.warning(f"Pattern not found: {self.last_search}")

    # ─────────────────────────────────────────────────────────────────
    # Render
    # ─────────────────────────────────────────────────────────────────

    def snapshot(self) -> ViewerSnapshot:
        if self.result is None or self.buffer is None:
            return ViewerSnapshot(
                title="Results",
                columns=(),
                rows=(),
                cursor=(0, 0),
                row_offset=0,
                col_offset=0,
                total_rows=0,
                total_columns=0,
                message=self.message,
            )
        if self.tab is not ViewerTab.DATA and self.context is not None:
            return self._structure_snapshot()
        col_end = min(self.column_count, self.col_offset + self.visible_columns)
        row_end = min(self.row_count, self.row_offset + self.visible_rows)
        cols = range(self.col_offset, col_end)
        rows: list[ViewerRow] = []
        for display_row in range(self.row_offset, row_end):
            is_new, index = self.locate(display_row)
            cells = []
            for c in cols:
                if (display_row, c) == self.editing:
                    cells.append(self.edit_text)
                elif is_new and not self.buffer.is_new_cell_set(index, c):
                    cells.append("")
                else:
                    cells.append(self.cell_value(display_row, c).display())
            if is_new:
                marker, label = "new", "+"
                dirty = frozenset(c - self.col_offset for c in cols if self.buffer.is_new_cell_set(index, c))
            else:
                deleted = self.buffer.is_deleted(index)
                dirty = frozenset(c - self.col_offset for c in cols if self.buffer.is_cell_dirty(index, c))
                marker = "deleted" if deleted else ("dirty" if self.buffer.is_row_dirty(index) else "")
                label = str(index + 1)
            rows.append(ViewerRow(label=label, cells=tuple(cells), marker=marker, dirty_columns=dirty))
        title = self.context.display_name if self.context else "Results"
        return ViewerSnapshot(
            title=title,
            columns=tuple(self.result.columns[self.col_offset : col_end]),
            rows=tuple(rows),
            cursor=(self.row, self.col),
            row_offset=self.row_offset,
            col_offset=self.col_offset,
            total_rows=self.row_count,
            total_columns=self.column_count,
            editing_text=self.edit_text if self.editing is not None else None,
            truncated=self.result.truncated,
            pending_changes=self.buffer.change_count,
            message=self.message,
            tabs=tuple(tab.value for tab in ViewerTab) if self.context else (),
        )
