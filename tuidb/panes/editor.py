"""Query editor pane.

A plain multi-line text buffer driven by semantic commands, with undo/redo,
a register, search, and statement execution under the cursor.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from ..db.statements import split_statements, statement_at
from ..vim.commands import Command
from .effects import EditorSnapshot, PaneEffect

if TYPE_CHECKING:
    from .coordinator import PaneCoordinator

WORD_RE = re.compile(r"\w+|[^\w\s]+")
TAB_TEXT = "    "
UNDO_LIMIT = 200

Snapshot = tuple[list[str], tuple[int, int]]


class EditorPane:
    """Free-form SQL text buffer."""

    accepts_insert = True
    wants_insert = False

    def __init__(self, coordinator: PaneCoordinator) -> None:
        self._coordinator = coordinator
        self.lines: list[str] = [""]
        self.row = 0
        self.col = 0
        self._undo: list[Snapshot] = []
        self._redo: list[Snapshot] = []
        self.last_search = ""

    # ─────────────────────────────────────────────────────────────────
    # Buffer access
    # ─────────────────────────────────────────────────────────────────

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @property
    def cursor(self) -> tuple[int, int]:
        return (self.row, self.col)

    @property
    def offset(self) -> int:
        return self.offset_of(self.row, self.col)

    def offset_of(self, row: int, col: int) -> int:
        return sum(len(line) + 1 for line in self.lines[:row]) + col

    def position_of(self, offset: int) -> tuple[int, int]:
        offset = max(0, min(offset, len(self.text)))
        for row, line in enumerate(self.lines):
            if offset <= len(line):
                return (row, offset)
            offset -= len(line) + 1
        return (len(self.lines) - 1, len(self.lines[-1]))

    def set_text(self, text: str) -> None:
        self._checkpoint()
        self.lines = text.split("\n") or [""]
        self.row, self.col = 0, 0

    def clear(self) -> None:
        self.set_text("")

    def _line(self) -> str:
        return self.lines[self.row]

    def _max_col(self, insert: bool) -> int:
        length = len(self._line())
        return length if insert else max(0, length - 1)

    def _clamp(self, insert: bool = False) -> None:
        self.row = max(0, min(self.row, len(self.lines) - 1))
        self.col = max(0, min(self.col, self._max_col(insert)))

    def _replace(self, text: str, cursor_offset: int) -> None:
        self.lines = text.split("\n")
        self.row, self.col = self.position_of(cursor_offset)

    # ─────────────────────────────────────────────────────────────────
    # Undo
    # ─────────────────────────────────────────────────────────────────

    def _checkpoint(self) -> None:
        self._undo.append((list(self.lines), self.cursor))
        if len(self._undo) > UNDO_LIMIT:
            self._undo.pop(0)
        self._redo.clear()

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append((list(self.lines), self.cursor))
        self.lines, (self.row, self.col) = self._undo.pop()
        self._clamp()
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append((list(self.lines), self.cursor))
        self.lines, (self.row, self.col) = self._redo.pop()
        self._clamp()
        return True

    # ─────────────────────────────────────────────────────────────────
    # Dispatch
    # ─────────────────────────────────────────────────────────────────

    def dispatch(self, command: Command, insert: bool) -> PaneEffect:
        kind = command.kind
        handler = getattr(self, f"_cmd_{kind.name.lower()}", None)
        if handler is None:
            return PaneEffect.unhandled()
        effect = handler(command, insert)
        return effect if effect is not None else PaneEffect(action=kind.name.lower())

    # Motions

    def _cmd_move_left(self, command: Command, insert: bool) -> None:
        self.col = max(0, self.col - command.count)

    def _cmd_move_right(self, command: Command, insert: bool) -> None:
        self.col = min(self._max_col(insert), self.col + command.count)

    def _cmd_move_up(self, command: Command, insert: bool) -> None:
        self.row = max(0, self.row - command.count)
        self._clamp(insert)

    def _cmd_move_down(self, command: Command, insert: bool) -> None:
        self.row = min(len(self.lines) - 1, self.row + command.count)
        self._clamp(insert)

    def _cmd_goto_top(self, command: Command, insert: bool) -> None:
        self.row, self.col = 0, 0

    def _cmd_goto_bottom(self, command: Command, insert: bool) -> None:
        self.row, self.col = len(self.lines) - 1, 0

    def _cmd_line_start(self, command: Command, insert: bool) -> None:
        self.col = 0

    def _cmd_line_end(self, command: Command, insert: bool) -> None:
        self.col = self._max_col(insert)

    def _cmd_word_forward(self, command: Command, insert: bool) -> None:
        text, offset = self.text, self.offset
        for _ in range(command.count):
            match = next((m for m in WORD_RE.finditer(text) if m.start() > offset), None)
            offset = match.start() if match else len(text)
        self.row, self.col = self.position_of(offset)
        self._clamp(insert)

    def _cmd_word_backward(self, command: Command, insert: bool) -> None:
        text, offset = self.text, self.offset
        for _ in range(command.count):
            starts = [m.start() for m in WORD_RE.finditer(text) if m.start() < offset]
            offset = starts[-1] if starts else 0
        self.row, self.col = self.position_of(offset)

    def _cmd_activate(self, command: Command, insert: bool) -> None:
        self._cmd_move_down(command, insert)
        self.col = 0

    # Entering and leaving insert mode

    def _cmd_enter_insert(self, command: Command, insert: bool) -> None:
        self._checkpoint()

    def _cmd_enter_insert_after(self, command: Command, insert: bool) -> None:
        self._checkpoint()
        self.col = min(len(self._line()), self.col + 1)

    def _cmd_insert_line_start(self, command: Command, insert: bool) -> None:
        self._checkpoint()
        line = self._line()
        self.col = len(line) - len(line.lstrip())

    def _cmd_insert_line_end(self, command: Command, insert: bool) -> None:
        self._checkpoint()
        self.col = len(self._line())

    def _cmd_open_line_below(self, command: Command, insert: bool) -> None:
        self._checkpoint()
        self.lines.insert(self.row + 1, "")
        self.row, self.col = self.row + 1, 0

    def _cmd_open_line_above(self, command: Command, insert: bool) -> None:
        self._checkpoint()
        self.lines.insert(self.row, "")
        self.col = 0

    def _cmd_exit_insert(self, command: Command, insert: bool) -> None:
        # Cursor steps back onto the last typed character
        self.col = max(0, self.col - 1)
        self._clamp()

    def _cmd_escape(self, command: Command, insert: bool) -> None:
        self._clamp()

    # Typing

    def _insert_text(self, text: str) -> None:
        offset = self.offset
        full = self.text
        self._replace(full[:offset] + text + full[offset:], offset + len(text))

    def _cmd_insert_char(self, command: Command, insert: bool) -> None:
        self._insert_text(command.text)

    def _cmd_insert_newline(self, command: Command, insert: bool) -> None:
        self._insert_text("\n")

    def _cmd_insert_tab(self, command: Command, insert: bool) -> None:
        self._insert_text(TAB_TEXT)

    def _cmd_backspace(self, command: Command, insert: bool) -> None:
        offset = self.offset
        if offset == 0:
            return
        full = self.text
        self._replace(full[: offset - 1] + full[offset:], offset - 1)

    def _cmd_delete_char(self, command: Command, insert: bool) -> None:
        full, offset = self.text, self.offset
        if insert:
            if offset < len(full):
                self._replace(full[:offset] + full[offset + 1 :], offset)
            return
        line = self._line()
        if not line:
            return
        self._checkpoint()
        end = min(len(line), self.col + command.count)
        self._coordinator.yank(line[self.col : end])
        self.lines[self.row] = line[: self.col] + line[end:]
        self._clamp()

    # Line-wise operators

    def _cmd_delete(self, command: Command, insert: bool) -> PaneEffect:
        self._checkpoint()
        end = min(len(self.lines), self.row + command.count)
        removed = self.lines[self.row : end]
        del self.lines[self.row : end]
        if not self.lines:
            self.lines = [""]
        self._coordinator.yank("\n".join(removed) + "\n")
        self.col = 0
        self._clamp()
        return PaneEffect(action="delete", message=f"{len(removed)} line(s) deleted")

    def _cmd_yank(self, command: Command, insert: bool) -> PaneEffect:
        end = min(len(self.lines), self.row + command.count)
        yanked = self.lines[self.row : end]
        self._coordinator.yank("\n".join(yanked) + "\n")
        return PaneEffect(action="yank", message=f"{len(yanked)} line(s) yanked")

    def _cmd_paste(self, command: Command, insert: bool) -> PaneEffect | None:
        register = self._coordinator.engine.register
        if not register:
            return PaneEffect.warning("Nothing to paste")
        self._checkpoint()
        if register.endswith("\n"):
            new_lines = register[:-1].split("\n")
            self.lines[self.row + 1 : self.row + 1] = new_lines
            self.row, self.col = self.row + 1, 0
            return None
        at = self.offset + (1 if self._line() else 0)
        full = self.text
        self._replace(full[:at] + register + full[at:], at + len(register) - 1)
        return None

    def _cmd_undo(self, command: Command, insert: bool) -> PaneEffect | None:
        for _ in range(command.count):
            if not self.undo():
                return PaneEffect.warning("Already at oldest change")
        return None

    def _cmd_redo(self, command: Command, insert: bool) -> PaneEffect | None:
        for _ in range(command.count):
            if not self.redo():
                return PaneEffect.warning("Already at newest change")
        return None

    # Visual selection

    def _selection_offsets(self, command: Command) -> tuple[int, int] | None:
        if command.selection is None:
            return None
        start, end = command.selection
        length = len(self.text)
        return self.offset_of(*start), min(length, self.offset_of(*end) + 1)

    def _cmd_yank_selection(self, command: Command, insert: bool) -> PaneEffect | None:
        bounds = self._selection_offsets(command)
        if bounds is None:
            return None
        text = self.text[bounds[0] : bounds[1]]
        self._coordinator.yank(text)
        self.row, self.col = self.position_of(bounds[0])
        return PaneEffect(action="yank", message=f"{len(text)} characters yanked")

    def _cmd_delete_selection(self, command: Command, insert: bool) -> PaneEffect | None:
        bounds = self._selection_offsets(command)
        if bounds is None:
            return None
        self._checkpoint()
        full = self.text
        self._coordinator.yank(full[bounds[0] : bounds[1]])
        self._replace(full[: bounds[0]] + full[bounds[1] :], bounds[0])
        self._clamp()
        return None

    # Search

    def _find(self, needle: str, forward: bool) -> bool:
        if not needle:
            return False
        full, offset = self.text, self.offset
        if forward:
            found = full.find(needle, offset + 1)
            if found < 0:
                found = full.find(needle)
        else:
            found = full.rfind(needle, 0, offset)
            if found < 0:
                found = full.rfind(needle)
        if found < 0:
            return False
        self.row, self.col = self.position_of(found)
        return True

    def _cmd_submit_search(self, command: Command, insert: bool) -> PaneEffect | None:
        self.last_search = command.text
        if not self._find(command.text, forward=True):
            return PaneEffect.warning(f"Pattern not found: {command.text}")
        return None

    def _cmd_next_match(self, command: Command, insert: bool) -> PaneEffect | None:
        if not self._find(self.last_search, forward=True):
            return PaneEffect.warning("No previous search")
        return None

    def _cmd_prev_match(self, command: Command, insert: bool) -> PaneEffect | None:
        if not self._find(self.last_search, forward=False):
            return PaneEffect.warning("No previous search")
        return None

    # Execution

    def statement_under_cursor(self) -> str | None:
        span = statement_at(self.text, self.offset)
        return span.text if span else None

    def _cmd_execute_at_cursor(self, command: Command, insert: bool) -> PaneEffect:
        statement = self.statement_under_cursor()
        if statement is None:
            return PaneEffect.warning("No statement under cursor")
        return self._coordinator.execute_statements([statement])

    def _cmd_execute_all(self, command: Command, insert: bool) -> PaneEffect:
        statements = split_statements(self.text)
        if not statements:
            return PaneEffect.warning("Nothing to execute")
        return self._coordinator.execute_statements(statements)

    # ─────────────────────────────────────────────────────────────────
    # Render
    # ─────────────────────────────────────────────────────────────────

    def snapshot(self, selection: tuple[tuple[int, int], tuple[int, int]] | None = None) -> EditorSnapshot:
        span = statement_at(self.text, self.offset)
        return EditorSnapshot(
            lines=tuple(self.lines),
            cursor=self.cursor,
            selection=selection,
            statement_span=(span.start, span.end) if span else None,
        )
