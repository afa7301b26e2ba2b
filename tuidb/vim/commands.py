"""Semantic commands emitted by the vim engine.

A command says what the user wants, independent of which pane has focus.
The pane coordinator decides what each command means for the focused pane.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from .state import Position


class CommandKind(Enum):
    """Pane-independent user intents."""

    # Motions
    MOVE_LEFT = auto()
    MOVE_RIGHT = auto()
    MOVE_UP = auto()
    MOVE_DOWN = auto()
    GOTO_TOP = auto()
    GOTO_BOTTOM = auto()
    LINE_START = auto()
    LINE_END = auto()
    WORD_FORWARD = auto()
    WORD_BACKWARD = auto()

    # Mode entries and exits
    ENTER_INSERT = auto()
    ENTER_INSERT_AFTER = auto()
    INSERT_LINE_START = auto()
    INSERT_LINE_END = auto()
    OPEN_LINE_BELOW = auto()
    OPEN_LINE_ABOVE = auto()
    ENTER_VISUAL = auto()
    ENTER_COMMAND_LINE = auto()
    ESCAPE = auto()
    EXIT_INSERT = auto()
    EXIT_VISUAL = auto()
    CANCEL_COMMAND_LINE = auto()
    SUBMIT_COMMAND_LINE = auto()

    # Text editing
    INSERT_CHAR = auto()
    INSERT_NEWLINE = auto()
    INSERT_TAB = auto()
    BACKSPACE = auto()
    DELETE_CHAR = auto()
    DELETE = auto()
    YANK = auto()
    PASTE = auto()
    UNDO = auto()
    REDO = auto()
    DELETE_SELECTION = auto()
    YANK_SELECTION = auto()

    # Search
    SUBMIT_SEARCH = auto()
    NEXT_MATCH = auto()
    PREV_MATCH = auto()

    # Panes and application
    NEXT_PANE = auto()
    PREV_PANE = auto()
    ACTIVATE = auto()
    QUIT = auto()

    # Data
    EXECUTE_AT_CURSOR = auto()
    EXECUTE_ALL = auto()
    COMMIT = auto()
    NEW_ROW = auto()
    DISCARD_CHANGES = auto()
    EDIT_CELL = auto()
    CLOSE_CONNECTION = auto()
    CONNECTION_MANAGER = auto()
    REFRESH = auto()


MOTIONS = frozenset(
    {
        CommandKind.MOVE_LEFT,
        CommandKind.MOVE_RIGHT,
        CommandKind.MOVE_UP,
        CommandKind.MOVE_DOWN,
        CommandKind.GOTO_TOP,
        CommandKind.GOTO_BOTTOM,
        CommandKind.LINE_START,
        CommandKind.LINE_END,
        CommandKind.WORD_FORWARD,
        CommandKind.WORD_BACKWARD,
    }
)

INSERT_ENTRIES = frozenset(
    {
        CommandKind.ENTER_INSERT,
        CommandKind.ENTER_INSERT_AFTER,
        CommandKind.INSERT_LINE_START,
        CommandKind.INSERT_LINE_END,
        CommandKind.OPEN_LINE_BELOW,
        CommandKind.OPEN_LINE_ABOVE,
    }
)


@dataclass(frozen=True)
class Command:
    """One semantic command.

    ``count`` is the numeric prefix (1 when none was typed), ``text`` carries
    typed characters or the submitted command line, ``selection`` the
    inclusive visual range.
    """

    kind: CommandKind
    count: int = 1
    text: str = ""
    selection: tuple[Position, Position] | None = None

    @property
    def is_motion(self) -> bool:
        return self.kind in MOTIONS
