"""What the coordinator hands back to the UI.

PaneEffect is the outcome of one dispatched command. The snapshot types are
the read-only render contract: the UI draws exclusively from them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PaneFocus(Enum):
    """Which pane receives keys."""

    BROWSER = "browser"
    EDITOR = "editor"
    VIEWER = "viewer"


FOCUS_ORDER = (PaneFocus.BROWSER, PaneFocus.EDITOR, PaneFocus.VIEWER)


class Severity(str, Enum):
    """Matches the severities understood by Textual's notify()."""

    INFORMATION = "information"
    WARNING = "warning"
    ERROR = "error"


class ScreenRequest(Enum):
    """Modal screens a command can ask the UI to open."""

    CONNECTION_FORM = "connection_form"
    CONFIRM_DELETE_PROFILE = "confirm_delete_profile"


@dataclass
class PaneEffect:
    """Outcome of dispatching one command."""

    action: str = ""
    message: str = ""
    severity: Severity = Severity.INFORMATION
    quit: bool = False
    handled: bool = True
    screen: ScreenRequest | None = None
    payload: Any = None

    @classmethod
    def error(cls, message: str, action: str = "error") -> PaneEffect:
        return cls(action=action, message=message, severity=Severity.ERROR)

    @classmethod
    def warning(cls, message: str, action: str = "warning") -> PaneEffect:
        return cls(action=action, message=message, severity=Severity.WARNING)

    @classmethod
    def unhandled(cls) -> PaneEffect:
        return cls(handled=False)


@dataclass(frozen=True)
class StatusMessage:
    text: str = ""
    severity: Severity = Severity.INFORMATION


# ─────────────────────────────────────────────────────────────────
# Render snapshots
# ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class BrowserItem:
    label: str
    detail: str = ""
    connected: bool = False


@dataclass(frozen=True)
class BrowserSnapshot:
    level: str
    title: str
    items: tuple[BrowserItem, ...]
    cursor: int
    filter_text: str = ""


@dataclass(frozen=True)
class EditorSnapshot:
    lines: tuple[str, ...]
    cursor: tuple[int, int]
    selection: tuple[tuple[int, int], tuple[int, int]] | None = None
    statement_span: tuple[int, int] | None = None


@dataclass(frozen=True)
class ViewerRow:
    label: str
    cells: tuple[str, ...]
    marker: str = ""  # "new", "deleted", "dirty" or ""
    dirty_columns: frozenset[int] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ViewerSnapshot:
    title: str
    columns: tuple[str, ...]
    rows: tuple[ViewerRow, ...]
    cursor: tuple[int, int]
    row_offset: int
    col_offset: int
    total_rows: int
    total_columns: int
    editing_text: str | None = None
    truncated: bool = False
    pending_changes: int = 0
    message: str = ""
    tab: str = "Data"
    tabs: tuple[str, ...] = ()


@dataclass(frozen=True)
class Snapshot:
    mode: str
    pending_keys: str
    command_line: str
    focus: PaneFocus
    browser: BrowserSnapshot
    editor: EditorSnapshot
    viewer: ViewerSnapshot
    status: StatusMessage
    busy: bool
