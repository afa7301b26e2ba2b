"""Main Textual application for tuidb."""

from __future__ import annotations

import logging

from rich.console import Group
from rich.table import Table
from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import Key, Resize
from textual.widgets import Static

from .config import ConnectionConfig, ConnectionStore
from .panes.coordinator import PaneCoordinator
from .panes.effects import (
    BrowserSnapshot,
    EditorSnapshot,
    PaneEffect,
    PaneFocus,
    ScreenRequest,
    Severity,
    StatusMessage,
    ViewerSnapshot,
)
from .services.clipboard import ClipboardSink
from .services.jobs import TextualJobRunner
from .services.registry import ConnectionRegistry
from .ui.screens import ConfirmScreen, ConnectionScreen, MessageScreen
from .vim.command_line import HELP_TEXT
from .vim.keymap import get_vim_keymap

LOG = logging.getLogger(__name__)

COLUMN_WIDTH = 18

_MARKER_STYLES = {
    "new": "green",
    "deleted": "strike red",
    "dirty": "yellow",
}


class Workspace(Horizontal):
    """Holds the three panes and receives every key while no modal is open."""

    can_focus = True

    def on_key(self, event: Key) -> None:
        event.stop()
        event.prevent_default()
        app = self.app
        if isinstance(app, TuiDbApp):
            key = event.character if event.is_printable and event.character else event.key
            app.handle_key(key)


class TuiDbApp(App, inherit_bindings=False):
    """Vim-modal SQLite, MySQL and MariaDB client."""

    TITLE = "tuidb"
    ENABLE_COMMAND_PALETTE = False

    CSS = """
    Screen {
        background: $surface;
    }

    #main-container {
        width: 100%;
        height: 100%;
    }

    #workspace {
        height: 1fr;
    }

    #browser {
        width: 35;
        border: solid $panel;
        padding: 0 1;
    }

    #main-panel {
        width: 1fr;
    }

    #editor {
        height: 40%;
        border: solid $panel;
        padding: 0 1;
    }

    #viewer {
        height: 1fr;
        border: solid $panel;
    }

    .pane.focused {
        border: solid $primary;
        border-title-color: $primary;
    }

    #status-bar {
        height: 1;
        background: $surface-darken-1;
        padding: 0 1;
    }

    #command-line {
        height: 1;
        padding: 0 1;
    }
    """

    def __init__(
        self,
        coordinator: PaneCoordinator | None = None,
        startup: list[ConnectionConfig] | None = None,
        store: ConnectionStore | None = None,
    ):
        super().__init__()
        if store is None:
            store = ConnectionStore()
            store.load()
        self.coordinator = coordinator or PaneCoordinator(
            registry=ConnectionRegistry(),
            runner=TextualJobRunner(self),
            store=store,
            clipboard=ClipboardSink(self.copy_to_clipboard),
        )
        self._startup = list(startup or [])
        self._last_status: StatusMessage | None = None
        self._view_ready = False

    def compose(self) -> ComposeResult:
        with Vertical(id="main-container"):
            with Workspace(id="workspace"):
                yield Static(id="browser", classes="pane")
                with Vertical(id="main-panel"):
                    yield Static(id="editor", classes="pane")
                    yield Static(id="viewer", classes="pane")
            yield Static("", id="status-bar", markup=False)
            yield Static("", id="command-line", markup=False)

    def on_mount(self) -> None:
        self.coordinator.add_change_listener(self.refresh_view)
        self.coordinator.runner.set_change_callback(lambda pending: self.refresh_view())
        self._view_ready = True
        self.query_one(Workspace).focus()
        for config in self._startup:
            self.coordinator.open_connection(config, remember=True)
        self._update_viewport()
        self.refresh_view()

    def on_resize(self, event: Resize) -> None:
        self._update_viewport()
        self.refresh_view()

    def on_unmount(self) -> None:
        self.coordinator.shutdown()

    def _update_viewport(self) -> None:
        size = self.query_one("#viewer", Static).content_size
        # header, header rule and message line
        rows = max(1, size.height - 3)
        columns = max(1, (size.width - 6) // COLUMN_WIDTH)
        self.coordinator.viewer.set_viewport(rows, columns)

    # ─────────────────────────────────────────────────────────────────
    # Input
    # ─────────────────────────────────────────────────────────────────

    def handle_key(self, key: str) -> None:
        effect = self.coordinator.handle_key(key)
        self._apply_effect(effect)
        self.refresh_view()

    def _apply_effect(self, effect: PaneEffect) -> None:
        if effect.quit:
            self.exit()
            return
        if effect.action == "help":
            keys = "\n".join(f"{key:<10} {description}" for key, description in get_vim_keymap().describe())
            self.push_screen(MessageScreen("Help", f"{HELP_TEXT}\n\n{keys}"))
        elif effect.screen == ScreenRequest.CONNECTION_FORM:
            self._open_connection_form(effect.payload)
        elif effect.screen == ScreenRequest.CONFIRM_DELETE_PROFILE:
            self._confirm_delete(effect.payload)

    def _open_connection_form(self, config: ConnectionConfig | None) -> None:
        original_name = config.name if config is not None else None

        def on_result(result: ConnectionConfig | None) -> None:
            if result is not None:
                self.coordinator.save_profile(result, original_name)
            self.refresh_view()

        self.push_screen(ConnectionScreen(config, tester=self.coordinator.test_profile), on_result)

    def _confirm_delete(self, config: ConnectionConfig) -> None:
        def on_result(confirmed: bool | None) -> None:
            if confirmed:
                self.coordinator.delete_profile(config)
            self.refresh_view()

        self.push_screen(ConfirmScreen("Delete connection", f"Delete '{config.name}'?"), on_result)

    # ─────────────────────────────────────────────────────────────────
    # Render
    # ─────────────────────────────────────────────────────────────────

    def refresh_view(self) -> None:
        if not self._view_ready:
            return
        snapshot = self.coordinator.snapshot()
        panes = {
            PaneFocus.BROWSER: ("#browser", self._render_browser(snapshot.browser), snapshot.browser.title),
            PaneFocus.EDITOR: ("#editor", self._render_editor(snapshot.editor), "Query"),
            PaneFocus.VIEWER: ("#viewer", self._render_viewer(snapshot.viewer), self._viewer_title(snapshot.viewer)),
        }
        for focus, (selector, renderable, title) in panes.items():
            widget = self.query_one(selector, Static)
            widget.update(renderable)
            widget.border_title = title
            widget.set_class(focus == snapshot.focus, "focused")

        status = snapshot.status
        mode = f" {snapshot.mode.upper()} "
        busy = " [busy]" if snapshot.busy else ""
        pending = f" {snapshot.pending_keys}" if snapshot.pending_keys else ""
        line = Text.assemble((mode, "reverse bold"), pending, busy, "  ", (status.text, _status_style(status)))
        self.query_one("#status-bar", Static).update(line)
        self.query_one("#command-line", Static).update(snapshot.command_line)

        if status is not self._last_status and status.severity == Severity.ERROR and status.text:
            self.notify(status.text, severity="error")
        self._last_status = status

    def _render_browser(self, snapshot: BrowserSnapshot) -> Text:
        text = Text()
        if snapshot.filter_text:
            text.append(f"/{snapshot.filter_text}\n", style="italic")
        if not snapshot.items:
            empty = "No saved connections (C adds one)" if snapshot.level == "connections" else "(empty)"
            text.append(empty, style="dim")
            return text
        for index, item in enumerate(snapshot.items):
            style = "reverse" if index == snapshot.cursor else ""
            mark = "● " if item.connected else "  "
            text.append(mark, style="green")
            text.append(item.label, style=style)
            if item.detail and item.detail != item.label:
                text.append(f"  {item.detail}", style="dim")
            text.append("\n")
        return text

    def _render_editor(self, snapshot: EditorSnapshot) -> Text:
        text = Text()
        cursor_row, cursor_col = snapshot.cursor
        offset = 0
        for row, line in enumerate(snapshot.lines):
            start = len(text)
            text.append(line)
            if row == cursor_row and self.coordinator.focus == PaneFocus.EDITOR:
                if cursor_col >= len(line):
                    text.append(" ")
                text.stylize("reverse", start + cursor_col, start + cursor_col + 1)
            if snapshot.statement_span is not None:
                span_start, span_end = snapshot.statement_span
                lo = max(span_start, offset) - offset
                hi = min(span_end, offset + len(line)) - offset
                if lo < hi:
                    text.stylize("on grey15", start + lo, start + hi)
            text.append("\n")
            offset += len(line) + 1
        if snapshot.selection is not None:
            (start_row, start_col), (end_row, end_col) = snapshot.selection
            line_starts = [0]
            for line in snapshot.lines:
                line_starts.append(line_starts[-1] + len(line) + 1)
            lo = line_starts[start_row] + start_col
            hi = line_starts[end_row] + end_col + 1
            text.stylize("on blue", lo, hi)
        return text

    def _viewer_title(self, snapshot: ViewerSnapshot) -> str:
        tabs = "  ".join(
            f"{index}:{name.upper() if name == snapshot.tab else name}"
            for index, name in enumerate(snapshot.tabs, start=1)
        )
        title = f"{snapshot.title}  {tabs}" if tabs else snapshot.title
        if not snapshot.total_columns:
            return title
        more = "+" if snapshot.truncated else ""
        pending = f"  {snapshot.pending_changes} pending" if snapshot.pending_changes else ""
        row, col = snapshot.cursor
        if snapshot.tab != "Data":
            return f"{title}  ({row + 1}/{snapshot.total_rows}){pending}"
        return f"{title}  ({row + 1}/{snapshot.total_rows}{more}, col {col + 1}/{snapshot.total_columns}){pending}"

    def _render_viewer(self, snapshot: ViewerSnapshot) -> Group | Text:
        if not snapshot.columns:
            return Text(snapshot.message or "No results", style="dim")
        table = Table(expand=False, show_edge=False, pad_edge=False, header_style="bold")
        table.add_column("#", justify="right", style="dim", no_wrap=True)
        for name in snapshot.columns:
            table.add_column(name, max_width=COLUMN_WIDTH, no_wrap=True, overflow="ellipsis")
        cursor_row, cursor_col = snapshot.cursor
        for offset, row in enumerate(snapshot.rows):
            display_row = snapshot.row_offset + offset
            cells: list[Text] = []
            for index, value in enumerate(row.cells):
                style = _MARKER_STYLES.get(row.marker, "")
                if index in row.dirty_columns:
                    style = "bold yellow" if row.marker != "new" else "bold green"
                if display_row == cursor_row and snapshot.col_offset + index == cursor_col:
                    style = f"{style} reverse".strip()
                cells.append(Text(value, style=style))
            table.add_row(Text(row.label, style=_MARKER_STYLES.get(row.marker, "dim")), *cells)
        if snapshot.message:
            return Group(table, Text(snapshot.message, style="dim"))
        return table


def _status_style(status: StatusMessage) -> str:
    if status.severity == Severity.ERROR:
        return "bold red"
    if status.severity == Severity.WARNING:
        return "yellow"
    return ""
