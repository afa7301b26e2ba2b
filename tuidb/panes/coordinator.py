"""Pane coordinator.

Routes each key through the vim engine to the focused pane, runs backend
work as jobs, and keeps the status line. The UI layer only feeds keys in and
draws :meth:`PaneCoordinator.snapshot`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..config import ConnectionConfig, ConnectionStore, config_for_file, parse_dsn
from ..db.adapters.base import DEFAULT_FETCH_LIMIT, NonQueryResult, QueryOutcome, QueryResult
from ..db.exceptions import (
    CommitError,
    ConnectError,
    DuplicateConnectionError,
    QueryError,
    TuiDbError,
)
from ..db.statements import is_schema_change
from ..editing.edit_buffer import TableContext, apply_plan
from ..services.clipboard import ClipboardSink
from ..services.jobs import Job, JobRunner, SyncJobRunner
from ..services.registry import ConnectionRegistry, LiveConnection
from ..vim.command_line import CommandAction, parse_command_line
from ..vim.commands import Command, CommandKind as K
from ..vim.engine import VimEngine
from ..vim.state import VimMode
from .browser import BrowserPane
from .editor import EditorPane
from .effects import (
    FOCUS_ORDER,
    PaneEffect,
    PaneFocus,
    ScreenRequest,
    Severity,
    Snapshot,
    StatusMessage,
)
from .viewer import TAB_KEYS, ViewerPane

LOG = logging.getLogger(__name__)


@dataclass
class ExecutionReport:
    """Outcome of running one or more editor statements in order."""

    total: int
    executed: int = 0
    last: QueryOutcome | None = None
    failed_index: int | None = None
    error: QueryError | None = None
    schema_changed: bool = False
    current_schema: str | None = None
    elapsed_ms: float = 0.0


class PaneCoordinator:
    """Owns the three panes and everything they share."""

    def __init__(
        self,
        registry: ConnectionRegistry | None = None,
        runner: JobRunner | None = None,
        store: ConnectionStore | None = None,
        clipboard: ClipboardSink | None = None,
        engine: VimEngine | None = None,
        fetch_limit: int = DEFAULT_FETCH_LIMIT,
    ) -> None:
        self.registry = registry or ConnectionRegistry()
        self.runner = runner or SyncJobRunner()
        self.store = store or ConnectionStore()
        self.clipboard = clipboard or ClipboardSink()
        self.engine = engine or VimEngine()
        self.fetch_limit = fetch_limit
        self.browser = BrowserPane(self)
        self.editor = EditorPane(self)
        self.viewer = ViewerPane(self)
        self.focus = PaneFocus.BROWSER
        self.status = StatusMessage()
        self._change_listeners: list[Callable[[], None]] = []
        self.registry.add_close_listener(self._on_connection_closed)

    @property
    def pane(self) -> Any:
        """The focused pane."""
        return {
            PaneFocus.BROWSER: self.browser,
            PaneFocus.EDITOR: self.editor,
            PaneFocus.VIEWER: self.viewer,
        }[self.focus]

    @property
    def busy(self) -> bool:
        return self.runner.busy

    @property
    def current_handle(self) -> LiveConnection | None:
        """Connection that editor statements run against."""
        for handle in (self.browser.active, self.viewer.handle):
            if handle is not None and not handle.closed:
                return handle
        handles = self.registry.handles()
        return handles[0] if len(handles) == 1 else None

    def add_change_listener(self, listener: Callable[[], None]) -> None:
        """Called whenever a job completes and the UI should redraw."""
        self._change_listeners.append(listener)

    def _changed(self) -> None:
        for listener in list(self._change_listeners):
            listener()

    def set_status(self, message: str, severity: Severity = Severity.INFORMATION) -> None:
        self.status = StatusMessage(message, severity)

    def _report(self, effect: PaneEffect) -> PaneEffect:
        if effect.message:
            self.set_status(effect.message, effect.severity)
        return effect

    def yank(self, text: str) -> None:
        """Store text in the register and hand it to the clipboard."""
        self.engine.yank(text)
        if not self.clipboard.copy(text):
            LOG.debug("Clipboard unavailable, kept %d characters in the register", len(text))

    # ─────────────────────────────────────────────────────────────────
    # Input
    # ─────────────────────────────────────────────────────────────────

    def _pane_cursor(self) -> tuple[int, int]:
        cursor = self.pane.cursor
        return cursor if isinstance(cursor, tuple) else (cursor, 0)

    def handle_key(self, key: str) -> PaneEffect:
        """Feed one key through the engine and dispatch what it emits."""
        if key in TAB_KEYS and self._takes_tab_key():
            return self._report(self.viewer.switch_tab(TAB_KEYS[key]))
        result = self.engine.handle_key(key, self._pane_cursor())
        if result.command is None:
            return PaneEffect(action="key", handled=result.consumed)
        return self.dispatch(result.command)

    def _takes_tab_key(self) -> bool:
        """1, 2 and 3 pick the viewer tab unless they continue a count or prefix."""
        state = self.engine.state
        return (
            self.focus == PaneFocus.VIEWER
            and self.engine.mode == VimMode.NORMAL
            and self.viewer.context is not None
            and self.viewer.editing is None
            and not state.has_count
            and not state.pending_prefix
        )

    def dispatch(self, command: Command) -> PaneEffect:
        """Interpret one semantic command for the focused pane."""
        LOG.debug("dispatch %s to %s", command.kind.name, self.focus.value)
        kind = command.kind
        insert = self.engine.mode == VimMode.INSERT

        if kind == K.QUIT:
            effect = PaneEffect(action="quit", quit=True)
        elif kind in (K.NEXT_PANE, K.PREV_PANE):
            effect = self.cycle_focus(1 if kind == K.NEXT_PANE else -1)
        elif kind == K.SUBMIT_COMMAND_LINE:
            effect = self.run_command_line(command.text)
        elif kind in (K.ENTER_COMMAND_LINE, K.CANCEL_COMMAND_LINE):
            effect = PaneEffect(action=kind.name.lower())
        elif kind == K.CONNECTION_MANAGER:
            effect = PaneEffect(action="new_profile", screen=ScreenRequest.CONNECTION_FORM)
        elif kind in (K.EXECUTE_AT_CURSOR, K.EXECUTE_ALL):
            if self.focus == PaneFocus.VIEWER and self.viewer.editing is not None:
                self.viewer.save_edit()
            effect = self.editor.dispatch(command, insert)
        elif kind in (K.COMMIT, K.DISCARD_CHANGES, K.NEW_ROW) and self.focus != PaneFocus.VIEWER:
            effect = self.viewer.dispatch(command, False)
            if kind == K.NEW_ROW and self.viewer.editing is not None:
                self.focus = PaneFocus.VIEWER
        else:
            effect = self.pane.dispatch(command, insert)

        self._sync_mode()
        return self._report(effect)

    def _sync_mode(self) -> None:
        """Keep the engine's mode consistent with what the focused pane accepts."""
        pane = self.pane
        if self.engine.mode == VimMode.INSERT and not pane.accepts_insert:
            self.engine.enter_normal_mode()
        elif pane.wants_insert and self.engine.mode != VimMode.INSERT:
            self.engine.enter_insert_mode()

    def cycle_focus(self, step: int) -> PaneEffect:
        if self.viewer.editing is not None:
            self.viewer.save_edit()
        index = FOCUS_ORDER.index(self.focus)
        self.focus = FOCUS_ORDER[(index + step) % len(FOCUS_ORDER)]
        self.engine.enter_normal_mode()
        return PaneEffect(action="focus")

    def focus_pane(self, focus: PaneFocus) -> None:
        if self.focus != focus:
            if self.viewer.editing is not None:
                self.viewer.save_edit()
            self.focus = focus
            self.engine.enter_normal_mode()

    # ─────────────────────────────────────────────────────────────────
    # Jobs
    # ─────────────────────────────────────────────────────────────────

    def _error_effect(self, error: Exception) -> PaneEffect:
        if isinstance(error, ConnectError):
            return PaneEffect.error(f"Connection failed ({error.kind.value}): {error}", action="connect_error")
        if isinstance(error, CommitError):
            return PaneEffect.error(str(error), action="commit_error")
        if isinstance(error, QueryError):
            return PaneEffect.error(f"Query failed: {error}", action="query_error")
        if isinstance(error, TuiDbError):
            return PaneEffect.error(str(error))
        LOG.error("Unexpected error", exc_info=error)
        return PaneEffect.error(f"{type(error).__name__}: {error}")

    def _submit(
        self,
        name: str,
        work: Callable[[], Any],
        on_success: Callable[[Any], None],
        on_error: Callable[[Exception], None] | None = None,
        handle: LiveConnection | None = None,
    ) -> None:
        def success(result: Any) -> None:
            on_success(result)
            self._changed()

        def error(e: Exception) -> None:
            if on_error is not None:
                on_error(e)
            else:
                self._report(self._error_effect(e))
            self._changed()

        self.runner.submit(Job(name=name, work=work, on_success=success, on_error=error, handle=handle))

    # ─────────────────────────────────────────────────────────────────
    # Connections and browsing
    # ─────────────────────────────────────────────────────────────────

    def open_connection(self, config: ConnectionConfig, remember: bool = False) -> PaneEffect:
        """Open ``config`` (or reuse its live handle) and list its schemas."""
        existing = self.registry.find(config)
        if existing is not None:
            self.set_status(f"Already connected to {existing.display_name}")
            self.list_schemas(existing)
            return PaneEffect(action="reuse")

        def on_success(handle: LiveConnection) -> None:
            if remember:
                self.store.add_if_new(config)
            self.set_status(f"Connected to {handle.display_name}")
            self.list_schemas(handle)

        def on_error(error: Exception) -> None:
            if isinstance(error, DuplicateConnectionError):
                self.set_status(f"Already connected to {error.handle.display_name}")
                self.list_schemas(error.handle)
                return
            self._report(self._error_effect(error))

        self.set_status(f"Connecting to {config.get_display_info()}...")
        self._submit(f"connect-{config.name}", lambda: self.registry.open(config), on_success, on_error)
        return PaneEffect(action="connect")

    def list_schemas(self, handle: LiveConnection) -> PaneEffect:
        def on_success(schemas: list[str]) -> None:
            self.focus_pane(PaneFocus.BROWSER)
            if not handle.adapter.supports_multiple_databases and schemas:
                self.browser.active = handle
                self.enter_schema(handle, schemas[0])
                return
            self.browser.show_schemas(handle, schemas)
            if handle.current_schema:
                self.browser.select_label(handle.current_schema)

        self._submit(
            f"schemas-{handle.display_name}",
            lambda: handle.run(handle.adapter.list_schemas),
            on_success,
            handle=handle,
        )
        return PaneEffect(action="list_schemas")

    def enter_schema(self, handle: LiveConnection, schema: str) -> PaneEffect:
        """Make ``schema`` active and list its tables."""
        if handle.current_schema == schema:
            cached = handle.cached_tables(schema)
            if cached is not None:
                self.browser.show_tables(handle, schema, cached)
                return PaneEffect(action="tables")

        def work() -> list[str]:
            handle.use_schema(schema)
            tables = handle.run(lambda raw: handle.adapter.list_tables(raw, schema))
            handle.cache_tables(schema, tables)
            return tables

        def on_success(tables: list[str]) -> None:
            self.browser.show_tables(handle, schema, tables)
            self.set_status(f"{schema}: {len(tables)} table(s)")

        self._submit(f"tables-{schema}", work, on_success, handle=handle)
        return PaneEffect(action="tables")

    def clear_schema_context(self, handle: LiveConnection) -> None:
        self._submit(
            f"clear-context-{handle.display_name}",
            handle.clear_database_context,
            lambda _: None,
            handle=handle,
        )

    def load_table(self, handle: LiveConnection, schema: str | None, table: str) -> PaneEffect:
        """Fetch the first rows of ``table``, its columns and its indexes into the viewer."""
        limit = self.fetch_limit

        def fetch(raw: Any) -> tuple[TableContext, QueryResult]:
            columns = handle.adapter.get_columns(raw, table, schema)
            indexes = handle.adapter.get_indexes(raw, table, schema)
            result = handle.adapter.fetch_rows(raw, table, limit, schema)
            return TableContext(table, schema, tuple(columns), tuple(indexes)), result

        def on_success(payload: tuple[TableContext, QueryResult]) -> None:
            context, result = payload
            more = f" (first {limit})" if result.truncated else ""
            self.viewer.show_result(result, context, handle)
            self.focus_pane(PaneFocus.VIEWER)
            self.set_status(f"{table}: {result.row_count} row(s){more}")

        self._submit(f"fetch-{table}", lambda: handle.run(fetch), on_success, handle=handle)
        return PaneEffect(action="fetch")

    def close_connection(self, handle: LiveConnection) -> PaneEffect:
        name = handle.display_name
        self.registry.close(handle)
        return PaneEffect(action="disconnect", message=f"Disconnected from {name}")

    def _on_connection_closed(self, handle: LiveConnection) -> None:
        self.browser.evict(handle)
        self.viewer.evict(handle)
        self._changed()

    # ─────────────────────────────────────────────────────────────────
    # Statements
    # ─────────────────────────────────────────────────────────────────

    def execute_statements(self, statements: list[str]) -> PaneEffect:
        """Run statements in order, stopping at the first failure."""
        handle = self.current_handle
        if handle is None:
            return PaneEffect.error("No active connection (open one in the browser, or :open / :mysql)")
        limit = self.fetch_limit

        def work() -> ExecutionReport:
            report = ExecutionReport(total=len(statements))
            for index, sql in enumerate(statements):
                try:
                    outcome = handle.run(lambda raw, s=sql: handle.adapter.execute(raw, s, max_rows=limit))
                except QueryError as e:
                    e.statement_index = index
                    report.failed_index = index
                    report.error = e
                    break
                report.executed += 1
                report.last = outcome
                report.elapsed_ms += outcome.elapsed_ms
                if is_schema_change(sql):
                    report.schema_changed = True
            if report.schema_changed:
                report.current_schema = handle.run(handle.adapter.current_schema)
            return report

        def on_success(report: ExecutionReport) -> None:
            self._show_report(handle, report)

        self.set_status(f"Running {len(statements)} statement(s)...")
        self._submit("execute", work, on_success, handle=handle)
        return PaneEffect(action="execute")

    def _show_report(self, handle: LiveConnection, report: ExecutionReport) -> None:
        if isinstance(report.last, QueryResult):
            more = f" (first {self.fetch_limit})" if report.last.truncated else ""
            self.viewer.show_result(report.last, message=f"{report.last.row_count} row(s){more}")
            self.focus_pane(PaneFocus.VIEWER)
        elif isinstance(report.last, NonQueryResult):
            self.viewer.show_message(f"{report.last.rows_affected} row(s) affected")

        if report.schema_changed:
            handle.current_schema = report.current_schema
            handle.invalidate_tables()
            self._refresh_browser(handle)

        if report.error is not None:
            position = f"Statement {report.failed_index + 1} of {report.total}" if report.total > 1 else "Query"
            self.set_status(f"{position} failed: {report.error}", Severity.ERROR)
        else:
            self.set_status(f"Executed {report.executed} statement(s) in {report.elapsed_ms:.0f} ms")

    def _refresh_browser(self, handle: LiveConnection) -> None:
        if self.browser.active is not handle:
            return
        if handle.current_schema:
            self.enter_schema(handle, handle.current_schema)
        elif handle.adapter.supports_multiple_databases:
            self.list_schemas(handle)

    # ─────────────────────────────────────────────────────────────────
    # Edits
    # ─────────────────────────────────────────────────────────────────

    def commit_edits(self) -> PaneEffect:
        """Write the viewer's pending edits, then refetch the table."""
        viewer = self.viewer
        buffer, context, handle = viewer.buffer, viewer.context, viewer.handle
        if buffer is None or not buffer.is_dirty:
            return PaneEffect(action="commit", message="No pending changes")
        if context is None or handle is None or handle.closed:
            return PaneEffect.error("The connection for this table is closed")
        planned = buffer.plan(context, handle.adapter)
        limit = self.fetch_limit

        def work() -> tuple[int, QueryResult | None]:
            count = apply_plan(handle, planned)
            try:
                result = handle.run(
                    lambda raw: handle.adapter.fetch_rows(raw, context.table, limit, context.schema)
                )
            except QueryError as e:
                LOG.warning("Refetch after commit failed: %s", e)
                result = None
            return count, result

        def on_success(payload: tuple[int, QueryResult | None]) -> None:
            count, result = payload
            buffer.discard()
            if result is None:
                self.set_status(f"Committed {count} change(s); refresh failed", Severity.WARNING)
                return
            viewer.show_result(result, context, handle)
            self.set_status(f"Committed {count} change(s)")

        self.set_status(f"Committing {len(planned)} change(s)...")
        self._submit("commit", work, on_success, handle=handle)
        return PaneEffect(action="commit")

    # ─────────────────────────────────────────────────────────────────
    # Profiles
    # ─────────────────────────────────────────────────────────────────

    def save_profile(self, config: ConnectionConfig, original_name: str | None = None) -> PaneEffect:
        original = self.store.get(original_name) if original_name else None
        if original is not None and self.registry.find(original) is not None:
            return self._report(PaneEffect.error("Disconnect before editing this connection"))
        try:
            self.store.save(config, original_name)
        except ValueError as e:
            return self._report(PaneEffect.error(str(e)))
        return self._report(PaneEffect(action="save_profile", message=f"Saved {config.name}"))

    def delete_profile(self, config: ConnectionConfig) -> PaneEffect:
        handle = self.registry.find(config)
        if handle is not None:
            self.registry.close(handle)
        self.store.delete(config.name)
        self.browser.refresh()
        return self._report(PaneEffect(action="delete_profile", message=f"Deleted {config.name}"))

    def test_profile(self, config: ConnectionConfig, on_done: Callable[[str | None], None]) -> None:
        """Test a profile without registering it. ``on_done`` gets None or an error message."""

        def on_success(schemas: list[str]) -> None:
            on_done(None)

        def on_error(error: Exception) -> None:
            on_done(self._error_effect(error).message)

        self._submit(f"test-{config.name}", lambda: self.registry.test(config), on_success, on_error)

    # ─────────────────────────────────────────────────────────────────
    # Command line
    # ─────────────────────────────────────────────────────────────────

    def run_command_line(self, text: str) -> PaneEffect:
        result = parse_command_line(text)
        if result.error:
            return PaneEffect.error(result.message)
        action = result.action

        if action == CommandAction.QUIT:
            return PaneEffect(action="quit", quit=True)
        if action == CommandAction.OPEN_SQLITE:
            return self.open_connection(config_for_file(result.argument), remember=True)
        if action in (CommandAction.OPEN_MYSQL, CommandAction.OPEN_MARIADB):
            try:
                config = parse_dsn(result.argument, action.value)
            except ConnectError as e:
                return self._error_effect(e)
            return self.open_connection(config, remember=True)
        if action == CommandAction.EXECUTE:
            return self.editor.dispatch(Command(K.EXECUTE_ALL), False)
        if action == CommandAction.CLEAR:
            self.editor.clear()
            return PaneEffect(action="clear", message="Editor cleared")
        if action == CommandAction.DISCONNECT:
            handle = self.current_handle
            if handle is None:
                return PaneEffect.warning("No active connection")
            return self.close_connection(handle)
        if action == CommandAction.CONNECTIONS:
            return PaneEffect(action="new_profile", screen=ScreenRequest.CONNECTION_FORM)
        if action == CommandAction.HELP:
            return PaneEffect(action="help", message=result.message)
        return PaneEffect()

    # ─────────────────────────────────────────────────────────────────
    # Render
    # ─────────────────────────────────────────────────────────────────

    def snapshot(self) -> Snapshot:
        state = self.engine.state
        selection = None
        if self.focus == PaneFocus.EDITOR and state.is_visual_mode():
            selection = state.selection(self.editor.cursor)
        return Snapshot(
            mode=self.engine.mode.value,
            pending_keys=state.input_buffer + state.pending_prefix,
            command_line=self.engine.command_line,
            focus=self.focus,
            browser=self.browser.snapshot(),
            editor=self.editor.snapshot(selection),
            viewer=self.viewer.snapshot(),
            status=self.status,
            busy=self.busy,
        )

    def shutdown(self) -> None:
        self.registry.close_all()
