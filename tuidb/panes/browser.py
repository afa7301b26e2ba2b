"""Database browser pane.

Three levels: saved connections, schemas of the open connection, and tables
of the active schema. Backend calls go through the coordinator as jobs; this
class only holds navigation state.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from ..vim.commands import Command, CommandKind as K
from .effects import BrowserItem, BrowserSnapshot, PaneEffect, ScreenRequest

if TYPE_CHECKING:
    from ..config import ConnectionConfig
    from ..services.registry import LiveConnection
    from .coordinator import PaneCoordinator


class BrowserLevel(Enum):
    CONNECTIONS = "connections"
    SCHEMAS = "schemas"
    TABLES = "tables"


class BrowserPane:
    """Connection, schema and table lists."""

    accepts_insert = False
    wants_insert = False

    def __init__(self, coordinator: PaneCoordinator) -> None:
        self._coordinator = coordinator
        self.level = BrowserLevel.CONNECTIONS
        self.cursor = 0
        self.filter_text = ""
        self.active: LiveConnection | None = None
        self.schema: str | None = None
        self.schemas: list[str] = []
        self.tables: list[str] = []

    # ─────────────────────────────────────────────────────────────────
    # Items
    # ─────────────────────────────────────────────────────────────────

    def profiles(self) -> list[ConnectionConfig]:
        """Saved profiles, plus targets opened ad hoc that are not saved."""
        saved = self._coordinator.store.all()
        extra = [
            handle.config
            for handle in self._coordinator.registry.handles()
            if not any(c.same_target(handle.config) for c in saved)
        ]
        return saved + extra

    def _labels(self) -> list[str]:
        if self.level == BrowserLevel.CONNECTIONS:
            return [c.name for c in self.profiles()]
        if self.level == BrowserLevel.SCHEMAS:
            return list(self.schemas)
        return list(self.tables)

    def visible_indices(self) -> list[int]:
        """Indices into the current level's list that pass the filter."""
        labels = self._labels()
        if not self.filter_text:
            return list(range(len(labels)))
        needle = self.filter_text.lower()
        return [i for i, label in enumerate(labels) if needle in label.lower()]

    def selected_index(self) -> int | None:
        visible = self.visible_indices()
        if not visible:
            return None
        return visible[min(self.cursor, len(visible) - 1)]

    def selected_label(self) -> str | None:
        index = self.selected_index()
        return None if index is None else self._labels()[index]

    def selected_profile(self) -> ConnectionConfig | None:
        if self.level != BrowserLevel.CONNECTIONS:
            return None
        index = self.selected_index()
        return None if index is None else self.profiles()[index]

    def _clamp(self) -> None:
        count = len(self.visible_indices())
        self.cursor = max(0, min(self.cursor, count - 1))

    # ─────────────────────────────────────────────────────────────────
    # State changes driven by coordinator jobs
    # ─────────────────────────────────────────────────────────────────

    def show_connections(self) -> None:
        self.level = BrowserLevel.CONNECTIONS
        self.active = None
        self.schema = None
        self.schemas = []
        self.tables = []
        self.filter_text = ""
        self._clamp()

    def show_schemas(self, handle: LiveConnection, schemas: list[str]) -> None:
        self.active = handle
        self.schemas = list(schemas)
        self.schema = None
        self.tables = []
        self.level = BrowserLevel.SCHEMAS
        self.filter_text = ""
        self.cursor = 0

    def show_tables(self, handle: LiveConnection, schema: str, tables: list[str]) -> None:
        self.active = handle
        self.schema = schema
        self.tables = list(tables)
        self.level = BrowserLevel.TABLES
        self.filter_text = ""
        self.cursor = 0

    def select_label(self, label: str) -> None:
        labels = self._labels()
        if label in labels:
            visible = self.visible_indices()
            index = labels.index(label)
            if index in visible:
                self.cursor = visible.index(index)

    def evict(self, handle: LiveConnection) -> None:
        """Drop the subtree of a closed connection."""
        if self.active is handle:
            self.show_connections()
        self._clamp()

    # ─────────────────────────────────────────────────────────────────
    # Dispatch
    # ─────────────────────────────────────────────────────────────────

    def dispatch(self, command: Command, insert: bool) -> PaneEffect:
        kind = command.kind
        count = len(self.visible_indices())
        if kind == K.MOVE_DOWN:
            self.cursor = min(max(0, count - 1), self.cursor + command.count)
        elif kind == K.MOVE_UP:
            self.cursor = max(0, self.cursor - command.count)
        elif kind == K.GOTO_TOP:
            self.cursor = 0
        elif kind == K.GOTO_BOTTOM:
            self.cursor = max(0, count - 1)
        elif kind in (K.ACTIVATE, K.MOVE_RIGHT):
            return self.activate()
        elif kind in (K.ESCAPE, K.MOVE_LEFT):
            return self.back()
        elif kind == K.CLOSE_CONNECTION:
            return self.close_selected()
        elif kind == K.REFRESH:
            return self.refresh()
        elif kind == K.SUBMIT_SEARCH:
            self.filter_text = command.text
            self.cursor = 0
            if not self.visible_indices():
                return PaneEffect.warning(f"No match for {command.text}")
        elif kind == K.EDIT_CELL:
            return self._edit_profile()
        elif kind == K.DELETE:
            return self._delete_profile()
        elif kind == K.YANK:
            label = self.selected_label()
            if label is None:
                return PaneEffect.warning("Nothing to copy")
            self._coordinator.yank(label)
            return PaneEffect(action="yank", message=f"Copied {label}")
        else:
            return PaneEffect.unhandled()
        return PaneEffect(action=kind.name.lower())

    def activate(self) -> PaneEffect:
        label = self.selected_label()
        if label is None:
            return PaneEffect.warning("Nothing selected")
        if self.level == BrowserLevel.CONNECTIONS:
            config = self.selected_profile()
            assert config is not None
            return self._coordinator.open_connection(config)
        assert self.active is not None
        if self.level == BrowserLevel.SCHEMAS:
            return self._coordinator.enter_schema(self.active, label)
        return self._coordinator.load_table(self.active, self.schema, label)

    def back(self) -> PaneEffect:
        """Pop one level and clear the schema context that is now stale."""
        if self.filter_text:
            self.filter_text = ""
            self._clamp()
            return PaneEffect(action="clear_filter")
        handle = self.active
        if self.level == BrowserLevel.TABLES and handle is not None and handle.adapter.supports_multiple_databases:
            previous = self.schema
            self.level = BrowserLevel.SCHEMAS
            self.tables = []
            self.schema = None
            if previous is not None:
                self.select_label(previous)
            self._coordinator.clear_schema_context(handle)
            return PaneEffect(action="back")
        if self.level in (BrowserLevel.TABLES, BrowserLevel.SCHEMAS):
            name = handle.display_name if handle else None
            self.show_connections()
            if handle is not None and handle.adapter.supports_multiple_databases:
                self._coordinator.clear_schema_context(handle)
            if name is not None:
                self.select_label(name)
            return PaneEffect(action="back")
        return PaneEffect(action="back")

    def refresh(self) -> PaneEffect:
        if self.level == BrowserLevel.CONNECTIONS or self.active is None:
            self._clamp()
            return PaneEffect(action="refresh")
        self.active.invalidate_tables()
        if self.level == BrowserLevel.SCHEMAS:
            return self._coordinator.list_schemas(self.active)
        assert self.schema is not None
        return self._coordinator.enter_schema(self.active, self.schema)

    def close_selected(self) -> PaneEffect:
        if self.level == BrowserLevel.CONNECTIONS:
            config = self.selected_profile()
            handle = self._coordinator.registry.find(config) if config else None
        else:
            handle = self.active
        if handle is None:
            return PaneEffect.warning("Selected connection is not open")
        return self._coordinator.close_connection(handle)

    def _edit_profile(self) -> PaneEffect:
        config = self.selected_profile()
        if config is None:
            return PaneEffect.unhandled()
        if self._coordinator.registry.find(config) is not None:
            return PaneEffect.error("Disconnect (X) before editing this connection")
        return PaneEffect(action="edit_profile", screen=ScreenRequest.CONNECTION_FORM, payload=config)

    def _delete_profile(self) -> PaneEffect:
        config = self.selected_profile()
        if config is None:
            return PaneEffect.unhandled()
        return PaneEffect(action="delete_profile", screen=ScreenRequest.CONFIRM_DELETE_PROFILE, payload=config)

    # ─────────────────────────────────────────────────────────────────
    # Render
    # ─────────────────────────────────────────────────────────────────

    def snapshot(self) -> BrowserSnapshot:
        labels = self._labels()
        visible = self.visible_indices()
        if self.level == BrowserLevel.CONNECTIONS:
            profiles = self.profiles()
            registry = self._coordinator.registry
            items = tuple(
                BrowserItem(
                    label=profiles[i].name,
                    detail=profiles[i].get_display_info(),
                    connected=registry.find(profiles[i]) is not None,
                )
                for i in visible
            )
            title = "Connections"
        else:
            items = tuple(BrowserItem(label=labels[i]) for i in visible)
            name = self.active.display_name if self.active else ""
            title = name if self.level == BrowserLevel.SCHEMAS else f"{name} / {self.schema}"
        return BrowserSnapshot(
            level=self.level.value,
            title=title,
            items=items,
            cursor=min(self.cursor, max(0, len(items) - 1)),
            filter_text=self.filter_text,
        )
