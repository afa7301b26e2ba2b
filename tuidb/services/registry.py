"""Live connection ownership.

The registry is the only place that opens and closes backend connections.
Panes keep :class:`LiveConnection` handles and route every statement through
:meth:`LiveConnection.run`, which serializes access and refuses work once the
handle has been closed.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any, TypeVar

from ..db.exceptions import ConnectionClosedError, DuplicateConnectionError, ValidationError
from ..db.providers import get_adapter

if TYPE_CHECKING:
    from ..config import ConnectionConfig
    from ..db.adapters.base import DatabaseAdapter

LOG = logging.getLogger(__name__)

T = TypeVar("T")


class LiveConnection:
    """An open backend connection and the browse state cached on it."""

    def __init__(self, config: ConnectionConfig, adapter: DatabaseAdapter, raw: Any) -> None:
        self.config = config
        self.adapter = adapter
        self.key = config.target_key()
        self.current_schema: str | None = None
        self._raw = raw
        self._lock = threading.Lock()
        self._closed = False
        self._released = False
        self._tables: dict[str, list[str]] = {}

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<LiveConnection {self.display_name} {state}>"

    @property
    def display_name(self) -> str:
        return self.config.name or self.config.get_display_info()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def run(self, fn: Callable[[Any], T]) -> T:
        """Run ``fn(raw_connection)`` with exclusive access.

        A second caller blocks until the first finishes. Raises
        ConnectionClosedError if the handle is closed before or while
        waiting.
        """
        if self._closed:
            raise ConnectionClosedError(f"Connection closed: {self.display_name}")
        with self._lock:
            try:
                if self._closed:
                    raise ConnectionClosedError(f"Connection closed: {self.display_name}")
                return fn(self._raw)
            finally:
                if self._closed:
                    self._release()

    def close(self) -> None:
        """Mark closed and release the driver connection.

        If a statement is running the release happens when it returns.
        """
        self._closed = True
        self._tables.clear()
        if self._lock.acquire(blocking=False):
            try:
                self._release()
            finally:
                self._lock.release()

    def _release(self) -> None:
        if self._released:
            return
        self._released = True
        try:
            self.adapter.close(self._raw)
        except self.adapter.driver_errors as e:
            LOG.warning("Error closing %s: %s", self.display_name, e)
        LOG.info("Closed connection %s", self.display_name)

    # ─────────────────────────────────────────────────────────────────
    # Cached browse state
    # ─────────────────────────────────────────────────────────────────

    def cached_tables(self, schema: str) -> list[str] | None:
        return self._tables.get(schema)

    def cache_tables(self, schema: str, tables: list[str]) -> None:
        self._tables[schema] = list(tables)

    def invalidate_tables(self) -> None:
        self._tables.clear()

    def use_schema(self, name: str) -> None:
        """Switch schema. On failure the previous context is kept."""
        self.run(lambda raw: self.adapter.use_schema(raw, name))
        if self.current_schema != name:
            self.invalidate_tables()
        self.current_schema = name

    def clear_database_context(self) -> None:
        self.run(self.adapter.clear_database_context)
        self.current_schema = None
        self.invalidate_tables()


class ConnectionRegistry:
    """Owns every LiveConnection, at most one per normalized target."""

    def __init__(self, adapter_factory: Callable[[str], DatabaseAdapter] = get_adapter) -> None:
        self._adapter_factory = adapter_factory
        self._handles: dict[tuple[str, ...], LiveConnection] = {}
        self._opening: set[tuple[str, ...]] = set()
        self._lock = threading.Lock()
        self._close_listeners: list[Callable[[LiveConnection], None]] = []

    def __len__(self) -> int:
        return len(self._handles)

    def __iter__(self) -> Iterator[LiveConnection]:
        return iter(self.handles())

    def handles(self) -> list[LiveConnection]:
        with self._lock:
            return list(self._handles.values())

    def get(self, key: tuple[str, ...]) -> LiveConnection | None:
        with self._lock:
            return self._handles.get(key)

    def find(self, config: ConnectionConfig) -> LiveConnection | None:
        return self.get(config.target_key())

    def add_close_listener(self, listener: Callable[[LiveConnection], None]) -> None:
        self._close_listeners.append(listener)

    def open(self, config: ConnectionConfig) -> LiveConnection:
        """Connect to ``config`` and register the handle.

        Raises DuplicateConnectionError carrying the existing handle if the
        target is already open, or ConnectError if the backend refuses.
        """
        key = config.target_key()
        with self._lock:
            existing = self._handles.get(key)
            if existing is not None:
                raise DuplicateConnectionError(existing)
            if key in self._opening:
                raise ValidationError(f"Already connecting to {config.get_display_info()}")
            self._opening.add(key)

        try:
            adapter = self._adapter_factory(config.db_type)
            LOG.info("Connecting to %s (%s)", config.get_display_info(), adapter.name)
            raw = adapter.connect(config)
            handle = LiveConnection(config, adapter, raw)
            try:
                handle.current_schema = adapter.current_schema(raw)
            except adapter.driver_errors as e:
                adapter.close(raw)
                raise adapter.classify_connect_error(e) from e
        finally:
            with self._lock:
                self._opening.discard(key)

        with self._lock:
            self._handles[key] = handle
        LOG.info("Connected to %s", handle.display_name)
        return handle

    def close(self, handle: LiveConnection) -> None:
        """Release ``handle`` and tell listeners so they drop dependent state."""
        with self._lock:
            if self._handles.get(handle.key) is handle:
                del self._handles[handle.key]
        handle.close()
        for listener in list(self._close_listeners):
            listener(handle)

    def close_all(self) -> None:
        for handle in self.handles():
            self.close(handle)

    def test(self, config: ConnectionConfig) -> list[str]:
        """Connect, list schemas, disconnect. Nothing is registered.

        Returns the schema names on success; raises ConnectError otherwise.
        """
        adapter = self._adapter_factory(config.db_type)
        raw = adapter.connect(config)
        try:
            return adapter.list_schemas(raw)
        except adapter.driver_errors as e:
            raise adapter.classify_connect_error(e) from e
        finally:
            adapter.close(raw)
