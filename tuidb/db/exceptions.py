"""Custom exceptions for the database layer."""

from __future__ import annotations

from enum import Enum
from typing import Any


class TuiDbError(Exception):
    """Base class for every recoverable error surfaced to the user."""


class ConnectErrorKind(Enum):
    """Why a connection attempt failed."""

    AUTH = "auth"
    NETWORK = "network"
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"
    UNKNOWN = "unknown"


class ConnectError(TuiDbError):
    """Raised when a backend refuses or cannot reach a connection target."""

    def __init__(self, message: str, kind: ConnectErrorKind = ConnectErrorKind.UNKNOWN):
        self.kind = kind
        super().__init__(message)


class MissingDriverError(ConnectError):
    """Exception raised when a required database driver package is not installed."""

    def __init__(self, driver_name: str, extra_name: str, package_name: str):
        self.driver_name = driver_name
        self.extra_name = extra_name
        self.package_name = package_name
        super().__init__(
            f"Missing driver for {driver_name} (pip install {package_name})",
            ConnectErrorKind.UNKNOWN,
        )


class DuplicateConnectionError(TuiDbError):
    """Raised when opening a target that already has a live connection."""

    def __init__(self, handle: Any):
        self.handle = handle
        super().__init__(f"Already connected: {handle.display_name}")


class SchemaSwitchError(TuiDbError):
    """Raised when switching the active schema fails."""


class QueryError(TuiDbError):
    """A statement failed on the backend. The message is the backend's text."""

    def __init__(self, message: str, statement_index: int | None = None):
        self.statement_index = statement_index
        super().__init__(message)


class CommitError(TuiDbError):
    """A pending edit could not be written back."""

    def __init__(self, message: str, row: int | None, statement: str, unit: str | None = None):
        self.row = row
        self.statement = statement
        self.reason = message
        where = unit or (f"row {row + 1}" if row is not None else "new row")
        super().__init__(f"Commit failed at {where}: {message}")


class ValidationError(TuiDbError):
    """A user action was rejected before touching any backend."""


class ConnectionClosedError(TuiDbError):
    """Work was submitted to a connection that has been closed."""
