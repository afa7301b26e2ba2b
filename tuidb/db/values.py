"""Backend-neutral cell values.

Every value read from a driver is wrapped in a :class:`Value` so that the
edit and UI layers never see driver-specific types. Writing goes the other
way through :meth:`Value.to_native`, which hands the driver a plain Python
object to bind as a statement parameter.
"""

from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any


class ValueKind(Enum):
    """Tag for the kind of data a Value carries."""

    NULL = "null"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    TEXT = "text"
    BLOB = "blob"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"


NULL_INPUT = "NULL"
BLOB_PREVIEW_BYTES = 16


@dataclass(frozen=True)
class Value:
    """A tagged cell value."""

    kind: ValueKind
    data: Any = None

    @classmethod
    def null(cls) -> Value:
        return cls(ValueKind.NULL, None)

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    @classmethod
    def from_native(cls, obj: Any) -> Value:
        """Wrap a driver-returned object.

        Unknown types become text so that reading a table never fails because
        of an unfamiliar column type.
        """
        if obj is None:
            return cls.null()
        # bool is a subclass of int, check it first
        if isinstance(obj, bool):
            return cls(ValueKind.BOOLEAN, obj)
        if isinstance(obj, int):
            return cls(ValueKind.INTEGER, obj)
        if isinstance(obj, float):
            return cls(ValueKind.FLOAT, obj)
        if isinstance(obj, Decimal):
            return cls(ValueKind.DECIMAL, obj)
        if isinstance(obj, str):
            return cls(ValueKind.TEXT, obj)
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return cls(ValueKind.BLOB, bytes(obj))
        # datetime is a subclass of date
        if isinstance(obj, dt.datetime):
            return cls(ValueKind.DATETIME, obj)
        if isinstance(obj, dt.date):
            return cls(ValueKind.DATE, obj)
        if isinstance(obj, dt.time):
            return cls(ValueKind.TIME, obj)
        if isinstance(obj, dt.timedelta):
            # MySQL TIME columns come back as timedelta
            return cls(ValueKind.TIME, obj)
        return cls(ValueKind.TEXT, str(obj))

    def to_native(self) -> Any:
        """Return the object to bind as a statement parameter."""
        if self.kind is ValueKind.NULL:
            return None
        if self.kind in (ValueKind.DATE, ValueKind.TIME, ValueKind.DATETIME):
            if isinstance(self.data, dt.timedelta):
                return _format_timedelta(self.data)
            return self.data.isoformat(sep=" ") if isinstance(self.data, dt.datetime) else self.data.isoformat()
        if self.kind is ValueKind.BOOLEAN:
            return 1 if self.data else 0
        return self.data

    def display(self) -> str:
        """Text shown in a grid cell."""
        if self.kind is ValueKind.NULL:
            return NULL_INPUT
        if self.kind is ValueKind.BLOB:
            head = self.data[:BLOB_PREVIEW_BYTES].hex()
            suffix = "..." if len(self.data) > BLOB_PREVIEW_BYTES else ""
            return f"0x{head}{suffix}"
        if self.kind is ValueKind.BOOLEAN:
            return "true" if self.data else "false"
        if self.kind is ValueKind.TIME and isinstance(self.data, dt.timedelta):
            return _format_timedelta(self.data)
        if self.kind is ValueKind.DATETIME:
            return self.data.isoformat(sep=" ")
        if self.kind in (ValueKind.DATE, ValueKind.TIME):
            return self.data.isoformat()
        return str(self.data)

    def edit_text(self) -> str:
        """Text placed in the cell editor when editing starts."""
        if self.kind is ValueKind.BLOB:
            return self.data.hex()
        return self.display()

    @classmethod
    def from_input(cls, text: str, kind: ValueKind = ValueKind.TEXT) -> Value:
        """Parse what the user typed into a cell.

        The literal ``NULL`` stores a null. Text that does not parse as the
        column's kind is kept as text and left for the backend to judge.
        """
        if text == NULL_INPUT:
            return cls.null()
        try:
            if kind is ValueKind.INTEGER:
                return cls(ValueKind.INTEGER, int(text.strip()))
            if kind is ValueKind.FLOAT:
                return cls(ValueKind.FLOAT, float(text.strip()))
            if kind is ValueKind.DECIMAL:
                return cls(ValueKind.DECIMAL, Decimal(text.strip()))
            if kind is ValueKind.BOOLEAN:
                lowered = text.strip().lower()
                if lowered in ("1", "true", "t", "yes", "y"):
                    return cls(ValueKind.BOOLEAN, True)
                if lowered in ("0", "false", "f", "no", "n"):
                    return cls(ValueKind.BOOLEAN, False)
            if kind is ValueKind.BLOB:
                return cls(ValueKind.BLOB, bytes.fromhex(text.strip().removeprefix("0x")))
            if kind is ValueKind.DATETIME:
                return cls(ValueKind.DATETIME, dt.datetime.fromisoformat(text.strip()))
            if kind is ValueKind.DATE:
                return cls(ValueKind.DATE, dt.date.fromisoformat(text.strip()))
            if kind is ValueKind.TIME:
                return cls(ValueKind.TIME, dt.time.fromisoformat(text.strip()))
        except (ValueError, InvalidOperation):
            pass
        return cls(ValueKind.TEXT, text)


def _format_timedelta(delta: dt.timedelta) -> str:
    """MySQL TIME text: [-]HH:MM:SS[.ffffff], hours may exceed 24."""
    sign = "-" if delta < dt.timedelta(0) else ""
    delta = abs(delta)
    hours, rest = divmod(delta.days * 86400 + delta.seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    text = f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"
    if delta.microseconds:
        text += f".{delta.microseconds:06d}"
    return text


_INTEGER_TYPES = re.compile(r"INT|SERIAL|YEAR")
_FLOAT_TYPES = re.compile(r"REAL|FLOA|DOUB")
_DECIMAL_TYPES = re.compile(r"DEC|NUMERIC")
_BLOB_TYPES = re.compile(r"BLOB|BINARY|BYTEA")


def kind_for_declared_type(declared: str) -> ValueKind:
    """Map a column's declared type to the kind used when parsing input.

    Follows SQLite's affinity rules, extended with the MySQL type names.
    """
    upper = (declared or "").upper()
    if upper.startswith(("TINYINT(1)", "BOOL")):
        return ValueKind.BOOLEAN
    if upper.startswith("DATETIME") or upper.startswith("TIMESTAMP"):
        return ValueKind.DATETIME
    if upper.startswith("DATE"):
        return ValueKind.DATE
    if upper.startswith("TIME"):
        return ValueKind.TIME
    if _INTEGER_TYPES.search(upper) and "POINT" not in upper:
        return ValueKind.INTEGER
    if any(token in upper for token in ("CHAR", "CLOB", "TEXT", "ENUM", "SET", "JSON")):
        return ValueKind.TEXT
    if _BLOB_TYPES.search(upper):
        return ValueKind.BLOB
    if _FLOAT_TYPES.search(upper):
        return ValueKind.FLOAT
    if _DECIMAL_TYPES.search(upper):
        return ValueKind.DECIMAL
    return ValueKind.TEXT
