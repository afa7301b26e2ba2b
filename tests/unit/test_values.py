"""Tests for tagged cell values."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

import pytest

from tuidb.db.values import Value, ValueKind, kind_for_declared_type


class TestFromNative:
    """Driver objects are wrapped with the right kind."""

    @pytest.mark.parametrize(
        "obj,kind",
        [
            (None, ValueKind.NULL),
            (True, ValueKind.BOOLEAN),
            (7, ValueKind.INTEGER),
            (1.5, ValueKind.FLOAT),
            (Decimal("2.50"), ValueKind.DECIMAL),
            ("x", ValueKind.TEXT),
            (b"\x00\x01", ValueKind.BLOB),
            (dt.datetime(2024, 1, 2, 3, 4, 5), ValueKind.DATETIME),
            (dt.date(2024, 1, 2), ValueKind.DATE),
            (dt.time(3, 4), ValueKind.TIME),
            (dt.timedelta(hours=1, minutes=2), ValueKind.TIME),
        ],
    )
    def test_kinds(self, obj, kind):
        assert Value.from_native(obj).kind == kind

    def test_unknown_type_becomes_text(self):
        class Weird:
            def __str__(self):
                return "weird"

        value = Value.from_native(Weird())
        assert value.kind == ValueKind.TEXT
        assert value.data == "weird"


class TestDisplay:
    """Grid text for values."""

    def test_null_displays_marker(self):
        assert Value.null().display() == "NULL"

    def test_blob_preview_is_truncated(self):
        value = Value.from_native(bytes(range(20)))
        assert value.display() == "0x" + bytes(range(16)).hex() + "..."
        assert value.edit_text() == bytes(range(20)).hex()

    def test_timedelta_time(self):
        assert Value.from_native(dt.timedelta(hours=26, seconds=5)).display() == "26:00:05"

    def test_timedelta_keeps_microseconds(self):
        value = Value.from_native(dt.timedelta(hours=10, microseconds=500000))
        assert value.display() == "10:00:00.500000"
        assert value.to_native() == "10:00:00.500000"
        assert Value.from_input(value.edit_text(), ValueKind.TIME).to_native() == "10:00:00.500000"

    def test_negative_timedelta(self):
        assert Value.from_native(-dt.timedelta(minutes=1, microseconds=5)).display() == "-00:01:00.000005"

    def test_datetime_uses_space_separator(self):
        value = Value.from_native(dt.datetime(2024, 5, 6, 7, 8, 9))
        assert value.display() == "2024-05-06 07:08:09"
        assert value.to_native() == "2024-05-06 07:08:09"


class TestFromInput:
    """Parsing typed cell text."""

    def test_literal_null(self):
        assert Value.from_input("NULL", ValueKind.INTEGER).is_null

    def test_lowercase_null_is_text(self):
        assert Value.from_input("null").kind == ValueKind.TEXT

    def test_integer_column(self):
        assert Value.from_input(" 42 ", ValueKind.INTEGER) == Value(ValueKind.INTEGER, 42)

    def test_unparseable_input_stays_text(self):
        value = Value.from_input("abc", ValueKind.INTEGER)
        assert value == Value(ValueKind.TEXT, "abc")

    def test_boolean_words(self):
        assert Value.from_input("yes", ValueKind.BOOLEAN).data is True
        assert Value.from_input("0", ValueKind.BOOLEAN).data is False

    def test_boolean_binds_as_int(self):
        assert Value(ValueKind.BOOLEAN, True).to_native() == 1


class TestDeclaredTypes:
    """Declared column types map to input kinds."""

    @pytest.mark.parametrize(
        "declared,kind",
        [
            ("INTEGER", ValueKind.INTEGER),
            ("bigint(20) unsigned", ValueKind.INTEGER),
            ("tinyint(1)", ValueKind.BOOLEAN),
            ("VARCHAR(30)", ValueKind.TEXT),
            ("decimal(10,2)", ValueKind.DECIMAL),
            ("DOUBLE", ValueKind.FLOAT),
            ("longblob", ValueKind.BLOB),
            ("datetime", ValueKind.DATETIME),
            ("date", ValueKind.DATE),
            ("time", ValueKind.TIME),
            ("", ValueKind.TEXT),
        ],
    )
    def test_mapping(self, declared, kind):
        assert kind_for_declared_type(declared) == kind
