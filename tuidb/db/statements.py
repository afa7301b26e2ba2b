"""Splitting a query buffer into statements.

Statements end at a ``;`` outside quotes and comments, or at a blank line.
Offsets into the original buffer are kept so the editor can find the
statement under its cursor.
"""

from __future__ import annotations

from dataclasses import dataclass

import sqlparse
from sqlparse import tokens as T
from sqlparse.lexer import tokenize

# Leading keywords of statements that change which tables or schemas exist.
SCHEMA_CHANGE_KEYWORDS = frozenset({"CREATE", "DROP", "ALTER", "RENAME", "USE", "ATTACH", "DETACH"})


@dataclass(frozen=True)
class StatementSpan:
    """One statement and where it sits in the buffer.

    ``start``/``end`` bound the statement text itself. ``region_start`` and
    ``region_end`` bound everything up to the neighbouring delimiters, so
    every offset in the buffer belongs to exactly one region.
    """

    text: str
    start: int
    end: int
    region_start: int
    region_end: int

    def contains(self, offset: int) -> bool:
        return self.start <= offset <= self.end


def _is_blank(ttype) -> bool:
    return ttype in T.Whitespace


def _line_breaks(value: str) -> int:
    return value.count("\n") + value.count("\r") - value.count("\r\n")


def statement_spans(text: str) -> list[StatementSpan]:
    """All statements in ``text`` in source order.

    Comment-only regions are not statements and are skipped.
    """
    spans: list[StatementSpan] = []
    region_start = 0
    code_start: int | None = None
    code_end = 0
    pending_breaks = 0
    pos = 0

    def close(region_end: int) -> None:
        nonlocal code_start, region_start
        if code_start is not None:
            spans.append(
                StatementSpan(
                    text=text[code_start:code_end],
                    start=code_start,
                    end=code_end,
                    region_start=region_start,
                    region_end=region_end,
                )
            )
        code_start = None
        region_start = region_end

    for ttype, value in tokenize(text):
        token_start = pos
        pos += len(value)

        if ttype in T.Punctuation and value == ";":
            close(pos)
            pending_breaks = 0
            continue

        if _is_blank(ttype):
            pending_breaks += _line_breaks(value)
            if pending_breaks >= 2 and code_start is not None:
                close(token_start)
            continue

        if ttype in T.Comment:
            # Single-line comments swallow their line break.
            pending_breaks = _line_breaks(value)
            continue

        pending_breaks = 0
        if code_start is None:
            code_start = token_start
        code_end = pos

    close(len(text))
    return spans


def split_statements(text: str) -> list[str]:
    """Statement texts in source order, without trailing semicolons."""
    return [span.text for span in statement_spans(text)]


def statement_at(text: str, offset: int) -> StatementSpan | None:
    """The statement whose span contains ``offset``.

    A cursor sitting in the whitespace after a statement (up to the next
    delimiter) still selects it.
    """
    spans = statement_spans(text)
    for span in spans:
        if span.contains(offset):
            return span
    for span in spans:
        if span.region_start <= offset < span.region_end:
            return span
    return None


def leading_keyword(sql: str) -> str:
    parsed = sqlparse.parse(sql)
    if not parsed:
        return ""
    first = parsed[0].token_first(skip_cm=True)
    if first is None:
        return ""
    return first.normalized.split()[0].upper() if first.normalized else ""


def is_schema_change(sql: str) -> bool:
    """True for statements after which cached table lists are stale."""
    return leading_keyword(sql) in SCHEMA_CHANGE_KEYWORDS
