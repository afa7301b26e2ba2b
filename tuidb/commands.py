"""Non-interactive subcommands: profile management and one-shot queries."""

from __future__ import annotations

import csv
import json
import sys
from argparse import Namespace
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .config import ConnectionConfig, ConnectionStore
from .db.adapters.base import NonQueryResult, QueryResult
from .db.exceptions import ConnectError, QueryError
from .db.statements import split_statements
from .services.registry import ConnectionRegistry

console = Console()
err_console = Console(stderr=True)


def _store(args: Namespace) -> ConnectionStore:
    store = getattr(args, "store", None)
    if store is None:
        store = ConnectionStore()
        store.load()
    return store


def cmd_connection_list(args: Namespace) -> int:
    connections = _store(args).all()
    if not connections:
        console.print("No saved connections.")
        return 0
    table = Table(title="Connections")
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("Target")
    for config in connections:
        table.add_row(config.name, config.db_type, config.get_display_info())
    console.print(table)
    return 0


def _apply_fields(config: ConnectionConfig, args: Namespace) -> None:
    for field in ("server", "port", "database", "username", "password", "file_path"):
        value = getattr(args, field, None)
        if value is not None:
            setattr(config, field, value)


def cmd_connection_create(args: Namespace) -> int:
    store = _store(args)
    if store.get(args.name) is not None:
        err_console.print(f"[red]Connection '{args.name}' already exists.[/red]")
        return 1
    config = ConnectionConfig(name=args.name, db_type=args.db_type)
    _apply_fields(config, args)
    if config.is_file_based and not config.file_path:
        err_console.print("[red]--file-path is required for SQLite connections.[/red]")
        return 1
    if not config.is_file_based and not config.server:
        err_console.print(f"[red]--server is required for {config.db_type} connections.[/red]")
        return 1
    store.save(config)
    console.print(f"Created connection '{config.name}'.")
    return 0


def cmd_connection_edit(args: Namespace) -> int:
    store = _store(args)
    existing = store.get(args.connection_name)
    if existing is None:
        err_console.print(f"[red]Connection '{args.connection_name}' not found.[/red]")
        return 1
    config = ConnectionConfig(**vars(existing))
    if args.name:
        config.name = args.name
    _apply_fields(config, args)
    try:
        store.save(config, original_name=args.connection_name)
    except ValueError as e:
        err_console.print(f"[red]{e}[/red]")
        return 1
    console.print(f"Updated connection '{config.name}'.")
    return 0


def cmd_connection_delete(args: Namespace) -> int:
    if not _store(args).delete(args.connection_name):
        err_console.print(f"[red]Connection '{args.connection_name}' not found.[/red]")
        return 1
    console.print(f"Deleted connection '{args.connection_name}'.")
    return 0


def _print_result(result: QueryResult, output: str) -> None:
    if output == "json":
        rows = [dict(zip(result.columns, (v.to_native() for v in row))) for row in result.rows]
        json.dump(rows, sys.stdout, indent=2, default=str)
        sys.stdout.write("\n")
        return
    if output == "csv":
        writer = csv.writer(sys.stdout)
        writer.writerow(result.columns)
        for row in result.rows:
            writer.writerow(["" if v.is_null else v.edit_text() for v in row])
        return
    table = Table()
    for name in result.columns:
        table.add_column(name)
    for row in result.rows:
        table.add_row(*(v.display() for v in row))
    console.print(table)
    more = " (truncated)" if result.truncated else ""
    console.print(f"{result.row_count} row(s){more} in {result.elapsed_ms:.0f} ms", style="dim")


def cmd_query(args: Namespace) -> int:
    store = _store(args)
    config = store.get(args.connection)
    if config is None:
        err_console.print(f"[red]Connection '{args.connection}' not found.[/red]")
        return 1
    if args.database:
        config = ConnectionConfig(**{**vars(config), "database": args.database})

    if args.file:
        sql = Path(args.file).read_text(encoding="utf-8")
    elif args.query:
        sql = args.query
    else:
        err_console.print("[red]Either --query or --file is required.[/red]")
        return 1
    statements = split_statements(sql)
    if not statements:
        err_console.print("[red]Nothing to execute.[/red]")
        return 1

    limit = args.limit if args.limit > 0 else None
    registry = ConnectionRegistry()
    try:
        handle = registry.open(config)
    except ConnectError as e:
        err_console.print(f"[red]Connection failed ({e.kind.value}): {e}[/red]")
        return 1
    try:
        for index, statement in enumerate(statements):
            try:
                outcome = handle.run(lambda raw, s=statement: handle.adapter.execute(raw, s, max_rows=limit))
            except QueryError as e:
                where = f"Statement {index + 1}" if len(statements) > 1 else "Query"
                err_console.print(f"[red]{where} failed: {e}[/red]")
                return 1
            if isinstance(outcome, NonQueryResult):
                console.print(f"{outcome.rows_affected} row(s) affected")
            else:
                _print_result(outcome, args.format)
    finally:
        registry.close_all()
    return 0
