"""Canonical provider registry.

This module is the single source of truth for:
- supported provider ids (db_type)
- display names and capabilities
- adapter classes
"""

from __future__ import annotations

from dataclasses import dataclass

from .adapters.base import DatabaseAdapter
from .adapters.mariadb import MariaDBAdapter
from .adapters.mysql import MySQLAdapter
from .adapters.sqlite import SQLiteAdapter


@dataclass(frozen=True)
class ProviderSpec:
    display_name: str
    adapter_cls: type[DatabaseAdapter]
    default_port: str = ""
    is_file_based: bool = False
    dsn_schemes: tuple[str, ...] = ()


PROVIDERS: dict[str, ProviderSpec] = {
    "sqlite": ProviderSpec(
        display_name="SQLite",
        adapter_cls=SQLiteAdapter,
        is_file_based=True,
    ),
    "mysql": ProviderSpec(
        display_name="MySQL",
        adapter_cls=MySQLAdapter,
        default_port="3306",
        dsn_schemes=("mysql",),
    ),
    "mariadb": ProviderSpec(
        display_name="MariaDB",
        adapter_cls=MariaDBAdapter,
        default_port="3306",
        dsn_schemes=("mariadb", "mysql"),
    ),
}


def get_supported_db_types() -> list[str]:
    return list(PROVIDERS.keys())


def get_provider_spec(db_type: str) -> ProviderSpec:
    spec = PROVIDERS.get(db_type)
    if spec is None:
        raise ValueError(f"Unknown database type: {db_type}")
    return spec


def get_adapter(db_type: str) -> DatabaseAdapter:
    return get_provider_spec(db_type).adapter_cls()


def get_default_port(db_type: str) -> str:
    spec = PROVIDERS.get(db_type)
    return spec.default_port if spec else ""


def get_display_name(db_type: str) -> str:
    spec = PROVIDERS.get(db_type)
    return spec.display_name if spec else db_type


def is_file_based(db_type: str) -> bool:
    spec = PROVIDERS.get(db_type)
    return spec.is_file_based if spec else False
