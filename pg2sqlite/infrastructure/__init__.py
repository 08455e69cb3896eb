"""
Infrastructure package for pg2sqlite.

Centralizes I/O with the two stores: the PostgreSQL source (pool factory and
catalog) and the SQLite target. Keep this layer free of scheduling logic.
"""

from pg2sqlite.infrastructure.catalog import PostgresCatalog, SourceCatalog, resolve_tables
from pg2sqlite.infrastructure.db_factory import build_dsn, open_source_pool
from pg2sqlite.infrastructure.sqlite_store import SqliteStore

__all__ = [
    "PostgresCatalog",
    "SourceCatalog",
    "SqliteStore",
    "build_dsn",
    "open_source_pool",
    "resolve_tables",
]
