"""
Schema phase of a migration: create every resolved table before any row is copied.
"""

from __future__ import annotations

from typing import Iterable, Protocol

from pg2sqlite.domain.models import TableDescriptor
from pg2sqlite.utils.logging import get_logger

log = get_logger(__name__)


class SchemaSink(Protocol):
    def create_table(self, table: str, ddl: str) -> None: ...


def create_table(store: SchemaSink, table: TableDescriptor) -> None:
    """Create ``table`` from its source DDL. SchemaCreationError aborts the run."""
    store.create_table(table.name, table.schema)
    log.info(f"Created table '{table.name}'", extra={"table": table.name})


def bootstrap_schemas(store: SchemaSink, tables: Iterable[TableDescriptor]) -> int:
    """Create all tables in listing order and return how many were created."""
    created = 0
    for table in tables:
        create_table(store, table)
        created += 1
    return created


__all__ = ["SchemaSink", "bootstrap_schemas", "create_table"]
