"""
Exception hierarchy for pg2sqlite.

Every failure raised by the migration engine derives from MigrationError so the
CLI (and library callers) can treat a run as a single fallible operation. Driver
exceptions (psycopg, sqlite3) are always chained via ``raise ... from exc``.
"""

from __future__ import annotations

from typing import Optional


class MigrationError(Exception):
    """Base class for all migration failures. A run never partially succeeds."""


class ConfigurationError(MigrationError):
    """Invalid settings: bad regex, non-positive worker count, malformed overrides."""


class ConnectivityError(MigrationError):
    """The source or target store cannot be reached or opened."""


class SchemaCreationError(MigrationError):
    """The target store rejected a table definition."""

    def __init__(self, table: str, message: Optional[str] = None) -> None:
        self.table = table
        super().__init__(message or f"Failed to create table '{table}' in target store")


class _PageError(MigrationError):
    action = "process"

    def __init__(
        self,
        table: str,
        page: Optional[int] = None,
        message: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> None:
        self.table = table
        self.page = page
        if message is None:
            where = f"page {page} of '{table}'" if page is not None else f"'{table}'"
            message = f"Failed to {self.action} {where}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class FetchError(_PageError):
    """A source query failed. ``page`` is None for count and schema queries."""

    action = "fetch"


class WriteError(_PageError):
    """A page transaction failed; the page was rolled back, earlier pages stay."""

    action = "write"


__all__ = [
    "MigrationError",
    "ConfigurationError",
    "ConnectivityError",
    "SchemaCreationError",
    "FetchError",
    "WriteError",
]
