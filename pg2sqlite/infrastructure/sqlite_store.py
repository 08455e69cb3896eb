"""
SQLite target store for pg2sqlite.

A thin wrapper around a single ``sqlite3`` connection. A migration run opens the
store twice: ``SqliteStore.create`` for the schema phase and ``SqliteStore.open``
for the data phase. The store does no locking of its own; concurrent callers
must serialize writes (see pg2sqlite.pipeline.writer).
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import List, Sequence

from pg2sqlite.domain.models import Row
from pg2sqlite.errors import ConnectivityError, SchemaCreationError
from pg2sqlite.infrastructure.catalog import quote_ident
from pg2sqlite.utils.logging import get_logger

log = get_logger(__name__)


class SqliteStore:
    """
    File-backed SQLite database used as the migration target.

    Use as a context manager; the connection is closed on exit.
    """

    def __init__(self, path: Path, connection: sqlite3.Connection) -> None:
        self.path = path
        self._conn = connection

    @classmethod
    def _connect(cls, path: Path) -> "SqliteStore":
        try:
            # Autocommit mode; transactions are opened explicitly by insert_rows.
            conn = sqlite3.connect(str(path), isolation_level=None, check_same_thread=False)
        except sqlite3.Error as exc:
            raise ConnectivityError(f"Cannot open SQLite file {path}: {exc}") from exc
        return cls(path, conn)

    @classmethod
    def create(cls, path: Path | str, overwrite: bool = False) -> "SqliteStore":
        """
        Create a new, empty store file.

        Raises
        ------
        ConnectivityError
            If ``path`` exists and ``overwrite`` is False, or it cannot be created.
        """
        path = Path(path)
        if path.exists():
            if not overwrite:
                raise ConnectivityError(f"Output file {path} already exists (use overwrite to replace it)")
            log.warning("Replacing existing output file", extra={"path": str(path)})
            path.unlink()
        path.parent.mkdir(parents=True, exist_ok=True)
        return cls._connect(path)

    @classmethod
    def open(cls, path: Path | str) -> "SqliteStore":
        """Reopen a store previously created with ``create``."""
        path = Path(path)
        if not path.exists():
            raise ConnectivityError(f"Output file {path} does not exist")
        return cls._connect(path)

    def create_table(self, table: str, ddl: str) -> None:
        """Execute ``ddl`` as rendered by ``render_create_table``."""
        try:
            self._conn.execute(ddl)
        except sqlite3.Error as exc:
            raise SchemaCreationError(table, f"Failed to create table '{table}': {exc}") from exc

    def insert_rows(self, table: str, rows: Sequence[Row]) -> int:
        """
        Insert ``rows`` into ``table`` in a single transaction.

        Either every row is committed or none is; the sqlite3 error propagates
        after rollback. Column names are taken from the first row.
        """
        if not rows:
            return 0
        columns = list(rows[0].keys())
        statement = "INSERT INTO {} ({}) VALUES ({})".format(
            quote_ident(table),
            ", ".join(quote_ident(col) for col in columns),
            ", ".join("?" for _ in columns),
        )
        values = [tuple(row[col] for col in columns) for row in rows]

        self._conn.execute("BEGIN IMMEDIATE")
        try:
            self._conn.executemany(statement, values)
        except BaseException:
            self._conn.execute("ROLLBACK")
            raise
        self._conn.execute("COMMIT")
        return len(values)

    def table_names(self) -> List[str]:
        cur = self._conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [row[0] for row in cur.fetchall()]

    def row_count(self, table: str) -> int:
        cur = self._conn.execute(f"SELECT COUNT(*) FROM {quote_ident(table)}")
        return int(cur.fetchone()[0])

    def fetch_all(self, table: str) -> List[sqlite3.Row]:
        cur = self._conn.cursor()
        cur.row_factory = sqlite3.Row
        cur.execute(f"SELECT * FROM {quote_ident(table)}")
        return cur.fetchall()

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "SqliteStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        del exc_type, exc, tb
        self.close()


__all__ = ["SqliteStore"]
