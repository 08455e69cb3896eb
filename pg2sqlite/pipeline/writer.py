"""
Serialized page writer.

SQLite accepts one writer at a time and the store has no locking of its own, so
every page transaction goes through a single lock. Fetch workers only contend
here; their source reads stay fully parallel.
"""

from __future__ import annotations

import sqlite3
import threading
from typing import List, Optional, Protocol

from pg2sqlite.domain.models import Row
from pg2sqlite.errors import WriteError
from pg2sqlite.utils.logging import get_logger

log = get_logger(__name__)


class PageSink(Protocol):
    def insert_rows(self, table: str, rows: List[Row]) -> int: ...


class TransactionalWriter:
    """
    Appends pages to the target store, one transaction per page, one at a time.

    A single writer instance must be shared by all workers of a run.
    """

    def __init__(self, store: PageSink, lock: Optional[threading.Lock] = None) -> None:
        self._store = store
        self._lock = lock or threading.Lock()

    def write_page(self, table: str, page: int, rows: List[Row]) -> int:
        """
        Commit ``rows`` as one transaction and return how many were written.

        Raises
        ------
        WriteError
            If the transaction fails. Nothing from this page is kept; pages
            committed earlier are unaffected.
        """
        with self._lock:
            try:
                written = self._store.insert_rows(table, rows)
            except sqlite3.Error as exc:
                raise WriteError(table, page, detail=str(exc)) from exc
        log.debug("Page committed", extra={"table": table, "page": page, "rows": written})
        return written


__all__ = ["PageSink", "TransactionalWriter"]
