from __future__ import annotations

import sqlite3
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List

import pytest

from pg2sqlite.domain.models import Row
from pg2sqlite.errors import WriteError
from pg2sqlite.infrastructure.sqlite_store import SqliteStore
from pg2sqlite.pipeline.writer import TransactionalWriter
from tests.fakes import USERS_DDL

PAGES = 12


class _SerializationProbe:
    """Sink that records how many inserts were ever in flight at once."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self.in_flight = 0
        self.max_in_flight = 0
        self.pages: List[str] = []

    def insert_rows(self, table: str, rows: List[Row]) -> int:
        with self._guard:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        time.sleep(0.005)
        with self._guard:
            self.in_flight -= 1
            self.pages.append(table)
        return len(rows)


def test_writes_never_overlap_across_tables() -> None:
    probe = _SerializationProbe()
    writer = TransactionalWriter(probe)
    barrier = threading.Barrier(4)

    def write(page: int) -> int:
        if page < 4:
            barrier.wait(timeout=5)
        table = "users" if page % 2 else "logs"
        return writer.write_page(table, page, [{"id": page}])

    with ThreadPoolExecutor(max_workers=4) as pool:
        written = list(pool.map(write, range(PAGES)))

    assert written == [1] * PAGES
    assert len(probe.pages) == PAGES
    assert probe.max_in_flight == 1


def test_failed_page_raises_write_error_and_keeps_earlier_pages(tmp_path: Path) -> None:
    with SqliteStore.create(tmp_path / "out.sqlite3") as store:
        store.create_table("users", USERS_DDL)
        writer = TransactionalWriter(store)

        assert writer.write_page("users", 0, [{"id": 1}, {"id": 2}]) == 2
        with pytest.raises(WriteError) as excinfo:
            writer.write_page("users", 1, [{"id": 3}, {"id": 2}])

        assert excinfo.value.table == "users"
        assert excinfo.value.page == 1
        assert isinstance(excinfo.value.__cause__, sqlite3.IntegrityError)
        assert store.row_count("users") == 2


def test_lock_is_released_after_failure(tmp_path: Path) -> None:
    lock = threading.Lock()
    with SqliteStore.create(tmp_path / "out.sqlite3") as store:
        store.create_table("users", USERS_DDL)
        writer = TransactionalWriter(store, lock=lock)

        with pytest.raises(WriteError):
            writer.write_page("missing_table", 0, [{"id": 1}])

        assert not lock.locked()
        assert writer.write_page("users", 1, [{"id": 1}]) == 1
