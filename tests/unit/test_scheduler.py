from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterator, List

import pytest

from pg2sqlite.domain.models import PageUnit, Row, TableDescriptor
from pg2sqlite.errors import FetchError, WriteError
from pg2sqlite.infrastructure.sqlite_store import SqliteStore
from pg2sqlite.pipeline.scheduler import BatchFetchScheduler, page_count
from pg2sqlite.pipeline.writer import TransactionalWriter
from tests.fakes import USERS_DDL, InMemoryCatalog, make_users

PAGE_SIZE = 7


@pytest.fixture
def executor() -> Iterator[ThreadPoolExecutor]:
    pool = ThreadPoolExecutor(max_workers=4)
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def store(tmp_path: Path) -> Iterator[SqliteStore]:
    with SqliteStore.create(tmp_path / "out.sqlite3") as target:
        target.create_table("users", USERS_DDL)
        yield target


def _users_table(**kwargs) -> TableDescriptor:
    return TableDescriptor(name="users", schema=USERS_DDL, **kwargs)


@pytest.mark.parametrize(
    ("rows", "size", "expected"),
    [(0, 1000, 1), (50, 1000, 1), (999, 1000, 1), (1000, 1000, 2), (1001, 1000, 2), (2500, 1000, 3)],
)
def test_page_count_always_adds_one(rows: int, size: int, expected: int) -> None:
    assert page_count(rows, size) == expected


def test_every_row_copied_exactly_once(executor, store) -> None:
    catalog = InMemoryCatalog({"users": (USERS_DDL, make_users(50))})
    scheduler = BatchFetchScheduler(catalog, TransactionalWriter(store), executor, page_size=PAGE_SIZE)

    report = scheduler.migrate_table_data(_users_table(order_by="id"))

    assert report.row_count == 50
    assert report.pages == 50 // PAGE_SIZE + 1
    assert report.rows_written == 50
    assert sorted(unit.index for unit in catalog.fetched_units) == list(range(report.pages))
    ids = [row["id"] for row in store.fetch_all("users")]
    assert sorted(ids) == list(range(1, 51))
    assert len(set(ids)) == len(ids)


def test_exact_multiple_issues_one_extra_empty_page(executor, store) -> None:
    catalog = InMemoryCatalog({"users": (USERS_DDL, make_users(PAGE_SIZE * 3))})
    scheduler = BatchFetchScheduler(catalog, TransactionalWriter(store), executor, page_size=PAGE_SIZE)

    report = scheduler.migrate_table_data(_users_table(order_by="id"))

    assert report.pages == 4
    assert len(catalog.fetched_units) == 4
    assert store.row_count("users") == PAGE_SIZE * 3


def test_filter_and_sort_are_passed_to_count_and_every_unit(executor, store) -> None:
    catalog = InMemoryCatalog(
        {"users": (USERS_DDL, make_users(30))},
        predicates={"id > 10": lambda row: row["id"] > 10},
    )
    scheduler = BatchFetchScheduler(catalog, TransactionalWriter(store), executor, page_size=PAGE_SIZE)

    report = scheduler.migrate_table_data(_users_table(where="id > 10", order_by="id DESC"))

    assert catalog.count_calls == [("users", "id > 10")]
    assert report.row_count == 20
    assert all(u.where == "id > 10" and u.order_by == "id DESC" for u in catalog.fetched_units)
    assert sorted(row["id"] for row in store.fetch_all("users")) == list(range(11, 31))


class _CapturingSink:
    def __init__(self) -> None:
        self.rows: List[Row] = []

    def insert_rows(self, table: str, rows: List[Row]) -> int:
        self.rows.extend(rows)
        return len(rows)


def test_values_are_normalized_before_writing(executor) -> None:
    sink = _CapturingSink()
    catalog = InMemoryCatalog({"users": (USERS_DDL, make_users(1))})
    scheduler = BatchFetchScheduler(catalog, TransactionalWriter(sink), executor)

    scheduler.migrate_table_data(_users_table())

    (row,) = sink.rows
    assert row["created_at"] == "2024-01-02 03:04:06"
    assert row["balance"] == "12346.6700"


class _SlowCatalog(InMemoryCatalog):
    """Delays fetches and tracks how many overlap."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._guard = threading.Lock()
        self.active = 0
        self.max_active = 0
        self.finished = 0

    def fetch_page(self, unit: PageUnit) -> List[Row]:
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(0.02)
        try:
            return super().fetch_page(unit)
        finally:
            with self._guard:
                self.active -= 1
                self.finished += 1


def test_fetches_overlap_and_call_returns_after_all_units(executor, store) -> None:
    catalog = _SlowCatalog({"users": (USERS_DDL, make_users(40))})
    scheduler = BatchFetchScheduler(catalog, TransactionalWriter(store), executor, page_size=5)

    report = scheduler.migrate_table_data(_users_table())

    assert catalog.finished == report.pages == 9
    assert catalog.max_active > 1
    assert store.row_count("users") == 40


class _FailingFetchCatalog(_SlowCatalog):
    def __init__(self, *args, failing_pages=(), **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.failing_pages = set(failing_pages)

    def fetch_page(self, unit: PageUnit) -> List[Row]:
        if unit.index in self.failing_pages:
            with self._guard:
                self.finished += 1
            raise FetchError(unit.table, unit.index, detail="connection reset")
        return super().fetch_page(unit)


def test_fetch_failure_surfaces_after_all_units_finish(executor, store) -> None:
    catalog = _FailingFetchCatalog({"users": (USERS_DDL, make_users(40))}, failing_pages={3, 1})
    scheduler = BatchFetchScheduler(catalog, TransactionalWriter(store), executor, page_size=5)

    with pytest.raises(FetchError) as excinfo:
        scheduler.migrate_table_data(_users_table())

    assert excinfo.value.page == 1
    assert catalog.finished == 9
    # The other six data pages (and the trailing empty one) were still committed.
    assert store.row_count("users") == 30


def test_unexpected_worker_exception_is_wrapped(executor, store) -> None:
    class _Broken(InMemoryCatalog):
        def fetch_page(self, unit: PageUnit) -> List[Row]:
            raise KeyError("boom")

    catalog = _Broken({"users": (USERS_DDL, make_users(3))})
    scheduler = BatchFetchScheduler(catalog, TransactionalWriter(store), executor)

    with pytest.raises(FetchError) as excinfo:
        scheduler.migrate_table_data(_users_table())

    assert excinfo.value.table == "users"
    assert excinfo.value.page == 0
    assert isinstance(excinfo.value.__cause__, KeyError)


def test_write_failure_reports_table_and_page(executor, store) -> None:
    rows = make_users(PAGE_SIZE * 2 + 1)
    # Page 2 holds the last user twice, so it fails whatever order pages commit in.
    rows.append(dict(rows[-1], name="duplicate"))
    catalog = InMemoryCatalog({"users": (USERS_DDL, rows)})
    scheduler = BatchFetchScheduler(catalog, TransactionalWriter(store), executor, page_size=PAGE_SIZE)

    with pytest.raises(WriteError) as excinfo:
        scheduler.migrate_table_data(_users_table())

    assert excinfo.value.table == "users"
    assert excinfo.value.page == 2
    assert store.row_count("users") == PAGE_SIZE * 2
