from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from pg2sqlite.errors import ConnectivityError, SchemaCreationError
from pg2sqlite.infrastructure.catalog import render_create_table
from pg2sqlite.infrastructure.sqlite_store import SqliteStore
from pg2sqlite.pipeline.writer import TransactionalWriter
from tests.fakes import USERS_DDL


def test_create_then_reopen_keeps_tables(tmp_path: Path) -> None:
    path = tmp_path / "out.sqlite3"
    with SqliteStore.create(path) as store:
        store.create_table("users", USERS_DDL)

    with SqliteStore.open(path) as store:
        assert store.table_names() == ["users"]
        assert store.row_count("users") == 0


def test_create_refuses_existing_file_unless_overwrite(tmp_path: Path) -> None:
    path = tmp_path / "out.sqlite3"
    with SqliteStore.create(path) as store:
        store.create_table("users", USERS_DDL)

    with pytest.raises(ConnectivityError, match="already exists"):
        SqliteStore.create(path)

    with SqliteStore.create(path, overwrite=True) as store:
        assert store.table_names() == []


def test_open_missing_file_fails(tmp_path: Path) -> None:
    with pytest.raises(ConnectivityError):
        SqliteStore.open(tmp_path / "missing.sqlite3")


@pytest.mark.parametrize(
    "type_name",
    [
        "bigint",
        "jsonb",
        "uuid",
        "text[]",
        "integer[][]",
        "numeric(14,4)",
        "character varying(100)",
        "double precision",
        "timestamp(3) with time zone",
        "time without time zone",
        "interval",
        "interval day to second(3)",
        "interval year to month",
        "bit varying(8)",
        '"char"',
        '"MyEnum"',
        "other.mood",
        '"Other"."Mood"[]',
    ],
)
def test_source_column_types_are_accepted(tmp_path: Path, type_name: str) -> None:
    ddl = render_create_table("events", [("id", "bigint", True), ("v", type_name, False)], ["id"])
    with SqliteStore.create(tmp_path / "out.sqlite3") as store:
        store.create_table("events", ddl)
        assert store.insert_rows("events", [{"id": 1, "v": "x"}]) == 1
        assert store.table_names() == ["events"]


def test_bracketed_column_names_are_kept(tmp_path: Path) -> None:
    ddl = render_create_table(
        "t",
        [("id", "integer", True), ("score[1]", "integer[]", False), ("a[b]", "text", False)],
        primary_key=["id"],
    )
    with SqliteStore.create(tmp_path / "out.sqlite3") as store:
        store.create_table("t", ddl)
        TransactionalWriter(store).write_page("t", 0, [{"id": 1, "score[1]": 7, "a[b]": "x"}])

        (row,) = store.fetch_all("t")
        assert row.keys() == ["id", "score[1]", "a[b]"]
        assert (row["score[1]"], row["a[b]"]) == (7, "x")


def test_rejected_definition_raises_schema_creation_error(tmp_path: Path) -> None:
    with SqliteStore.create(tmp_path / "out.sqlite3") as store:
        with pytest.raises(SchemaCreationError) as excinfo:
            store.create_table("broken", "CREATE TABLE broken (id integer,")
    assert excinfo.value.table == "broken"
    assert isinstance(excinfo.value.__cause__, sqlite3.Error)


def test_insert_rows_is_all_or_nothing(tmp_path: Path) -> None:
    with SqliteStore.create(tmp_path / "out.sqlite3") as store:
        store.create_table("users", USERS_DDL)
        assert store.insert_rows("users", [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]) == 2

        with pytest.raises(sqlite3.IntegrityError):
            store.insert_rows("users", [{"id": 3, "name": "c"}, {"id": 1, "name": "dup"}])

        assert store.row_count("users") == 2
        assert [row["id"] for row in store.fetch_all("users")] == [1, 2]


def test_insert_empty_page_is_noop(tmp_path: Path) -> None:
    with SqliteStore.create(tmp_path / "out.sqlite3") as store:
        store.create_table("users", USERS_DDL)
        assert store.insert_rows("users", []) == 0
        assert store.row_count("users") == 0
