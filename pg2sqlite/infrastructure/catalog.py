"""
Source table catalog for pg2sqlite.

Lists the tables to migrate, renders their CREATE TABLE definitions, counts rows
and fetches LIMIT/OFFSET pages. The engine depends on the SourceCatalog
protocol; PostgresCatalog is the implementation backed by a psycopg pool.

Filter predicates and sort specs are caller-supplied SQL fragments and are
embedded verbatim. They are not validated here; a malformed fragment fails the
count or fetch query that uses it.
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Iterator, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolTimeout

from pg2sqlite.domain.models import MigrationConfig, PageUnit, Row, TableDescriptor
from pg2sqlite.errors import ConnectivityError, FetchError
from pg2sqlite.utils.logging import get_logger

log = get_logger(__name__)

_LIST_TABLES = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = %s AND table_type = 'BASE TABLE'
    ORDER BY table_name
"""

_COLUMNS = """
    SELECT a.attname, format_type(a.atttypid, a.atttypmod), a.attnotnull
    FROM pg_catalog.pg_attribute a
    JOIN pg_catalog.pg_class c ON c.oid = a.attrelid
    JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    WHERE n.nspname = %s AND c.relname = %s AND a.attnum > 0 AND NOT a.attisdropped
    ORDER BY a.attnum
"""

_PRIMARY_KEY = """
    SELECT a.attname
    FROM pg_catalog.pg_index i
    JOIN pg_catalog.pg_class c ON c.oid = i.indrelid
    JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
    JOIN pg_catalog.pg_attribute a ON a.attrelid = c.oid AND a.attnum = ANY(i.indkey)
    WHERE i.indisprimary AND n.nspname = %s AND c.relname = %s
    ORDER BY array_position(i.indkey::int2[], a.attnum)
"""


@runtime_checkable
class SourceCatalog(Protocol):
    """
    Read-side interface the migration engine needs from a source database.

    Implementations must tolerate concurrent ``fetch_page`` calls from
    different worker threads.
    """

    def list_tables(self) -> List[str]:
        """Table names in a stable order."""
        ...

    def fetch_schema(self, table: str) -> str:
        """CREATE TABLE statement for ``table``."""
        ...

    def count_rows(self, table: str, where: Optional[str] = None) -> int:
        """Rows of ``table`` matching ``where`` (None or blank: all rows)."""
        ...

    def fetch_page(self, unit: PageUnit) -> List[Row]:
        """Rows of one LIMIT/OFFSET page, using the same filter as ``count_rows``."""
        ...


def where_clause(where: Optional[str]) -> str:
    """Filter predicate as embedded in queries; blank means every row."""
    if where is None or not where.strip():
        return "1=1"
    return f"({where})"


def order_clause(order_by: Optional[str]) -> str:
    if order_by is None or not order_by.strip():
        return ""
    return f" ORDER BY {order_by}"


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


# Trailing array dimensions, e.g. "integer[]" or "text[3][]".
_ARRAY_DIMS = re.compile(r"(?:\[\d*\])+$")
# One bare word with an optional "(n)" or "(n,m)" modifier.
_PLAIN_TYPE = re.compile(r"[A-Za-z_]\w*(?:\(\d+(?:,\s*\d+)?\))?")


def column_type(type_name: str) -> str:
    """
    Column type as written into the target DDL.

    Array dimensions are dropped. Anything other than a single bare word
    (multi-word types, schema-qualified enums, interval field lists) is quoted
    so SQLite parses it as one type name; affinity still follows its text.
    """
    base = _ARRAY_DIMS.sub("", type_name.strip())
    if _PLAIN_TYPE.fullmatch(base):
        return base
    return quote_ident(base)


def render_create_table(
    table: str,
    columns: Sequence[Tuple[str, str, bool]],
    primary_key: Sequence[str] = (),
) -> str:
    """
    Render a CREATE TABLE statement from (name, type, not_null) column triples.

    Column names are quoted verbatim; type names go through ``column_type``.
    """
    parts = [
        f"{quote_ident(name)} {column_type(type_name)}" + (" NOT NULL" if not_null else "")
        for name, type_name, not_null in columns
    ]
    if primary_key:
        parts.append("PRIMARY KEY (" + ", ".join(quote_ident(col) for col in primary_key) + ")")
    return f"CREATE TABLE {quote_ident(table)} (\n    " + ",\n    ".join(parts) + "\n)"


@contextmanager
def _source_errors(table: str, page: Optional[int] = None) -> Iterator[None]:
    try:
        yield
    except (psycopg.OperationalError, psycopg.InterfaceError, PoolTimeout) as exc:
        where = f"page {page} of '{table}'" if page is not None else f"'{table}'"
        raise ConnectivityError(f"Lost connection to source while reading {where}: {exc}") from exc
    except psycopg.Error as exc:
        raise FetchError(table, page, detail=str(exc).strip()) from exc


class PostgresCatalog:
    """
    SourceCatalog over a psycopg ConnectionPool.

    Every call borrows its own connection, so fetch workers never share one.
    """

    def __init__(self, pool: ConnectionPool, schema: str = "public") -> None:
        self._pool = pool
        self.schema = schema

    def _table(self, table: str) -> sql.Identifier:
        return sql.Identifier(self.schema, table)

    def list_tables(self) -> List[str]:
        with _source_errors(self.schema), self._pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(_LIST_TABLES, (self.schema,))
                return [row[0] for row in cur.fetchall()]

    def fetch_schema(self, table: str) -> str:
        with _source_errors(table), self._pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(_COLUMNS, (self.schema, table))
                columns = [(name, type_name, bool(not_null)) for name, type_name, not_null in cur.fetchall()]
                cur.execute(_PRIMARY_KEY, (self.schema, table))
                primary_key = [row[0] for row in cur.fetchall()]
        if not columns:
            raise FetchError(table, message=f"Table '{self.schema}.{table}' not found in source")
        return render_create_table(table, columns, primary_key)

    def count_rows(self, table: str, where: Optional[str] = None) -> int:
        query = sql.SQL("SELECT COUNT(1) FROM {table} WHERE {where}").format(
            table=self._table(table),
            where=sql.SQL(where_clause(where)),
        )
        with _source_errors(table), self._pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query)
                row = cur.fetchone()
        return int(row[0]) if row else 0

    def fetch_page(self, unit: PageUnit) -> List[Row]:
        query = sql.SQL("SELECT * FROM {table} WHERE {where}{order} LIMIT {limit} OFFSET {offset}").format(
            table=self._table(unit.table),
            where=sql.SQL(where_clause(unit.where)),
            order=sql.SQL(order_clause(unit.order_by)),
            limit=sql.Literal(unit.limit),
            offset=sql.Literal(unit.offset),
        )
        with _source_errors(unit.table, unit.index), self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query)
                return cur.fetchall()


def resolve_tables(catalog: SourceCatalog, config: MigrationConfig) -> List[TableDescriptor]:
    """
    List source tables, drop excluded ones and attach schema and overrides.

    Runs on the calling thread; any failure aborts the run.
    """
    descriptors: List[TableDescriptor] = []
    for name in catalog.list_tables():
        if config.is_table_excluded(name):
            log.info("Table excluded", extra={"table": name})
            continue
        descriptors.append(
            TableDescriptor(
                name=name,
                schema=catalog.fetch_schema(name),
                where=config.where_for(name),
                order_by=config.order_by_for(name),
                copy_data=not config.is_data_excluded(name),
            )
        )
    log.info(f"Resolved {len(descriptors)} table(s)", extra={"tables": [d.name for d in descriptors]})
    return descriptors


__all__ = [
    "SourceCatalog",
    "PostgresCatalog",
    "column_type",
    "order_clause",
    "quote_ident",
    "render_create_table",
    "resolve_tables",
    "where_clause",
]
