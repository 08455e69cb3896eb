"""
Migration engine: replicate a PostgreSQL schema into a SQLite file.

Usage (example):
    from pg2sqlite.engine import MigrationEngine

    with MigrationEngine.from_settings(get_settings(), output="app.sqlite3") as engine:
        result = engine.run()
    print(result.output, result.rows_written)

A run has two phases, each with its own target handle:
1. schema: resolve tables, then create all of them in a fresh SQLite file;
2. data: for every table not data-excluded, copy its rows page by page.
Tables are processed one after another; pages of a table run concurrently.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

from psycopg_pool import ConnectionPool

from pg2sqlite.config import Settings
from pg2sqlite.domain.models import (
    PAGE_SIZE,
    MigrationConfig,
    MigrationResult,
    TableDescriptor,
    TableReport,
)
from pg2sqlite.infrastructure.catalog import PostgresCatalog, SourceCatalog, resolve_tables
from pg2sqlite.infrastructure.db_factory import build_dsn, open_source_pool
from pg2sqlite.infrastructure.sqlite_store import SqliteStore
from pg2sqlite.pipeline.bootstrap import bootstrap_schemas
from pg2sqlite.pipeline.scheduler import BatchFetchScheduler
from pg2sqlite.pipeline.writer import TransactionalWriter
from pg2sqlite.utils.logging import get_logger
from pg2sqlite.utils.profiler import profile_block

log = get_logger(__name__)


class MigrationEngine:
    """
    Owns the worker pool for a migration and drives both phases.

    The pool size is fixed here, at construction. Call ``close()`` (or use the
    engine as a context manager) to release the workers and, when the engine
    opened it, the source connection pool.
    """

    def __init__(
        self,
        catalog: SourceCatalog,
        output: Path | str,
        config: Optional[MigrationConfig] = None,
        page_size: int = PAGE_SIZE,
        source_pool: Optional[ConnectionPool] = None,
    ) -> None:
        self.config = config or MigrationConfig()
        self.output = Path(output)
        self.page_size = page_size
        self._catalog = catalog
        self._source_pool = source_pool
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.workers, thread_name_prefix="fetch"
        )
        self._closed = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        output: Path | str | None = None,
        config: Optional[MigrationConfig] = None,
    ) -> "MigrationEngine":
        """
        Build an engine reading from the PostgreSQL source described by ``settings``.

        The source pool is sized for one connection per worker plus the calling
        thread and is closed together with the engine.
        """
        config = config or settings.to_migration_config()
        pool = open_source_pool(build_dsn(settings), max_size=config.workers + 1)
        return cls(
            catalog=PostgresCatalog(pool, schema=settings.db_schema),
            output=output or settings.sqlite_output,
            config=config,
            source_pool=pool,
        )

    def resolve_tables(self) -> List[TableDescriptor]:
        return resolve_tables(self._catalog, self.config)

    def run(self) -> MigrationResult:
        """
        Execute the migration and return its result.

        Raises
        ------
        MigrationError
            On the first failure of any kind; there is no partial-success mode.
        """
        if self._closed:
            raise RuntimeError("MigrationEngine is closed")

        log.info(
            "[MIGRATION START]",
            extra={"output": str(self.output), "workers": self.config.workers},
        )
        with profile_block("migration") as stats:
            tables = self.resolve_tables()

            with SqliteStore.create(self.output, overwrite=self.config.overwrite) as store:
                bootstrap_schemas(store, tables)

            reports: List[TableReport] = []
            with SqliteStore.open(self.output) as store:
                scheduler = BatchFetchScheduler(
                    self._catalog,
                    TransactionalWriter(store),
                    self._executor,
                    page_size=self.page_size,
                )
                for table in tables:
                    if not table.copy_data:
                        log.info(f"Skipping data of '{table.name}'", extra={"table": table.name})
                        reports.append(TableReport(table=table.name, copy_data=False))
                        continue
                    reports.append(scheduler.migrate_table_data(table))

        result = MigrationResult(
            output=self.output,
            tables=tuple(reports),
            duration_seconds=stats.duration_seconds,
            peak_rss_bytes=stats.peak_rss_bytes,
            peak_threads=stats.peak_threads,
            cpu_percent=stats.cpu_percent,
        )
        log.info(
            f"[MIGRATION COMPLETE] {len(reports)} table(s), {result.rows_written} row(s)",
            extra={"output": str(self.output), "duration": round(stats.duration_seconds, 2)},
        )
        return result

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)
        if self._source_pool is not None:
            self._source_pool.close()

    def __enter__(self) -> "MigrationEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        del exc_type, exc, tb
        self.close()


__all__ = ["MigrationEngine"]
