"""
Concurrent paginated copy of one table.

For each table the scheduler counts matching rows, splits them into fixed-size
LIMIT/OFFSET pages and fans one unit per page out to a thread pool. Every unit
fetches its page on its own source connection, normalizes it and hands it to
the shared TransactionalWriter. ``migrate_table_data`` returns only once every
unit of the table has finished, and raises if any of them failed.
"""

from __future__ import annotations

from concurrent.futures import ALL_COMPLETED, Executor, Future, wait
from typing import Dict, List, Tuple

from pg2sqlite.domain.models import PAGE_SIZE, PageUnit, TableDescriptor, TableReport
from pg2sqlite.errors import FetchError, MigrationError
from pg2sqlite.infrastructure.catalog import SourceCatalog
from pg2sqlite.pipeline.normalizer import normalize_rows
from pg2sqlite.pipeline.writer import TransactionalWriter
from pg2sqlite.utils.logging import get_logger

log = get_logger(__name__)


def page_count(row_count: int, page_size: int = PAGE_SIZE) -> int:
    """
    Number of fetch units for ``row_count`` rows.

    Always at least one, and one more than strictly needed when ``row_count``
    is an exact multiple of ``page_size``; the surplus page is simply empty.
    """
    return row_count // page_size + 1


class BatchFetchScheduler:
    """
    Copies table data page by page over a caller-owned executor.

    Parameters
    ----------
    catalog : SourceCatalog
        Source used for counting and page fetches.
    writer : TransactionalWriter
        Shared writer; serializes all page transactions.
    executor : Executor
        Bounded worker pool. Not shut down by the scheduler.
    page_size : int
        Rows per fetch unit.
    """

    def __init__(
        self,
        catalog: SourceCatalog,
        writer: TransactionalWriter,
        executor: Executor,
        page_size: int = PAGE_SIZE,
    ) -> None:
        self._catalog = catalog
        self._writer = writer
        self._executor = executor
        self.page_size = page_size

    def build_units(self, table: TableDescriptor, row_count: int) -> List[PageUnit]:
        return [
            PageUnit(
                table=table.name,
                index=index,
                where=table.where,
                order_by=table.order_by,
                page_size=self.page_size,
            )
            for index in range(page_count(row_count, self.page_size))
        ]

    def _run_unit(self, unit: PageUnit) -> int:
        rows = self._catalog.fetch_page(unit)
        try:
            rows = normalize_rows(rows)
        except (TypeError, ValueError) as exc:
            raise FetchError(unit.table, unit.index, detail=f"cannot normalize row values: {exc}") from exc
        return self._writer.write_page(unit.table, unit.index, rows)

    def migrate_table_data(self, table: TableDescriptor) -> TableReport:
        """
        Copy every row of ``table`` that matches its filter.

        Blocks until all page units have completed. If any unit failed, all
        failures are logged and the one with the lowest page index is raised.
        """
        row_count = self._catalog.count_rows(table.name, table.where)
        units = self.build_units(table, row_count)
        log.info(
            f"Copying '{table.name}': {row_count} row(s) in {len(units)} page(s)",
            extra={"table": table.name, "rows": row_count, "pages": len(units)},
        )

        futures: Dict[Future, PageUnit] = {
            self._executor.submit(self._run_unit, unit): unit for unit in units
        }
        wait(futures, return_when=ALL_COMPLETED)

        written = 0
        failures: List[Tuple[PageUnit, BaseException]] = []
        for future, unit in futures.items():
            exc = future.exception()
            if exc is None:
                written += future.result()
            else:
                failures.append((unit, exc))

        if failures:
            failures.sort(key=lambda item: item[0].index)
            for unit, exc in failures:
                log.error(
                    f"Page {unit.index} of '{unit.table}' failed: {exc}",
                    extra={"table": unit.table, "page": unit.index},
                )
            unit, exc = failures[0]
            if isinstance(exc, MigrationError):
                raise exc
            raise FetchError(unit.table, unit.index, detail=repr(exc)) from exc

        log.info(
            f"Finished '{table.name}'",
            extra={"table": table.name, "rows_written": written, "pages": len(units)},
        )
        return TableReport(
            table=table.name,
            row_count=row_count,
            pages=len(units),
            rows_written=written,
            copy_data=True,
        )


__all__ = ["BatchFetchScheduler", "page_count"]
