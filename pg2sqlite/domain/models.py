"""
Domain models for pg2sqlite.

- MigrationConfig: immutable run configuration (exclusions, per-table overrides,
  worker count). Built once before a run, never mutated while workers read it.
- TableDescriptor / PageUnit: the units of work flowing through the pipeline.
- TableReport / MigrationResult: what a run hands back to its caller.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

Row = Dict[str, Any]

# Rows per fetch unit. Fixed; not exposed as a setting.
PAGE_SIZE = 1000


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class MigrationConfig(BaseModel):
    """
    Immutable configuration of a single migration run.

    Per-table overrides take precedence over process-wide defaults. Exclusion
    patterns are regular expressions that must match the whole table name.
    """

    exclude_tables: Optional[str] = Field(None, description="Skip matching tables entirely.")
    exclude_data: Optional[str] = Field(
        None, description="Create matching tables but copy no rows."
    )
    where: Dict[str, str] = Field(default_factory=dict, description="Per-table filter predicate.")
    order_by: Dict[str, str] = Field(default_factory=dict, description="Per-table sort spec.")
    default_order_by: Optional[str] = Field(None, description="Fallback sort spec.")
    workers: int = Field(4, ge=1, description="Size of the fetch worker pool.")
    overwrite: bool = Field(False, description="Replace an existing output file.")

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @field_validator("exclude_tables", "exclude_data")
    @classmethod
    def _compiles(cls, value: Optional[str]) -> Optional[str]:
        if _blank(value):
            return None
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid regular expression {value!r}: {exc}") from exc
        return value

    def is_table_excluded(self, table: str) -> bool:
        return self.exclude_tables is not None and re.fullmatch(self.exclude_tables, table) is not None

    def is_data_excluded(self, table: str) -> bool:
        return self.exclude_data is not None and re.fullmatch(self.exclude_data, table) is not None

    def where_for(self, table: str) -> Optional[str]:
        """Filter predicate for ``table``; None means every row."""
        predicate = self.where.get(table)
        return None if _blank(predicate) else predicate

    def order_by_for(self, table: str) -> Optional[str]:
        """Sort spec for ``table``, falling back to the default; None means unsorted."""
        order = self.order_by.get(table)
        if _blank(order):
            order = self.default_order_by
        return None if _blank(order) else order


@dataclass(frozen=True)
class TableDescriptor:
    """A source table resolved at the start of a run."""

    name: str
    schema: str
    where: Optional[str] = None
    order_by: Optional[str] = None
    copy_data: bool = True


@dataclass(frozen=True)
class PageUnit:
    """One LIMIT/OFFSET slice of a table, fetched and written by a single worker."""

    table: str
    index: int
    where: Optional[str] = None
    order_by: Optional[str] = None
    page_size: int = PAGE_SIZE

    @property
    def offset(self) -> int:
        return self.index * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


@dataclass(frozen=True)
class TableReport:
    table: str
    row_count: int = 0
    pages: int = 0
    rows_written: int = 0
    copy_data: bool = True


@dataclass(frozen=True)
class MigrationResult:
    """Outcome of a completed run. ``output`` is the SQLite file that was written."""

    output: Path
    tables: Tuple[TableReport, ...] = field(default_factory=tuple)
    duration_seconds: float = 0.0
    peak_rss_bytes: Optional[int] = None
    peak_threads: Optional[int] = None
    cpu_percent: Optional[float] = None

    @property
    def rows_written(self) -> int:
        return sum(report.rows_written for report in self.tables)

    def table_names(self) -> List[str]:
        return [report.table for report in self.tables]


__all__ = [
    "PAGE_SIZE",
    "Row",
    "MigrationConfig",
    "TableDescriptor",
    "PageUnit",
    "TableReport",
    "MigrationResult",
]
