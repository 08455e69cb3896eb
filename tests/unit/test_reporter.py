from __future__ import annotations

from pathlib import Path

from rich.console import Console

from pg2sqlite.domain.models import MigrationResult, TableReport
from pg2sqlite.reporter import build_summary, print_summary


def _result() -> MigrationResult:
    return MigrationResult(
        output=Path("app.sqlite3"),
        tables=(
            TableReport(table="users", row_count=1500, pages=2, rows_written=1500),
            TableReport(table="audit", copy_data=False),
        ),
        duration_seconds=1.25,
        peak_rss_bytes=64 * 1024 * 1024,
        peak_threads=6,
    )


def test_summary_lists_every_table_and_total() -> None:
    console = Console(record=True, width=120)
    console.print(build_summary(_result()))
    text = " ".join(console.export_text().split())

    assert "users" in text
    assert "1,500" in text
    assert "audit" in text
    assert "schema only" in text
    assert "Total" in text
    assert "64.00 MB" in text
    assert "peak threads 6" in text


def test_print_summary_handles_empty_result() -> None:
    console = Console(record=True, width=80)
    print_summary(MigrationResult(output=Path("empty.sqlite3")), console=console)
    assert "No tables migrated" in console.export_text()
