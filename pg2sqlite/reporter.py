from __future__ import annotations

from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table

from pg2sqlite.domain.models import MigrationResult


def _format_mb(value: Optional[int]) -> str:
    if not value:
        return "N/A"
    return f"{value / (1024 * 1024):.2f} MB"


def build_summary(result: MigrationResult) -> Table:
    """
    Build a rich table with one line per migrated table.

    Tables whose data was excluded are listed as schema only.
    """
    table = Table(
        title="pg2sqlite Migration Summary",
        box=box.ROUNDED,
        caption=(
            f"{result.output} │ {result.duration_seconds:.1f}s │ "
            f"peak memory {_format_mb(result.peak_rss_bytes)} │ "
            f"peak threads {result.peak_threads or 'N/A'}"
        ),
    )
    table.add_column("Table", style="cyan", no_wrap=True)
    table.add_column("Source Rows", justify="right", style="magenta")
    table.add_column("Pages", justify="right", style="blue")
    table.add_column("Rows Written", justify="right", style="bold green")
    table.add_column("Status", style="yellow")

    for report in result.tables:
        if report.copy_data:
            table.add_row(
                report.table,
                f"{report.row_count:,}",
                str(report.pages),
                f"{report.rows_written:,}",
                "copied",
            )
        else:
            table.add_row(report.table, "-", "-", "-", "[dim]schema only[/dim]")

    table.add_section()
    table.add_row("Total", "", "", f"{result.rows_written:,}", "")
    return table


def print_summary(result: MigrationResult, console: Optional[Console] = None) -> None:
    console = console or Console()
    if not result.tables:
        console.print("[yellow]No tables migrated.[/yellow]")
        return
    console.print(build_summary(result))


__all__ = ["build_summary", "print_summary"]
