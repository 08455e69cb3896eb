from __future__ import annotations

import sys
from typing import Dict, List, Optional

import typer

from pg2sqlite.config import get_settings
from pg2sqlite.engine import MigrationEngine
from pg2sqlite.errors import ConfigurationError, MigrationError
from pg2sqlite.infrastructure.catalog import PostgresCatalog
from pg2sqlite.infrastructure.db_factory import build_dsn, open_source_pool
from pg2sqlite.reporter import print_summary
from pg2sqlite.utils.logging import configure_logging

app = typer.Typer(help="Copy a PostgreSQL schema and its rows into a SQLite file.")


def parse_pairs(values: Optional[List[str]], option: str) -> Optional[Dict[str, str]]:
    """
    Parse repeated ``TABLE=VALUE`` options into a mapping.

    Only the first ``=`` separates table from value, so predicates may contain more.
    """
    if not values:
        return None
    pairs: Dict[str, str] = {}
    for item in values:
        table, sep, value = item.partition("=")
        if not sep or not table.strip():
            raise ConfigurationError(f"{option} expects TABLE=VALUE, got {item!r}")
        pairs[table.strip()] = value.strip()
    return pairs


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} "
        f"schema={settings.db_schema} | output={settings.sqlite_output} "
        f"workers={settings.migration_workers}"
    )
    typer.echo(
        f"exclude_tables={settings.exclude_table_regex!r} exclude_data={settings.exclude_data_regex!r} "
        f"default_order_by={settings.default_order_by!r}"
    )


@app.command()
def tables() -> None:
    """
    List source tables and how each would be migrated.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    try:
        config = settings.to_migration_config()
        pool = open_source_pool(build_dsn(settings), max_size=1)
        try:
            names = PostgresCatalog(pool, schema=settings.db_schema).list_tables()
        finally:
            pool.close()
    except MigrationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    for name in names:
        if config.is_table_excluded(name):
            status = "excluded"
        elif config.is_data_excluded(name):
            status = "schema only"
        else:
            status = "schema + data"
        typer.echo(f"{name}\t{status}")


@app.command()
def migrate(
    output: Optional[str] = typer.Option(None, "--output", "-o", help="SQLite file to create."),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Fetch worker threads."),
    exclude_tables: Optional[str] = typer.Option(
        None, "--exclude-tables", help="Regex of tables to skip entirely."
    ),
    exclude_data: Optional[str] = typer.Option(
        None, "--exclude-data", help="Regex of tables to create without copying rows."
    ),
    where: Optional[List[str]] = typer.Option(
        None, "--where", help="Per-table filter, TABLE=PREDICATE (repeatable)."
    ),
    order_by: Optional[List[str]] = typer.Option(
        None, "--order-by", help="Per-table sort, TABLE=SORT (repeatable)."
    ),
    default_order_by: Optional[str] = typer.Option(
        None, "--default-order-by", help="Sort applied to tables without their own."
    ),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace an existing output file."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON."),
) -> None:
    """
    Run a full migration and print a per-table summary.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=json_logs or settings.log_json)

    try:
        config = settings.to_migration_config(
            workers=workers,
            exclude_tables=exclude_tables,
            exclude_data=exclude_data,
            where=parse_pairs(where, "--where"),
            order_by=parse_pairs(order_by, "--order-by"),
            default_order_by=default_order_by,
            overwrite=overwrite or None,
        )
        with MigrationEngine.from_settings(settings, output=output, config=config) as engine:
            result = engine.run()
    except MigrationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    print_summary(result)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
