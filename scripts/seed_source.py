"""
Demo source seeding script for pg2sqlite.

Creates a small PostgreSQL schema exercising the value kinds the migration
normalizes (timestamps, numerics, dates, uuids, json, arrays) and fills it with
deterministic pseudo-random rows through COPY.
"""

from __future__ import annotations

import random
import sys
import time
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterator, Tuple

import psycopg
import typer
from psycopg.types.json import Jsonb

from pg2sqlite.infrastructure.db_factory import build_dsn

app = typer.Typer(help="Create and seed demo tables in the source Postgres database.")

SCHEMA_SQL = """
DROP TABLE IF EXISTS users, logs, audit_trail;

CREATE TABLE users (
    id integer PRIMARY KEY,
    external_id uuid NOT NULL,
    name varchar(100) NOT NULL,
    balance numeric(14, 4) NOT NULL,
    is_active boolean NOT NULL,
    birthday date,
    created_at timestamp NOT NULL,
    tags text[],
    profile jsonb
);

CREATE TABLE logs (
    id bigint PRIMARY KEY,
    user_id integer,
    message text,
    logged_at timestamptz
);

CREATE TABLE audit_trail (
    id bigint PRIMARY KEY,
    action varchar(20) NOT NULL,
    happened_at timestamp NOT NULL
);
"""

_BASE_TS = datetime(2024, 1, 2, 3, 4, 5, 678000)


def _user_rows(rows: int, seed: int) -> Iterator[Tuple]:
    rng = random.Random(seed)
    for i in range(1, rows + 1):
        yield (
            i,
            uuid.UUID(int=rng.getrandbits(128)),
            f"user-{i:05d}",
            Decimal(rng.randint(0, 10**8)) / Decimal(10_000),
            rng.choice([True, False]),
            date(1970, 1, 1) + timedelta(days=rng.randint(0, 15_000)),
            _BASE_TS + timedelta(seconds=i * 37, microseconds=rng.randint(0, 999_999)),
            rng.sample(["alpha", "beta", "gamma", "delta"], k=rng.randint(0, 3)),
            Jsonb({"score": rng.randint(1, 100), "tier": rng.choice(["free", "pro"])}),
        )


def _audit_rows(rows: int) -> Iterator[Tuple]:
    for i in range(1, rows + 1):
        yield (i, "login" if i % 2 else "logout", _BASE_TS + timedelta(minutes=i))


def seed(dsn: str, users: int = 50, audit: int = 10, seed: int = 42) -> None:
    """Recreate the demo tables and load ``users`` user rows; ``logs`` stays empty."""
    with psycopg.connect(dsn) as conn:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
            with cur.copy(
                "COPY users (id, external_id, name, balance, is_active, birthday, created_at, tags, profile) "
                "FROM STDIN"
            ) as copy:
                for row in _user_rows(users, seed):
                    copy.write_row(row)
            with cur.copy("COPY audit_trail (id, action, happened_at) FROM STDIN") as copy:
                for row in _audit_rows(audit):
                    copy.write_row(row)
        conn.commit()


@app.command()
def main(
    users: int = typer.Option(50, "--users", "-u", help="Number of user rows to generate."),
    audit: int = typer.Option(10, "--audit", help="Number of audit rows to generate."),
    seed_value: int = typer.Option(42, "--seed", help="Deterministic RNG seed."),
    dsn: str | None = typer.Option(None, "--dsn", help="Optional DSN override for Postgres."),
) -> None:
    """
    Recreate the demo tables and load them using COPY.
    """
    start = time.perf_counter()
    typer.echo(f"Seeding users={users:,} audit_trail={audit:,} (seed={seed_value})")
    seed(dsn or build_dsn(), users=users, audit=audit, seed=seed_value)
    typer.echo(f"Seeding completed in {time.perf_counter() - start:.2f}s")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
