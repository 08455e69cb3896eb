"""
Shared pytest fixtures.

Unit tests run against ``tests.fakes.InMemoryCatalog`` and a real SQLite file
under ``tmp_path``. Integration tests need a PostgreSQL server described by the
usual ``DB_*`` variables and are skipped when it cannot be reached.
"""

from __future__ import annotations

from typing import Iterator

import psycopg
import pytest

from pg2sqlite.config import Settings
from pg2sqlite.infrastructure.db_factory import build_dsn
from tests.fakes import LOGS_DDL, USERS_DDL, InMemoryCatalog, make_users

SEED_USERS = 50
SEED_AUDIT = 10
PROBE_TIMEOUT_SECONDS = 5


@pytest.fixture
def users_and_logs() -> InMemoryCatalog:
    """Source with ``users`` (50 rows) and an empty ``logs`` table."""
    return InMemoryCatalog(
        {"users": (USERS_DDL, make_users(SEED_USERS)), "logs": (LOGS_DDL, [])}
    )


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    # Reads DB_* from the environment (or .env), falling back to a local server.
    return Settings(log_level="DEBUG")


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    return build_dsn(test_settings)


@pytest.fixture(scope="session")
def source_reachable(test_dsn: str) -> bool:
    try:
        with psycopg.connect(test_dsn, connect_timeout=PROBE_TIMEOUT_SECONDS) as conn:
            conn.execute("SELECT 1")
    except psycopg.Error:
        return False
    return True


@pytest.fixture
def seeded_source(test_dsn: str, source_reachable: bool) -> Iterator[str]:
    """
    Demo tables from ``scripts/seed_source.py``: users (50 rows), logs (empty)
    and audit_trail (10 rows). Yields the DSN and drops the tables afterwards.
    """
    if not source_reachable:
        pytest.skip("PostgreSQL source not reachable")

    from scripts.seed_source import seed

    seed(test_dsn, users=SEED_USERS, audit=SEED_AUDIT, seed=42)
    yield test_dsn
    with psycopg.connect(test_dsn) as conn:
        conn.execute("DROP TABLE IF EXISTS users, logs, audit_trail")
