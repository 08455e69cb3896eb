"""
Source connection factory utilities for pg2sqlite.

Builds the PostgreSQL DSN from settings and opens the psycopg connection pool
that the catalog and the fetch workers share. Opening fails fast: a source that
cannot be reached surfaces as ConnectivityError before any table is touched.
"""

from __future__ import annotations

from typing import Optional

import psycopg
from psycopg_pool import ConnectionPool, PoolTimeout

from pg2sqlite.config import Settings, get_settings
from pg2sqlite.errors import ConnectivityError
from pg2sqlite.utils.logging import get_logger

log = get_logger(__name__)

CONNECT_TIMEOUT_SECONDS = 30.0


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def open_source_pool(
    dsn: str,
    max_size: int,
    timeout: float = CONNECT_TIMEOUT_SECONDS,
) -> ConnectionPool:
    """
    Open a synchronous connection pool against the source database.

    Parameters
    ----------
    dsn : str
        PostgreSQL connection string.
    max_size : int
        Maximum total connections; one per fetch worker plus the calling thread.
    timeout : float
        Seconds to wait for the first connection before giving up.

    Returns
    -------
    ConnectionPool
        An open pool; the caller owns it and must close it.

    Raises
    ------
    ConnectivityError
        If no connection can be established within ``timeout``.
    """
    pool = ConnectionPool(conninfo=dsn, min_size=1, max_size=max_size, open=False)
    try:
        pool.open(wait=True, timeout=timeout)
    except (PoolTimeout, psycopg.OperationalError) as exc:
        pool.close()
        raise ConnectivityError(f"Cannot connect to source database: {exc}") from exc
    log.info("Source pool opened", extra={"max_size": max_size})
    return pool


__all__ = ["CONNECT_TIMEOUT_SECONDS", "build_dsn", "open_source_pool"]
