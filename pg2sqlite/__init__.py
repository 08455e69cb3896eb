"""
pg2sqlite - replicate a PostgreSQL database into a standalone SQLite file.

The migration runs in two phases:

- Schema: list source tables, drop excluded ones, create each in SQLite
- Data: per table, count rows, fetch LIMIT/OFFSET pages on a thread pool,
  normalize values SQLite cannot store, and commit each page as one
  transaction through a single serialized writer

Per-table filters and sort orders, a default sort, and regex-based table and
data exclusions are configured through an immutable MigrationConfig.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from pg2sqlite.config import Settings, get_settings
from pg2sqlite.domain.models import (
    PAGE_SIZE,
    MigrationConfig,
    MigrationResult,
    PageUnit,
    TableDescriptor,
    TableReport,
)
from pg2sqlite.engine import MigrationEngine
from pg2sqlite.errors import (
    ConfigurationError,
    ConnectivityError,
    FetchError,
    MigrationError,
    SchemaCreationError,
    WriteError,
)
from pg2sqlite.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    "MigrationConfig",
    # Engine
    "MigrationEngine",
    "MigrationResult",
    "TableReport",
    "TableDescriptor",
    "PageUnit",
    "PAGE_SIZE",
    # Errors
    "MigrationError",
    "ConfigurationError",
    "ConnectivityError",
    "SchemaCreationError",
    "FetchError",
    "WriteError",
    # Logging
    "configure_logging",
    "get_logger",
]
