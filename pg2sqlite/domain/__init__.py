"""
Domain package for pg2sqlite.

Exports the configuration and work-unit models shared by the engine and the
pipeline components. Keep this package free of I/O.
"""

from pg2sqlite.domain.models import (
    PAGE_SIZE,
    MigrationConfig,
    MigrationResult,
    PageUnit,
    Row,
    TableDescriptor,
    TableReport,
)

__all__ = [
    "PAGE_SIZE",
    "MigrationConfig",
    "MigrationResult",
    "PageUnit",
    "Row",
    "TableDescriptor",
    "TableReport",
]
