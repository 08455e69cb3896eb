"""
Utilities package for pg2sqlite.

Exports shared helpers for logging and profiling. Keep this package lightweight
and free of migration logic.
"""

from pg2sqlite.utils.logging import configure_logging, get_logger
from pg2sqlite.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
