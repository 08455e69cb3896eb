"""
Pipeline package for pg2sqlite.

Re-exports the migration stages so callers can import them from
`pg2sqlite.pipeline` directly: schema bootstrap, value normalization,
page scheduling and serialized writes.
"""

from pg2sqlite.pipeline.bootstrap import bootstrap_schemas, create_table
from pg2sqlite.pipeline.normalizer import normalize_row, normalize_rows, normalize_value
from pg2sqlite.pipeline.scheduler import BatchFetchScheduler, page_count
from pg2sqlite.pipeline.writer import TransactionalWriter

__all__ = [
    "BatchFetchScheduler",
    "TransactionalWriter",
    "bootstrap_schemas",
    "create_table",
    "normalize_row",
    "normalize_rows",
    "normalize_value",
    "page_count",
]
