"""
Value normalization for rows on their way into SQLite.

SQLite stores text, integers, reals, blobs and NULL. Source values of a small
fixed set of other kinds are rendered as text here; everything else passes
through unchanged. Timestamps are deliberately lossy: no timezone, no
sub-second part.
"""

from __future__ import annotations

import json
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from functools import singledispatch
from ipaddress import IPv4Address, IPv4Interface, IPv4Network, IPv6Address, IPv6Interface, IPv6Network
from typing import Any, List
from uuid import UUID

from pg2sqlite.domain.models import Row

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@singledispatch
def normalize_value(value: Any) -> Any:
    return value


@normalize_value.register
def _(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


@normalize_value.register
def _(value: Decimal) -> str:
    return str(value)


@normalize_value.register
def _(value: date) -> str:
    return value.isoformat()


@normalize_value.register
def _(value: time) -> str:
    return value.strftime("%H:%M:%S")


@normalize_value.register
def _(value: timedelta) -> str:
    return str(value)


@normalize_value.register
def _(value: UUID) -> str:
    return str(value)


@normalize_value.register(IPv4Address)
@normalize_value.register(IPv6Address)
@normalize_value.register(IPv4Network)
@normalize_value.register(IPv6Network)
@normalize_value.register(IPv4Interface)
@normalize_value.register(IPv6Interface)
def _(value: Any) -> str:
    return str(value)


@normalize_value.register(dict)
@normalize_value.register(list)
def _(value: Any) -> str:
    return json.dumps(value, default=_json_default)


def _json_default(value: Any) -> Any:
    normalized = normalize_value(value)
    if normalized is value:
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
    return normalized


def normalize_row(row: Row) -> Row:
    """Normalize every value of ``row`` in place and return it."""
    for column, value in row.items():
        row[column] = normalize_value(value)
    return row


def normalize_rows(rows: List[Row]) -> List[Row]:
    return [normalize_row(row) for row in rows]


__all__ = ["TIMESTAMP_FORMAT", "normalize_value", "normalize_row", "normalize_rows"]
