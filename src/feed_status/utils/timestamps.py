from __future__ import annotations

import calendar
import time
from datetime import datetime, timezone
from typing import Any

from dateutil import parser


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat_utc(value: datetime) -> str:
    return to_utc(value).isoformat()


def parse_timestamp(value: Any) -> datetime | None:
    """Parse stored ISO strings and feedparser struct_time values into aware UTC datetimes."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, time.struct_time):
        return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc)
    if not isinstance(value, str) or not value.strip():
        return None

    try:
        return to_utc(parser.isoparse(value.strip()))
    except ValueError:
        pass
    try:
        return to_utc(parser.parse(value.strip()))
    except (ValueError, TypeError, OverflowError):
        return None


def format_timestamp(value: datetime | None) -> str:
    if value is None:
        return "unknown"
    return to_utc(value).strftime("%Y-%m-%d %H:%M:%S UTC")
