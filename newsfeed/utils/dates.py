"""Timestamp helpers shared by the aggregator, filter engine and ranker.

Provider timestamps arrive in slightly different ISO-8601 flavours
(``2024-02-01T10:00:00Z``, ``2024-02-01T10:00:00+0000``, bare dates).  They
are parsed with ``dateutil`` and naive values are taken to be UTC so that
every comparison happens between aware datetimes.
"""
from datetime import datetime, time, timezone
from typing import Optional

from dateutil.parser import isoparse


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string into an aware datetime, or None if malformed."""
    if not value or not isinstance(value, str):
        return None
    try:
        dt = isoparse(value.strip())
    except (ValueError, OverflowError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def end_of_day(value: Optional[str]) -> Optional[datetime]:
    """Return the last representable instant of the day ``value`` falls on."""
    dt = parse_timestamp(value)
    if dt is None:
        return None
    return datetime.combine(dt.date(), time.max, tzinfo=dt.tzinfo)


def sort_key(value: Optional[str]) -> float:
    """POSIX timestamp for sorting; unparseable values sort as the oldest."""
    dt = parse_timestamp(value)
    if dt is None:
        return float("-inf")
    return dt.timestamp()


def compact_date(value: str) -> str:
    """``2024-02-01`` -> ``20240201`` (NYT ``begin_date``/``end_date`` format)."""
    return value.replace("-", "")
