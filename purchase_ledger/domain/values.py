"""
Typed value variants used across the ledger.

Provenance and category are closed variants rather than free-text strings so
that the resolution policy and the aggregation fold handle every case
explicitly.
"""

from datetime import date, datetime, timedelta, timezone
from enum import Enum

UNCATEGORIZED = "Uncategorized"


class Provenance(str, Enum):
    """Where a ledger entry came from."""

    QUOTE = "quote"
    IMPORT = "import"


def category_label(category: str | None) -> str:
    """Map an optional category to its reporting label.

    A missing or blank category is reported as ``"Uncategorized"``.
    """
    return stored_category(category) or UNCATEGORIZED


def stored_category(category: str | None) -> str | None:
    """The category as persisted on a ledger entry: blank becomes ``None``."""
    if category is None or not category.strip():
        return None
    return category


def month_key(moment: datetime) -> str:
    """``YYYY-MM`` of a timestamp, taken in UTC.

    Naive datetimes are treated as UTC (SQLite returns them that way).
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return f"{moment.year:04d}-{moment.month:02d}"


def as_utc(moment: datetime) -> datetime:
    """Attach UTC to a naive datetime, or convert an aware one to UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def month_bounds(moment: datetime) -> tuple[datetime, datetime]:
    """First and last instant (inclusive) of the UTC calendar month of ``moment``."""
    moment = as_utc(moment)
    start = moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        next_start = start.replace(year=start.year + 1, month=1)
    else:
        next_start = start.replace(month=start.month + 1)
    return start, next_start - timedelta(microseconds=1)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """First and last instant (inclusive) of a UTC calendar day."""
    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)


def lower_bound(value: date | datetime) -> datetime:
    """Inclusive lower bound: a datetime as-is, a date from its first instant."""
    if isinstance(value, datetime):
        return as_utc(value)
    return day_bounds(value)[0]


def upper_bound(value: date | datetime) -> datetime:
    """Inclusive upper bound: a datetime as-is, a date through its last instant."""
    if isinstance(value, datetime):
        return as_utc(value)
    return day_bounds(value)[1]
