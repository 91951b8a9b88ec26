"""Calendar helpers shared by footprint gating and dashboard aggregations."""

from __future__ import annotations

from datetime import date, datetime, time, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from drivers that drop tzinfo."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def add_months(year: int, month: int, months: int) -> tuple[int, int]:
    """Shift a (year, month) pair by a signed number of months."""
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def month_start(year: int, month: int) -> datetime:
    """Midnight UTC on day 1 of the given month."""
    return datetime.combine(date(year, month, 1), time.min, tzinfo=timezone.utc)


def month_key(year: int, month: int) -> str:
    """Format a month as 'YYYY-MM'."""
    return f"{year:04d}-{month:02d}"
