"""
Date helpers for the store's business day.

Timestamps are persisted as naive UTC. The business day, however, is a civil
day in the store's fixed offset (Argentina, UTC-03:00): a sale rung at 23:30
local time belongs to that local day even though it is already the next day
in UTC.
"""
from datetime import datetime, date, time, timedelta, timezone
from typing import Optional, Tuple

DEFAULT_UTC_OFFSET_HOURS = -3


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _offset_hours(offset_hours: Optional[int]) -> int:
    if offset_hours is not None:
        return offset_hours
    try:
        from flask import current_app
        return int(current_app.config.get('BUSINESS_UTC_OFFSET_HOURS', DEFAULT_UTC_OFFSET_HOURS))
    except RuntimeError:
        # Outside an application context (CLI scripts, unit tests)
        return DEFAULT_UTC_OFFSET_HOURS


def business_tz(offset_hours: Optional[int] = None) -> timezone:
    """Fixed-offset timezone the business operates in."""
    return timezone(timedelta(hours=_offset_hours(offset_hours)))


def to_local(dt: Optional[datetime], offset_hours: Optional[int] = None) -> Optional[datetime]:
    """Convert a naive-UTC (or aware) datetime to the business timezone."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(business_tz(offset_hours))


def business_date(dt: Optional[datetime] = None, offset_hours: Optional[int] = None) -> date:
    """Business day a timestamp belongs to (defaults to now)."""
    return to_local(dt or utcnow(), offset_hours).date()


def business_day_range(day: Optional[date] = None, offset_hours: Optional[int] = None) -> Tuple[datetime, datetime]:
    """
    Get the UTC datetime range covering one business day.

    Args:
        day: Local civil date (defaults to today in the business timezone)
        offset_hours: Override for the configured offset

    Returns:
        tuple: (start_dt, end_dt) naive UTC, start inclusive and end exclusive
    """
    tz = business_tz(offset_hours)
    if day is None:
        day = business_date(offset_hours=offset_hours)

    start_local = datetime.combine(day, time.min, tzinfo=tz)
    end_local = start_local + timedelta(days=1)

    return (
        start_local.astimezone(timezone.utc).replace(tzinfo=None),
        end_local.astimezone(timezone.utc).replace(tzinfo=None),
    )


def parse_day(value: Optional[str]) -> Optional[date]:
    """Parse a YYYY-MM-DD query parameter; empty values mean 'today'."""
    if value is None or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        from caja.exceptions import ValidationError
        raise ValidationError(f'Fecha inválida: {value}. Formato esperado AAAA-MM-DD')
