"""Calendar helpers: local wall-clock conversion and day arithmetic."""

import datetime
from typing import Iterable, Optional
from zoneinfo import ZoneInfo


def to_local(dt: datetime.datetime, tz_name: Optional[str] = None) -> datetime.datetime:
    """Convert an aware datetime to ``tz_name``; naive datetimes are already local."""
    if tz_name is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(ZoneInfo(tz_name))


def local_date(dt: datetime.datetime, tz_name: Optional[str] = None) -> datetime.date:
    return to_local(dt, tz_name).date()


def days_between(start: datetime.datetime, end: datetime.datetime, tz_name: Optional[str] = None) -> int:
    """Whole calendar days from ``start``'s date to ``end``'s date."""
    return (local_date(end, tz_name) - local_date(start, tz_name)).days


def day_span(timestamps: Iterable[datetime.datetime], tz_name: Optional[str] = None) -> int:
    """Inclusive count of calendar days covered by ``timestamps``, at least 1."""
    dates = [local_date(t, tz_name) for t in timestamps]
    if not dates:
        return 1
    return max(1, (max(dates) - min(dates)).days + 1)


def as_aware(dt: datetime.datetime, tz_name: Optional[str] = None) -> datetime.datetime:
    """Attach ``tz_name`` (UTC when unset) to a naive datetime, keeping its wall-clock time."""
    if dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=ZoneInfo(tz_name) if tz_name else datetime.timezone.utc)
