from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union


DayLike = Union[date, datetime, str]


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical, second precision)."""
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" is midnight UTC of that day
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    return to_utc_naive(dt)


def to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def as_utc_date(value: DayLike) -> date:
    """
    Resolve a day-like value to the UTC calendar date it falls on.

    Aware datetimes are converted to UTC first, so 2025-04-05T23:30:00Z is
    always 2025-04-05 no matter which timezone the caller observes from.
    """
    if isinstance(value, datetime):
        return to_utc_naive(value).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        s = value.strip()
        if len(s) == 10:
            return date.fromisoformat(s)
        dt = parse_iso_datetime(s)
        if dt is None:
            raise ValueError("empty date")
        return dt.date()
    raise TypeError(f"Unsupported day value: {value!r}")


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open UTC window [00:00:00, next day 00:00:00) for a calendar day."""
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """Half-open UTC window for a 1-based calendar month."""
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return start, end
