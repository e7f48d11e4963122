from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" is midnight UTC of that day
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped

    Raises ValueError on malformed input.
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse "YYYY-MM-DD" (or a full datetime) into a date."""
    dt = parse_iso_datetime(value)
    return dt.date() if dt else None


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


def to_iso_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def start_of_day(value: datetime | date) -> datetime:
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.min)


def end_of_day(value: datetime | date) -> datetime:
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.max)


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """First and last instant of a calendar month."""
    last_day = monthrange(year, month)[1]
    return (
        datetime(year, month, 1),
        end_of_day(date(year, month, last_day)),
    )


def year_start(year: int) -> datetime:
    return datetime(year, 1, 1)


def parse_duration(value: str) -> timedelta:
    """
    Parse compact durations used for token lifetimes: "30d", "12h", "15m", "45s".
    A bare number is seconds.
    """
    s = str(value).strip().lower()
    if not s:
        raise ValueError("Empty duration")
    units = {"d": "days", "h": "hours", "m": "minutes", "s": "seconds"}
    if s[-1] in units:
        return timedelta(**{units[s[-1]]: int(s[:-1])})
    return timedelta(seconds=int(s))
