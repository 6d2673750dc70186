from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from flask import current_app, has_app_context

"""
Time semantics:
- All stored datetimes are UTC-naive (tzinfo=None).
- Business days are clinic-local calendar days; the clinic runs on a fixed
  offset (CLINIC_UTC_OFFSET_HOURS, default +9).
- Day windows are half-open: [local 00:00, next local 00:00).
- "YYYY-MM-DD" input means local midnight of that day. Naive datetimes are
  clinic-local; strings with "Z" or an offset are absolute.
"""

DEFAULT_UTC_OFFSET_HOURS = 9

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def clinic_offset() -> timedelta:
    hours = DEFAULT_UTC_OFFSET_HOURS
    if has_app_context():
        hours = current_app.config.get("CLINIC_UTC_OFFSET_HOURS", DEFAULT_UTC_OFFSET_HOURS)
    return timedelta(hours=hours)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" -> local midnight of that day, in UTC
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as clinic local time
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    if _DATE_ONLY.match(s):
        return local_day_bounds(_checked_day(date.fromisoformat(s)))[0]

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    try:
        if dt.tzinfo is None:
            dt = dt - clinic_offset()
        else:
            dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
        _checked_day(local_date_of(dt))
    except OverflowError:
        raise ValueError(f"datetime out of range: {value}")
    return dt


def parse_local_date(value) -> date:
    """
    Resolve a request value to a clinic-local calendar day.

    Raises ValueError for anything that is not a date or ISO-8601 string.
    """
    if isinstance(value, datetime):
        return _checked_day(local_date_of(value))
    if isinstance(value, date):
        return _checked_day(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError("date must be YYYY-MM-DD")
    s = value.strip()
    if _DATE_ONLY.match(s):
        return _checked_day(date.fromisoformat(s))
    dt = parse_iso_datetime(s)
    return local_date_of(dt)


def local_date_of(dt: datetime) -> date:
    """Clinic-local calendar day of a UTC-naive datetime."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return (dt + clinic_offset()).date()


def local_day_bounds(day: date) -> tuple[datetime, datetime]:
    """UTC-naive [start, end) window covering one clinic-local day."""
    start = datetime(day.year, day.month, day.day) - clinic_offset()
    return start, start + timedelta(days=1)


def _checked_day(day: date) -> date:
    """
    Reject days too close to date.min/date.max to have a local window.

    Balance and summary queries also touch the neighbouring days, so those
    must be representable too. Raises ValueError.
    """
    try:
        local_day_bounds(day - timedelta(days=1))
        local_day_bounds(day + timedelta(days=1))
    except OverflowError:
        raise ValueError(f"date out of range: {day.isoformat()}")
    return day


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
