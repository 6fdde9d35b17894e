# Overview: UTC time helpers shared by models, services and routes.

"""
All datetimes are stored UTC-naive. The API speaks ISO-8601 with a
trailing "Z"; naive input is read as UTC.

Dashboard periods are half-open ranges: [start, end).
"""

from __future__ import annotations

from calendar import monthrange
from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    "2026-10-19T14:30:00Z" / "...+03:00" / "2026-10-19T14:30" -> UTC-naive.

    Blank input gives None; anything else unparseable raises ValueError.
    """
    if value is None or not value.strip():
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """datetime -> "YYYY-MM-DDTHH:MM:SSZ", seconds precision."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"


def start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """
    Range for a calendar month.

    month is 1-based here; callers holding 0-based months add 1.
    """
    start = datetime(year, month, 1)
    end = start + timedelta(days=monthrange(year, month)[1])
    return start, end


def year_bounds(year: int) -> tuple[datetime, datetime]:
    return datetime(year, 1, 1), datetime(year + 1, 1, 1)
