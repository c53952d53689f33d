"""Date parsing and window helpers for trajet queries."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone


@dataclass(frozen=True)
class DateWindow:
    start: datetime
    end: datetime


def parse_datetime(value: str | datetime | date | None) -> datetime | None:
    """
    Parse ISO-8601 dates (``2024-05-01``) and datetimes (``2024-05-01T08:30Z``,
    ``2024-05-01 08:30:00+02:00``). Naive values are taken as UTC and the
    result is always UTC. Returns None when the value cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        raw = str(value).strip()
        if not raw:
            return None
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        return None


def parse_range_days(value: int | str | None, default: int) -> int | None:
    """Non-negative whole number of days, ``default`` when absent, None when malformed."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, bool):
        return None
    try:
        days = int(value)
    except (TypeError, ValueError):
        return None
    return days if days >= 0 else None


EARLIEST = datetime.min.replace(tzinfo=timezone.utc)
LATEST = datetime.max.replace(tzinfo=timezone.utc)


def symmetric_window(center: datetime, days: int) -> DateWindow:
    """``days`` either side of ``center``; bounds past the calendar are clamped to EARLIEST/LATEST."""
    try:
        delta = timedelta(days=days)
    except OverflowError:
        return DateWindow(start=EARLIEST, end=LATEST)
    try:
        start = center - delta
    except OverflowError:
        start = EARLIEST
    try:
        end = center + delta
    except OverflowError:
        end = LATEST
    return DateWindow(start=start, end=end)


def start_of_today(now: datetime | None = None) -> datetime:
    current = now or datetime.now(timezone.utc)
    current = current.astimezone(timezone.utc)
    return current.replace(hour=0, minute=0, second=0, microsecond=0)
