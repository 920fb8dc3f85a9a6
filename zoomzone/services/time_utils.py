"""Conversions between business-local wall clock, provider payloads and UTC.

All instants handled by the core are timezone-aware UTC datetimes. The single
business timezone is applied in exactly two directions: turning a local
date + ``HH:MM`` into an instant, and formatting an instant back into the
``{"dateTime", "timeZone"}`` shape Google Calendar expects.
"""

import re
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from zoomzone.core.errors import InvalidInput
from zoomzone.models.slot import TimeInterval

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")

ALL_DAY_START = time(0, 0, 0)
ALL_DAY_END = time(23, 59, 59)


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Aware UTC; naive values are taken to already be UTC (how the DB stores them)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_naive_utc(dt: datetime) -> datetime:
    """Convert to naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return ensure_utc(dt).replace(tzinfo=None)


def parse_date(value: str | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not value.strip():
        raise InvalidInput("date is required")
    raw = value.strip()
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(raw).date()
    except ValueError:
        raise InvalidInput(f"invalid date {value!r}, expected YYYY-MM-DD") from None


def parse_hhmm(value: str) -> time:
    m = _HHMM.match((value or "").strip())
    if not m:
        raise InvalidInput(f"invalid time {value!r}, expected HH:MM")
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 23 or minute > 59:
        raise InvalidInput(f"invalid time {value!r}, expected HH:MM")
    return time(hour, minute)


def local_to_utc(day: date, wall_time: time, tz: tzinfo) -> datetime:
    return datetime.combine(day, wall_time, tzinfo=tz).astimezone(UTC)


def booking_interval(day: date, hhmm: str, duration_minutes: int, tz: tzinfo) -> TimeInterval:
    start = local_to_utc(day, parse_hhmm(hhmm), tz)
    return TimeInterval(start=start, end=start + timedelta(minutes=duration_minutes))


def day_bounds_utc(day: date, tz: tzinfo) -> TimeInterval:
    """The whole local day as ``[local midnight, next local midnight)`` in UTC."""
    return TimeInterval(
        start=local_to_utc(day, ALL_DAY_START, tz),
        end=local_to_utc(day + timedelta(days=1), ALL_DAY_START, tz),
    )


def _zone(name: str | None, default: tzinfo) -> tzinfo:
    if not name:
        return default
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return default


def parse_instant(value: str, default_tz: tzinfo) -> datetime:
    """ISO-8601 to aware UTC. A value without an offset is read in ``default_tz``."""
    dt = datetime.fromisoformat(value.strip())
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=default_tz)
    return dt.astimezone(UTC)


def normalize_event(raw: dict[str, Any], tz: tzinfo) -> TimeInterval | None:
    """Turn a Google Calendar event into a UTC interval.

    Timed events use ``dateTime``. All-day events use ``date`` and span local
    00:00:00 of the first day to 23:59:59 of the last day; Google's end date
    is exclusive so the last day is the day before it. Returns None when the
    event has no usable start or end.
    """
    start = raw.get("start") or {}
    end = raw.get("end") or {}

    if start.get("dateTime"):
        start_utc = parse_instant(start["dateTime"], _zone(start.get("timeZone"), tz))
        first_day = None
    elif start.get("date"):
        first_day = date.fromisoformat(start["date"])
        start_utc = local_to_utc(first_day, ALL_DAY_START, tz)
    else:
        return None

    if end.get("dateTime"):
        end_utc = parse_instant(end["dateTime"], _zone(end.get("timeZone"), tz))
    elif end.get("date"):
        last_day = date.fromisoformat(end["date"]) - timedelta(days=1)
        if first_day is not None and last_day < first_day:
            last_day = first_day
        end_utc = local_to_utc(last_day, ALL_DAY_END, tz)
    else:
        return None

    if end_utc <= start_utc:
        return None
    return TimeInterval(start=start_utc, end=end_utc)


def to_provider_local(instant: datetime, tz: ZoneInfo) -> dict[str, str]:
    """Wall-clock in the business zone plus the zone name.

    The UTC offset stays on ``dateTime`` so the repeated hour at a DST
    fall-back still names one instant; ``parse_instant`` reads it back.
    """
    local = ensure_utc(instant).astimezone(tz)
    return {"dateTime": local.isoformat(timespec="seconds"), "timeZone": tz.key}


def format_local(instant: datetime, tz: tzinfo) -> str:
    """Human-readable local time for emails, e.g. 'Monday, June 10, 2024 08:00 AM MDT'."""
    return ensure_utc(instant).astimezone(tz).strftime("%A, %B %d, %Y %I:%M %p %Z")


def format_hhmm(instant: datetime, tz: tzinfo) -> str:
    return ensure_utc(instant).astimezone(tz).strftime("%H:%M")
