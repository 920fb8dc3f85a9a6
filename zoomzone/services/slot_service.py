import logging
from datetime import UTC, date, datetime, time, timedelta, tzinfo

from zoomzone.core.config import settings
from zoomzone.core.errors import InvalidInput
from zoomzone.models.slot import Slot
from zoomzone.services.time_utils import ensure_utc, parse_date, utc_now

logger = logging.getLogger(__name__)


def validate_duration(value: int | str | None) -> int:
    """Positive whole minutes. Values outside the allowed set are accepted."""
    if value is None or isinstance(value, bool):
        raise InvalidInput("duration is required")
    if isinstance(value, float) and not value.is_integer():
        raise InvalidInput(f"duration must be a whole number of minutes, got {value!r}")
    try:
        duration = int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"duration must be a whole number of minutes, got {value!r}") from None
    if duration <= 0:
        raise InvalidInput(f"duration must be positive, got {duration}")
    if duration not in settings.allowed_durations_list:
        logger.debug("Duration %d outside allowed set %s", duration, settings.allowed_durations_list)
    return duration


def _local_slot_times(d: date, duration: int, start_hour: int, end_hour: int) -> list[datetime]:
    """Naive local wall-clock starts at start_hour:00 + k*duration, strictly before end_hour:00."""
    if not 0 <= start_hour < end_hour <= 24:
        raise ValueError(f"bad business hours {start_hour}-{end_hour}")
    midnight = datetime.combine(d, time(0, 0))
    start = midnight + timedelta(hours=start_hour)
    end = midnight + timedelta(hours=end_hour)
    delta = timedelta(minutes=duration)
    slots: list[datetime] = []
    current = start
    while current < end:
        slots.append(current)
        current += delta
    return slots


def generate_slots(
    day: date | str,
    duration_minutes: int | str,
    tz: tzinfo,
    start_hour: int | None = None,
    end_hour: int | None = None,
    now: datetime | None = None,
) -> list[Slot]:
    """Candidate slots for a local business day, all marked free.

    Slots whose start is not strictly after ``now`` are dropped, which only
    ever affects today (and past days).
    """
    d = parse_date(day)
    duration = validate_duration(duration_minutes)
    if start_hour is None:
        start_hour = settings.business_start_hour
    if end_hour is None:
        end_hour = settings.business_end_hour
    if now is None:
        now = utc_now()
    now = ensure_utc(now)

    out: list[Slot] = []
    for local in _local_slot_times(d, duration, start_hour, end_hour):
        start_utc = local.replace(tzinfo=tz).astimezone(UTC)
        if start_utc <= now:
            continue
        out.append(
            Slot(time=local.strftime("%H:%M"), start_utc=start_utc, duration_minutes=duration)
        )
    return out
