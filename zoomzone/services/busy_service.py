import logging
from datetime import datetime, tzinfo

from zoomzone.models.slot import TimeInterval
from zoomzone.services.credentials import RefreshingCredential
from zoomzone.services.google_calendar_service import GoogleCalendarClient
from zoomzone.services.time_utils import normalize_event

logger = logging.getLogger(__name__)


class BusyIntervalProvider:
    """Occupied intervals read live from the calendar. Nothing is cached between calls."""

    def __init__(self, calendar: GoogleCalendarClient, credential: RefreshingCredential, tz: tzinfo):
        self.calendar = calendar
        self.credential = credential
        self.tz = tz

    async def list_busy(self, range_start: datetime, range_end: datetime) -> list[TimeInterval]:
        events = await self.credential.call(
            lambda token: self.calendar.list_events(token, range_start, range_end)
        )
        busy: list[TimeInterval] = []
        for event in events:
            try:
                interval = normalize_event(event, self.tz)
            except ValueError as e:
                logger.warning("Skipping calendar event %s with unreadable times: %s", event.get("id"), e)
                continue
            if interval is None:
                logger.warning("Skipping calendar event %s without start/end", event.get("id"))
                continue
            busy.append(interval)
        logger.debug("Busy intervals %s..%s: %d", range_start, range_end, len(busy))
        return busy
