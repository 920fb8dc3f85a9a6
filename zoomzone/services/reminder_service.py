import logging
from datetime import datetime, timedelta, tzinfo

from pydantic import BaseModel

from zoomzone.models.booking import Booking
from zoomzone.services.booking_service import BookingStore, Notifier
from zoomzone.services.email_service import build_reminder_html, reminder_subject
from zoomzone.services.time_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class FailedReminder(BaseModel):
    id: int
    error: str


class SweepResult(BaseModel):
    sent: list[int]
    failed: list[FailedReminder]
    now_utc: datetime
    window_end_utc: datetime


def due_for_reminder(booking: Booking, now: datetime, window_end: datetime) -> bool:
    """Starts in ``(now, window_end]`` and has not been reminded yet."""
    start = ensure_utc(booking.start_utc)
    return now < start <= window_end and not booking.reminder_sent


class ReminderSweeper:
    """One pass over all bookings, sending at most one reminder per booking.

    The flag is set only after a successful send, so a send that fails is
    retried on the next pass; a send that succeeds but whose flag update fails
    can be sent twice.
    """

    def __init__(
        self,
        bookings: BookingStore,
        notifier: Notifier,
        tz: tzinfo,
        lookahead_minutes: int = 60,
    ):
        self.bookings = bookings
        self.notifier = notifier
        self.tz = tz
        self.lookahead = timedelta(minutes=lookahead_minutes)

    async def run(self, now: datetime | None = None) -> SweepResult:
        now = ensure_utc(now) if now is not None else utc_now()
        window_end = now + self.lookahead

        bookings = await self.bookings.list_all()
        due = [b for b in bookings if due_for_reminder(b, now, window_end)]
        logger.info(
            "Reminder sweep at %s: %d booking(s), %d due before %s",
            now.isoformat(),
            len(bookings),
            len(due),
            window_end.isoformat(),
        )

        sent: list[int] = []
        failed: list[FailedReminder] = []
        for booking in due:
            try:
                await self._remind(booking)
            except Exception as e:
                logger.exception("Reminder for booking %s failed", booking.id)
                failed.append(FailedReminder(id=booking.id, error=f"{type(e).__name__}: {e}"))
                continue
            sent.append(booking.id)

        return SweepResult(sent=sent, failed=failed, now_utc=now, window_end_utc=window_end)

    async def _remind(self, booking: Booking) -> None:
        start = ensure_utc(booking.start_utc)
        await self.notifier.send(
            booking.email,
            reminder_subject(start, self.tz),
            build_reminder_html(booking.name, start, booking.meeting_link, self.tz),
        )
        await self.bookings.update(booking.id, {"reminder_sent": True})
        logger.info("Reminder sent for booking %s (%s)", booking.id, booking.email)
