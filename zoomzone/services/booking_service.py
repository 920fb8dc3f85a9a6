"""Booking transaction across Zoom, Google Calendar, the database and email.

Steps run strictly in order and each failure stops the rest:

1. validate input, reject past starts  -> InvalidInput
2. re-check the slot against calendar  -> SlotConflict
3. create the Zoom meeting             -> UpstreamUnavailable
4. create the calendar event           -> PartialBookingFailure (meeting exists)
5. insert the booking row              -> PartialBookingFailure (meeting + event exist)
6. email participant and operator      -> logged only

There is no compensating delete of the Zoom meeting when step 4 or 5 fails;
the error carries the remote references so an operator can clean up. Two
requests for the same slot can both pass step 2 before either reaches step 4.
"""

import logging
from collections.abc import Callable
from datetime import datetime, tzinfo
from typing import Protocol

from zoomzone.core.errors import InvalidInput, PartialBookingFailure, SlotConflict, UpstreamUnavailable
from zoomzone.models.booking import Booking, BookingConfirmation, BookingCreate
from zoomzone.models.slot import TimeInterval
from zoomzone.services.availability_service import AvailabilityService
from zoomzone.services.credentials import RefreshingCredential
from zoomzone.services.email_service import (
    build_booking_confirmation_html,
    build_operator_notice_html,
    confirmation_subject,
    operator_notice_subject,
)
from zoomzone.services.google_calendar_service import GoogleCalendarClient
from zoomzone.services.slot_service import validate_duration
from zoomzone.services.time_utils import booking_interval, ensure_utc, parse_date, utc_now
from zoomzone.services.zoom_service import ZoomClient

logger = logging.getLogger(__name__)


class BookingStore(Protocol):
    async def insert(self, booking: Booking) -> Booking: ...

    async def list_all(self) -> list[Booking]: ...

    async def update(self, booking_id: int, patch: dict) -> Booking: ...


class Notifier(Protocol):
    async def send(self, to: str, subject: str, html: str) -> None: ...


class BookingOrchestrator:
    def __init__(
        self,
        availability: AvailabilityService,
        calendar: GoogleCalendarClient,
        calendar_credential: RefreshingCredential,
        meetings: ZoomClient,
        meeting_credential: RefreshingCredential,
        bookings: BookingStore,
        notifier: Notifier,
        tz: tzinfo,
        operator_email: str | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.availability = availability
        self.calendar = calendar
        self.calendar_credential = calendar_credential
        self.meetings = meetings
        self.meeting_credential = meeting_credential
        self.bookings = bookings
        self.notifier = notifier
        self.tz = tz
        self.operator_email = operator_email
        self.clock = clock

    def _validate(self, request: BookingCreate) -> tuple[str, str, TimeInterval, int]:
        name = (request.name or "").strip()
        email = (request.email or "").strip()
        missing = [
            field
            for field, value in (("name", name), ("email", email), ("date", request.date), ("time", request.time))
            if not value or not str(value).strip()
        ]
        if missing:
            raise InvalidInput(f"Missing required fields: {', '.join(missing)}")
        if "@" not in email:
            raise InvalidInput(f"invalid email {email!r}")
        duration = validate_duration(request.duration)
        day = parse_date(request.date)
        interval = booking_interval(day, request.time, duration, self.tz)
        if interval.start <= ensure_utc(self.clock()):
            raise InvalidInput(
                "Cannot book a time slot in the past",
                start_utc=interval.start.isoformat(),
            )
        return name, email, interval, duration

    async def submit(self, request: BookingCreate) -> BookingConfirmation:
        name, email, interval, duration = self._validate(request)
        logger.info("Booking request from %s for %s (%d min)", email, interval.start.isoformat(), duration)

        # Both integrations must be connected before anything is created remotely
        await self.calendar_credential.current()
        await self.meeting_credential.current()

        if await self.availability.is_busy(interval):
            logger.info("Slot %s..%s is busy, rejecting", interval.start, interval.end)
            raise SlotConflict(
                "Time slot is already booked in Google Calendar",
                start_utc=interval.start.isoformat(),
                end_utc=interval.end.isoformat(),
            )

        meeting_link = await self.meeting_credential.call(
            lambda token: self.meetings.create_meeting(token, f"Meeting with {name}", interval.start, duration)
        )

        try:
            event = await self.calendar_credential.call(
                lambda token: self.calendar.create_event(
                    token,
                    summary=f"Zoom Meeting with {name}",
                    start=interval.start,
                    end=interval.end,
                    attendees=[email],
                    description=f"Join Zoom: {meeting_link}",
                )
            )
        except UpstreamUnavailable as e:
            logger.error("Calendar event failed after Zoom meeting %s was created: %s", meeting_link, e.detail)
            raise PartialBookingFailure(
                f"Zoom meeting was created but the calendar event failed: {e.detail}",
                meeting_link=meeting_link,
            ) from e
        event_id = event["id"]

        booking = Booking(
            name=name,
            email=email,
            start_utc=interval.start,
            end_utc=interval.end,
            duration_minutes=duration,
            meeting_link=meeting_link,
            calendar_event_id=event_id,
            reminder_sent=False,
        )
        try:
            booking = await self.bookings.insert(booking)
        except Exception as e:
            logger.exception("Failed to save booking for %s after meeting and event were created", email)
            raise PartialBookingFailure(
                f"Meeting and calendar event were created but the booking was not saved: {type(e).__name__}",
                meeting_link=meeting_link,
                calendar_event_id=event_id,
            ) from e
        logger.info("Booking %s saved for %s at %s", booking.id, email, interval.start.isoformat())

        await self._notify(name, email, interval, duration, meeting_link)

        return BookingConfirmation(
            booking_id=booking.id,
            meeting_link=meeting_link,
            calendar_event_id=event_id,
            start_utc=interval.start,
            end_utc=interval.end,
        )

    async def _notify(
        self, name: str, email: str, interval: TimeInterval, duration: int, meeting_link: str
    ) -> None:
        """Confirmation to the participant, notice to the operator. Failures never fail the booking."""
        messages = [
            (
                email,
                confirmation_subject(interval.start, self.tz),
                build_booking_confirmation_html(name, interval.start, duration, meeting_link, self.tz),
            )
        ]
        if self.operator_email:
            messages.append(
                (
                    self.operator_email,
                    operator_notice_subject(interval.start, self.tz),
                    build_operator_notice_html(name, email, interval.start, duration, meeting_link, self.tz),
                )
            )
        for to, subject, html in messages:
            try:
                await self.notifier.send(to, subject, html)
            except Exception:
                logger.exception("Booking email to %s failed; booking is already saved", to)
