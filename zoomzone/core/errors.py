"""Error kinds surfaced by the booking core.

Every failure a caller can see is one of the ``BookingError`` subclasses
below. Provider and notification errors are internal: the services translate
them before they leave the service layer.
"""

from typing import Any


class BookingError(Exception):
    kind = "booking_error"
    status_code = 500

    def __init__(self, detail: str, **extra: Any):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.kind, "detail": self.detail}
        body.update({k: v for k, v in self.extra.items() if v is not None})
        return body


class InvalidInput(BookingError):
    """Caller-fixable input problem."""

    kind = "invalid_input"
    status_code = 400


class SlotConflict(BookingError):
    """The slot overlaps a busy interval; re-fetch availability and pick again."""

    kind = "slot_conflict"
    status_code = 409


class UpstreamUnavailable(BookingError):
    """A third-party call failed; nothing was created. Safe to retry later."""

    kind = "upstream_unavailable"
    status_code = 503


class IntegrationNotConnected(UpstreamUnavailable):
    kind = "integration_not_connected"


class PartialBookingFailure(BookingError):
    """A remote side effect happened but the booking did not complete.

    Never retried automatically: retrying could create a second meeting.
    ``meeting_link`` and ``calendar_event_id`` identify what must be
    reconciled by hand.
    """

    kind = "partial_booking_failure"
    status_code = 502

    def __init__(
        self,
        detail: str,
        meeting_link: str | None = None,
        calendar_event_id: str | None = None,
        **extra: Any,
    ):
        super().__init__(
            detail, meeting_link=meeting_link, calendar_event_id=calendar_event_id, **extra
        )
        self.meeting_link = meeting_link
        self.calendar_event_id = calendar_event_id


class ProviderError(Exception):
    """Non-2xx or malformed response from Google or Zoom."""

    def __init__(self, provider: str, message: str, status_code: int | None = None, body: Any = None):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status_code = status_code
        self.body = body


class ProviderAuthExpired(ProviderError):
    """The access token was rejected; a refresh may fix it."""


class NotificationError(Exception):
    pass
