import pytest

from tests.fakes import (
    FakeBookingStore,
    FakeCalendar,
    FakeCredentialStore,
    FakeNotifier,
    FakeZoom,
    google_credential,
    timed_event,
    utc,
)
from zoomzone.core.errors import (
    IntegrationNotConnected,
    InvalidInput,
    PartialBookingFailure,
    ProviderAuthExpired,
    ProviderError,
    SlotConflict,
    UpstreamUnavailable,
)
from zoomzone.models.booking import BookingCreate
from zoomzone.models.integration import GOOGLE, ZOOM
from zoomzone.services.stores import SqlBookingStore


def request(**overrides):
    fields = {"name": "Ada", "email": "ada@example.com", "date": "2024-06-10", "time": "14:00", "duration": 15}
    fields.update(overrides)
    return BookingCreate(**fields)


@pytest.mark.asyncio
async def test_successful_booking(make_orchestrator, booking_store, notifier):
    calendar, zoom = FakeCalendar(), FakeZoom()
    confirmation = await make_orchestrator(calendar, zoom).submit(request())

    assert confirmation.booking_id == 1
    assert confirmation.meeting_link == "https://zoom.us/j/123456789"
    assert confirmation.calendar_event_id == "evt-1"
    assert confirmation.start_utc == utc(2024, 6, 10, 14, 0)
    assert confirmation.end_utc == utc(2024, 6, 10, 14, 15)

    assert zoom.create_calls == [
        {"token": "zoom-token", "topic": "Meeting with Ada", "start": utc(2024, 6, 10, 14, 0), "duration": 15}
    ]
    event = calendar.create_calls[0]
    assert event["summary"] == "Zoom Meeting with Ada"
    assert event["attendees"] == ["ada@example.com"]
    assert event["description"] == "Join Zoom: https://zoom.us/j/123456789"

    saved = booking_store.rows[1]
    assert saved.meeting_link == confirmation.meeting_link
    assert saved.calendar_event_id == "evt-1"
    assert saved.reminder_sent is False

    assert [to for to, _, _ in notifier.sent] == ["ada@example.com", "owner@example.com"]
    assert "https://zoom.us/j/123456789" in notifier.sent[0][2]


@pytest.mark.asyncio
async def test_overlapping_event_is_a_conflict(make_orchestrator, booking_store):
    calendar = FakeCalendar(events=[timed_event("2024-06-10T13:50:00Z", "2024-06-10T14:05:00Z")])
    zoom = FakeZoom()
    with pytest.raises(SlotConflict) as exc:
        await make_orchestrator(calendar, zoom).submit(request())
    assert exc.value.to_dict()["error"] == "slot_conflict"
    assert zoom.create_calls == []
    assert calendar.create_calls == []
    assert booking_store.rows == {}


@pytest.mark.asyncio
async def test_adjacent_event_is_not_a_conflict(make_orchestrator):
    calendar = FakeCalendar(events=[timed_event("2024-06-10T14:15:00Z", "2024-06-10T14:30:00Z")])
    confirmation = await make_orchestrator(calendar, FakeZoom()).submit(request())
    assert confirmation.booking_id == 1


@pytest.mark.asyncio
async def test_zoom_rejecting_refreshed_token_creates_nothing(make_orchestrator, booking_store):
    calendar = FakeCalendar()
    zoom = FakeZoom(create_outcomes=[ProviderAuthExpired(ZOOM, "expired", 401), ProviderAuthExpired(ZOOM, "expired", 401)])
    with pytest.raises(UpstreamUnavailable):
        await make_orchestrator(calendar, zoom).submit(request())
    assert len(zoom.create_calls) == 2
    assert zoom.refresh_calls == ["zoom-refresh"]
    assert calendar.create_calls == []
    assert booking_store.rows == {}


@pytest.mark.asyncio
async def test_zoom_token_refresh_then_success(make_orchestrator, credential_store):
    zoom = FakeZoom(create_outcomes=[ProviderAuthExpired(ZOOM, "expired", 401)])
    confirmation = await make_orchestrator(FakeCalendar(), zoom).submit(request())
    assert confirmation.meeting_link
    assert [c["token"] for c in zoom.create_calls] == ["zoom-token", "zoom-fresh"]
    assert credential_store.rows[ZOOM].access_token == "zoom-fresh"
    assert credential_store.rows[ZOOM].refresh_token == "zoom-refresh-2"


@pytest.mark.asyncio
async def test_calendar_failure_after_meeting_is_partial(make_orchestrator, booking_store, notifier):
    calendar = FakeCalendar(create_outcomes=[ProviderError(GOOGLE, "backend error", 500)])
    with pytest.raises(PartialBookingFailure) as exc:
        await make_orchestrator(calendar, FakeZoom()).submit(request())
    assert exc.value.meeting_link == "https://zoom.us/j/123456789"
    assert exc.value.calendar_event_id is None
    assert exc.value.to_dict()["meeting_link"] == "https://zoom.us/j/123456789"
    assert booking_store.rows == {}
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_calendar_token_refreshed_during_create(make_orchestrator):
    calendar = FakeCalendar(create_outcomes=[ProviderAuthExpired(GOOGLE, "expired", 401)])
    await make_orchestrator(calendar, FakeZoom()).submit(request())
    assert [c["token"] for c in calendar.create_calls] == ["google-token", "google-fresh"]
    assert calendar.refresh_calls == ["google-refresh"]


@pytest.mark.asyncio
async def test_persistence_failure_is_partial_with_both_references(make_orchestrator):
    orchestrator = make_orchestrator(FakeCalendar(), FakeZoom(), bookings=FakeBookingStore(fail_insert=True))
    with pytest.raises(PartialBookingFailure) as exc:
        await orchestrator.submit(request())
    assert exc.value.meeting_link == "https://zoom.us/j/123456789"
    assert exc.value.calendar_event_id == "evt-1"


@pytest.mark.asyncio
async def test_notification_failure_does_not_fail_booking(make_orchestrator, booking_store):
    notifier = FakeNotifier(fail_for={"ada@example.com"})
    confirmation = await make_orchestrator(FakeCalendar(), FakeZoom(), notify=notifier).submit(request())
    assert confirmation.booking_id in booking_store.rows
    assert notifier.attempts == ["ada@example.com", "owner@example.com"]
    assert [to for to, _, _ in notifier.sent] == ["owner@example.com"]


@pytest.mark.asyncio
async def test_no_operator_notice_without_operator_email(make_orchestrator, notifier):
    await make_orchestrator(FakeCalendar(), FakeZoom(), operator_email=None).submit(request())
    assert [to for to, _, _ in notifier.sent] == ["ada@example.com"]


@pytest.mark.asyncio
async def test_missing_integration_stops_before_remote_calls(make_orchestrator):
    calendar, zoom = FakeCalendar(), FakeZoom()
    store = FakeCredentialStore(google_credential())
    with pytest.raises(IntegrationNotConnected):
        await make_orchestrator(calendar, zoom, store=store).submit(request())
    assert calendar.list_calls == []
    assert zoom.create_calls == []


@pytest.mark.asyncio
async def test_missing_fields_are_reported_together(make_orchestrator):
    calendar = FakeCalendar()
    with pytest.raises(InvalidInput) as exc:
        await make_orchestrator(calendar, FakeZoom()).submit(BookingCreate(name="", email="", date="2024-06-10"))
    assert exc.value.detail == "Missing required fields: name, email, time"
    assert calendar.list_calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"email": "not-an-email"},
        {"duration": 0},
        {"duration": None},
        {"time": "25:00"},
        {"date": "2024/06/10"},
    ],
)
async def test_invalid_input_is_rejected_before_any_call(make_orchestrator, overrides):
    calendar, zoom = FakeCalendar(), FakeZoom()
    with pytest.raises(InvalidInput):
        await make_orchestrator(calendar, zoom).submit(request(**overrides))
    assert calendar.list_calls == []
    assert zoom.create_calls == []


@pytest.mark.asyncio
async def test_booking_is_saved_through_sql_store(make_orchestrator, db_session):
    bookings = SqlBookingStore(db_session)
    confirmation = await make_orchestrator(FakeCalendar(), FakeZoom(), bookings=bookings).submit(request())

    rows = await bookings.list_all()
    assert [b.id for b in rows] == [confirmation.booking_id]
    assert rows[0].start_utc == utc(2024, 6, 10, 14, 0).replace(tzinfo=None)
    assert rows[0].calendar_event_id == "evt-1"
    assert rows[0].reminder_sent is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "now",
    [utc(2024, 6, 12, 9, 0), utc(2024, 6, 10, 14, 0), utc(2024, 6, 10, 14, 5)],
)
async def test_start_not_in_future_is_rejected_before_any_call(make_orchestrator, booking_store, now):
    calendar, zoom = FakeCalendar(), FakeZoom()
    with pytest.raises(InvalidInput) as exc:
        await make_orchestrator(calendar, zoom, now=now).submit(request())
    assert exc.value.detail == "Cannot book a time slot in the past"
    assert calendar.list_calls == []
    assert zoom.create_calls == []
    assert booking_store.rows == {}


@pytest.mark.asyncio
async def test_start_one_minute_ahead_is_accepted(make_orchestrator):
    orchestrator = make_orchestrator(FakeCalendar(), FakeZoom(), now=utc(2024, 6, 10, 13, 59))
    confirmation = await orchestrator.submit(request())
    assert confirmation.start_utc == utc(2024, 6, 10, 14, 0)
