from datetime import date

import pytest

from tests.fakes import (
    UTC_ZONE,
    FakeBusySource,
    FakeCalendar,
    FakeCredentialStore,
    google_credential,
    timed_event,
    utc,
)
from zoomzone.core.errors import ProviderAuthExpired, UpstreamUnavailable
from zoomzone.models.integration import GOOGLE
from zoomzone.models.slot import Slot, TimeInterval
from zoomzone.services.availability_service import AvailabilityService, overlaps, overlaps_any, reconcile
from zoomzone.services.busy_service import BusyIntervalProvider
from zoomzone.services.credentials import RefreshingCredential

BEFORE_DAY = utc(2024, 6, 9, 0, 0)


def interval(h1, m1, h2, m2):
    return TimeInterval(start=utc(2024, 6, 10, h1, m1), end=utc(2024, 6, 10, h2, m2))


def slot(h, m, duration=30):
    return Slot(time=f"{h:02d}:{m:02d}", start_utc=utc(2024, 6, 10, h, m), duration_minutes=duration)


class TestOverlap:
    def test_slot_ending_at_busy_start_is_free(self):
        assert not overlaps(utc(2024, 6, 10, 9, 0), utc(2024, 6, 10, 9, 30), interval(9, 30, 10, 0))

    def test_slot_starting_at_busy_end_is_free(self):
        assert not overlaps(utc(2024, 6, 10, 10, 0), utc(2024, 6, 10, 10, 30), interval(9, 30, 10, 0))

    def test_one_minute_overlap_is_busy(self):
        assert overlaps(utc(2024, 6, 10, 9, 0), utc(2024, 6, 10, 9, 31), interval(9, 30, 10, 0))

    def test_containment_both_ways_is_busy(self):
        assert overlaps(utc(2024, 6, 10, 9, 40), utc(2024, 6, 10, 9, 50), interval(9, 30, 10, 0))
        assert overlaps(utc(2024, 6, 10, 9, 0), utc(2024, 6, 10, 11, 0), interval(9, 30, 10, 0))

    def test_overlaps_any_with_no_busy_intervals(self):
        assert not overlaps_any(interval(9, 0, 9, 30), [])


def test_reconcile_flags_only_overlapping_slots():
    slots = [slot(9, 0), slot(9, 30), slot(10, 0)]
    result = reconcile(slots, [interval(9, 45, 10, 0)])
    assert [s.busy for s in result] == [False, True, False]
    assert [s.time for s in result] == ["09:00", "09:30", "10:00"]


def test_reconcile_is_idempotent_and_leaves_input_alone():
    slots = [slot(9, 0), slot(9, 30)]
    busy = [interval(9, 0, 9, 15)]
    once = reconcile(slots, busy)
    assert reconcile(once, busy) == once
    assert not slots[0].busy


def test_reconcile_accepts_a_generator_of_busy_intervals():
    result = reconcile([slot(9, 0), slot(9, 30)], (i for i in [interval(9, 0, 9, 15)]))
    assert [s.busy for s in result] == [True, False]


@pytest.mark.asyncio
async def test_get_slots_queries_span_of_generated_slots():
    source = FakeBusySource([interval(14, 0, 15, 0)])
    service = AvailabilityService(source, UTC_ZONE)
    slots = await service.get_slots(date(2024, 6, 10), 30, now=BEFORE_DAY)
    assert source.calls == [(utc(2024, 6, 10, 6, 0), utc(2024, 6, 10, 22, 0))]
    busy = [s.time for s in slots if s.busy]
    assert busy == ["14:00", "14:30"]


@pytest.mark.asyncio
async def test_get_slots_skips_calendar_when_nothing_to_check():
    source = FakeBusySource()
    service = AvailabilityService(source, UTC_ZONE)
    assert await service.get_slots(date(2024, 6, 10), 30, now=utc(2024, 6, 11, 0, 0)) == []
    assert source.calls == []


@pytest.mark.asyncio
async def test_is_busy_agrees_with_slot_flags():
    source = FakeBusySource([interval(13, 50, 14, 5)])
    service = AvailabilityService(source, UTC_ZONE)
    assert await service.is_busy(interval(14, 0, 14, 15))
    assert not await service.is_busy(interval(14, 5, 14, 20))
    slots = await service.get_slots(date(2024, 6, 10), 15, now=BEFORE_DAY)
    by_time = {s.time: s.busy for s in slots}
    assert by_time["14:00"] is True
    assert by_time["14:15"] is False


class TestBusyIntervalProvider:
    def _provider(self, calendar, store=None):
        store = store or FakeCredentialStore(google_credential())
        credential = RefreshingCredential(GOOGLE, store, calendar.refresh_token)
        return BusyIntervalProvider(calendar, credential, UTC_ZONE)

    @pytest.mark.asyncio
    async def test_normalizes_and_skips_malformed_events(self):
        calendar = FakeCalendar(
            events=[
                timed_event("2024-06-10T13:50:00Z", "2024-06-10T14:05:00Z", "ok"),
                {"id": "no-times"},
                {"id": "garbage", "start": {"dateTime": "not a time"}, "end": {"dateTime": "nope"}},
                {"id": "all-day", "start": {"date": "2024-06-11"}, "end": {"date": "2024-06-12"}},
            ]
        )
        busy = await self._provider(calendar).list_busy(utc(2024, 6, 10, 0, 0), utc(2024, 6, 12, 0, 0))
        assert busy == [
            interval(13, 50, 14, 5),
            TimeInterval(start=utc(2024, 6, 11, 0, 0), end=utc(2024, 6, 11, 23, 59, 59)),
        ]
        assert calendar.list_calls[0][0] == "google-token"

    @pytest.mark.asyncio
    async def test_refreshes_once_on_expired_token(self):
        calendar = FakeCalendar(list_outcomes=[ProviderAuthExpired(GOOGLE, "expired", 401)])
        store = FakeCredentialStore(google_credential())
        await self._provider(calendar, store).list_busy(utc(2024, 6, 10, 0, 0), utc(2024, 6, 11, 0, 0))
        assert [c[0] for c in calendar.list_calls] == ["google-token", "google-fresh"]
        assert store.rows[GOOGLE].refresh_token == "google-refresh"

    @pytest.mark.asyncio
    async def test_second_auth_failure_is_upstream_unavailable(self):
        calendar = FakeCalendar(
            list_outcomes=[ProviderAuthExpired(GOOGLE, "expired", 401), ProviderAuthExpired(GOOGLE, "expired", 401)]
        )
        with pytest.raises(UpstreamUnavailable):
            await self._provider(calendar).list_busy(utc(2024, 6, 10, 0, 0), utc(2024, 6, 11, 0, 0))
        assert len(calendar.refresh_calls) == 1
