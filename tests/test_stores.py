from datetime import timedelta

import pytest

from tests.fakes import utc
from zoomzone.models.booking import Booking
from zoomzone.models.integration import GOOGLE, IntegrationCredential
from zoomzone.services.stores import SqlBookingStore, SqlCredentialStore


def new_booking(start, email="ada@example.com"):
    return Booking(
        name="Ada",
        email=email,
        start_utc=start,
        end_utc=start + timedelta(minutes=30),
        duration_minutes=30,
        meeting_link="https://zoom.us/j/1",
        calendar_event_id="evt-1",
    )


@pytest.mark.asyncio
async def test_insert_assigns_id_and_stores_naive_utc(db_session):
    store = SqlBookingStore(db_session)
    saved = await store.insert(new_booking(utc(2024, 6, 10, 14, 0)))
    assert saved.id is not None
    assert saved.start_utc.tzinfo is None
    assert saved.start_utc == utc(2024, 6, 10, 14, 0).replace(tzinfo=None)
    assert saved.reminder_sent is False


@pytest.mark.asyncio
async def test_list_all_orders_by_start(db_session):
    store = SqlBookingStore(db_session)
    await store.insert(new_booking(utc(2024, 6, 10, 16, 0), email="late@example.com"))
    await store.insert(new_booking(utc(2024, 6, 10, 9, 0), email="early@example.com"))
    rows = await store.list_all()
    assert [b.email for b in rows] == ["early@example.com", "late@example.com"]


@pytest.mark.asyncio
async def test_update_sets_reminder_flag(db_session):
    store = SqlBookingStore(db_session)
    saved = await store.insert(new_booking(utc(2024, 6, 10, 14, 0)))
    await store.update(saved.id, {"reminder_sent": True})
    rows = await store.list_all()
    assert rows[0].reminder_sent is True


@pytest.mark.asyncio
async def test_update_unknown_booking_raises(db_session):
    with pytest.raises(LookupError):
        await SqlBookingStore(db_session).update(999, {"reminder_sent": True})


@pytest.mark.asyncio
async def test_update_unknown_field_raises(db_session):
    store = SqlBookingStore(db_session)
    saved = await store.insert(new_booking(utc(2024, 6, 10, 14, 0)))
    with pytest.raises(ValueError):
        await store.update(saved.id, {"colour": "blue"})


@pytest.mark.asyncio
async def test_credential_upsert_inserts_then_updates(db_session):
    store = SqlCredentialStore(db_session)
    assert await store.get(GOOGLE) is None

    await store.upsert(
        IntegrationCredential(
            provider_id=GOOGLE,
            access_token="a1",
            refresh_token="r1",
            expires_at=utc(2024, 6, 10, 15, 0),
        )
    )
    await store.upsert(IntegrationCredential(provider_id=GOOGLE, access_token="a2", refresh_token="r1"))

    rows = await store.list_all()
    assert len(rows) == 1
    assert rows[0].access_token == "a2"
    assert rows[0].refresh_token == "r1"
    assert rows[0].expires_at is None
