from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from zoomzone.models.booking import Booking
from zoomzone.models.integration import IntegrationCredential
from zoomzone.services.time_utils import to_naive_utc, utc_now


class SqlCredentialStore:
    """Integration credentials in the ``integrations`` table, one row per provider."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, provider_id: str) -> IntegrationCredential | None:
        return await self.session.get(IntegrationCredential, provider_id)

    async def list_all(self) -> list[IntegrationCredential]:
        result = await self.session.execute(
            select(IntegrationCredential).order_by(IntegrationCredential.provider_id)
        )
        return list(result.scalars().all())

    async def upsert(self, credential: IntegrationCredential) -> IntegrationCredential:
        row = await self.session.get(IntegrationCredential, credential.provider_id)
        if row is None:
            row = IntegrationCredential(provider_id=credential.provider_id, access_token=credential.access_token)
        row.access_token = credential.access_token
        row.refresh_token = credential.refresh_token
        row.expires_at = to_naive_utc(credential.expires_at) if credential.expires_at else None
        row.scope = credential.scope
        row.updated_at = to_naive_utc(utc_now())
        self.session.add(row)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(row)
        return row


class SqlBookingStore:
    """Bookings table. Each write commits on its own so one failure cannot undo another."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert(self, booking: Booking) -> Booking:
        booking.start_utc = to_naive_utc(booking.start_utc)
        booking.end_utc = to_naive_utc(booking.end_utc)
        self.session.add(booking)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(booking)
        return booking

    async def list_all(self) -> list[Booking]:
        """Detached rows, so a rollback in a later update cannot expire them."""
        result = await self.session.execute(select(Booking).order_by(Booking.start_utc))
        rows = list(result.scalars().all())
        for row in rows:
            self.session.expunge(row)
        return rows

    async def update(self, booking_id: int, patch: dict[str, Any]) -> Booking:
        booking = await self.session.get(Booking, booking_id)
        if booking is None:
            raise LookupError(f"booking {booking_id} not found")
        for key, value in patch.items():
            if not hasattr(booking, key) or key == "id":
                raise ValueError(f"cannot update booking field {key!r}")
            setattr(booking, key, value)
        self.session.add(booking)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(booking)
        return booking
