from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"
    id: int | None = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True)
    # Naive UTC, TIMESTAMP WITHOUT TIME ZONE
    start_utc: datetime = Field(sa_type=DateTime(), index=True)
    end_utc: datetime = Field(sa_type=DateTime())
    duration_minutes: int
    meeting_link: str
    calendar_event_id: str | None = None
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())
    # Flipped false -> true once, by the reminder sweeper
    reminder_sent: bool = Field(default=False, index=True)


class BookingPublic(SQLModel):
    id: int
    name: str
    email: str
    start_utc: datetime
    end_utc: datetime
    duration_minutes: int
    meeting_link: str
    calendar_event_id: str | None = None
    created_at: datetime
    reminder_sent: bool


class BookingCreate(SQLModel):
    """A visitor's booking request; validated by the orchestrator, not here."""

    name: str = ""
    email: str = ""
    date: str = ""
    time: str = ""  # HH:MM, business-local
    duration: int | None = None


class BookingConfirmation(SQLModel):
    booking_id: int
    meeting_link: str
    calendar_event_id: str
    start_utc: datetime
    end_utc: datetime
