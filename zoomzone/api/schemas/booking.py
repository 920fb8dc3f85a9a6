from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from zoomzone.core.config import settings
from zoomzone.services.reminder_service import FailedReminder


class SlotInfo(BaseModel):
    time: str  # HH:MM business-local
    start_utc: datetime
    end_utc: datetime
    busy: bool


class AvailableSlotsResponse(BaseModel):
    date: str  # YYYY-MM-DD
    duration: int
    timezone: str
    slots: list[SlotInfo]


class BusyTime(BaseModel):
    start: datetime
    end: datetime


class BusyTimesResponse(BaseModel):
    date: str
    busy_times: list[BusyTime]


class BookRequest(BaseModel):
    # Empty defaults so missing fields are reported together by the orchestrator
    name: str = ""
    email: EmailStr | None = None
    date: str = ""  # YYYY-MM-DD
    time: str = ""  # HH:MM
    duration: int = Field(default_factory=lambda: settings.default_duration_minutes)


class BookingResponse(BaseModel):
    message: str = "Booking successful!"
    booking_id: int
    meeting_link: str
    calendar_event_id: str
    start_utc: datetime
    end_utc: datetime


class SweepResponse(BaseModel):
    message: str = "Reminder check complete"
    sent: list[int]
    failed: list[FailedReminder]
    now_utc: datetime
    window_end_utc: datetime
