import logging

from fastapi import APIRouter, Depends, status

from zoomzone.api.deps import get_booking_orchestrator, get_booking_store, get_current_operator
from zoomzone.api.schemas.booking import BookingResponse, BookRequest
from zoomzone.models.booking import BookingCreate, BookingPublic
from zoomzone.services.booking_service import BookingOrchestrator
from zoomzone.services.stores import SqlBookingStore
from zoomzone.services.time_utils import ensure_utc

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def submit_booking(
    body: BookRequest,
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> BookingResponse:
    confirmation = await orchestrator.submit(
        BookingCreate(
            name=body.name,
            email=body.email or "",
            date=body.date,
            time=body.time,
            duration=body.duration,
        )
    )
    return BookingResponse(
        booking_id=confirmation.booking_id,
        meeting_link=confirmation.meeting_link,
        calendar_event_id=confirmation.calendar_event_id,
        start_utc=confirmation.start_utc,
        end_utc=confirmation.end_utc,
    )


@router.get("", response_model=list[BookingPublic])
async def list_bookings(
    operator: str = Depends(get_current_operator),
    bookings: SqlBookingStore = Depends(get_booking_store),
) -> list[BookingPublic]:
    """Operator view of every booking, oldest first. Times are UTC."""
    rows = await bookings.list_all()
    return [
        BookingPublic(
            id=b.id,
            name=b.name,
            email=b.email,
            start_utc=ensure_utc(b.start_utc),
            end_utc=ensure_utc(b.end_utc),
            duration_minutes=b.duration_minutes,
            meeting_link=b.meeting_link,
            calendar_event_id=b.calendar_event_id,
            created_at=ensure_utc(b.created_at),
            reminder_sent=b.reminder_sent,
        )
        for b in rows
    ]
