from fastapi import APIRouter, Depends, Query, Response

from zoomzone.api.deps import get_availability_service
from zoomzone.api.schemas.booking import AvailableSlotsResponse, SlotInfo
from zoomzone.core.config import settings
from zoomzone.services.availability_service import AvailabilityService
from zoomzone.services.time_utils import parse_date

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/available", response_model=AvailableSlotsResponse)
async def available_slots(
    response: Response,
    date_param: str = Query(..., alias="date"),
    duration: int | None = Query(None),
    availability: AvailabilityService = Depends(get_availability_service),
) -> AvailableSlotsResponse:
    """Slots for a business-local date. Past slots of today are omitted; busy ones are flagged."""
    response.headers["Cache-Control"] = "no-store, max-age=0"
    day = parse_date(date_param)
    if duration is None:
        duration = settings.default_duration_minutes
    slots = await availability.get_slots(day, duration)
    return AvailableSlotsResponse(
        date=day.isoformat(),
        duration=duration,
        timezone=settings.business_timezone,
        slots=[
            SlotInfo(time=s.time, start_utc=s.start_utc, end_utc=s.end_utc, busy=s.busy)
            for s in slots
        ],
    )
