from fastapi import APIRouter, Depends, Query, Response

from zoomzone.api.deps import get_busy_provider
from zoomzone.api.schemas.booking import BusyTime, BusyTimesResponse
from zoomzone.core.config import settings
from zoomzone.services.busy_service import BusyIntervalProvider
from zoomzone.services.time_utils import day_bounds_utc, parse_date

router = APIRouter(prefix="/calendar", tags=["calendar"])


@router.get("/busy", response_model=BusyTimesResponse)
async def busy_times(
    response: Response,
    date_param: str = Query(..., alias="date"),
    busy: BusyIntervalProvider = Depends(get_busy_provider),
) -> BusyTimesResponse:
    """Busy intervals (UTC) overlapping the business-local day."""
    response.headers["Cache-Control"] = "no-store, max-age=0"
    day = parse_date(date_param)
    bounds = day_bounds_utc(day, settings.tz)
    intervals = await busy.list_busy(bounds.start, bounds.end)
    return BusyTimesResponse(
        date=day.isoformat(),
        busy_times=[BusyTime(start=i.start, end=i.end) for i in intervals],
    )
