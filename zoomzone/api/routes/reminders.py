from fastapi import APIRouter, Depends

from zoomzone.api.deps import get_reminder_sweeper, require_scheduler
from zoomzone.api.schemas.booking import SweepResponse
from zoomzone.services.reminder_service import ReminderSweeper

router = APIRouter(prefix="/reminders", tags=["reminders"])


# GET as well as POST: hosted cron schedulers issue GET requests
@router.api_route("/sweep", methods=["GET", "POST"], response_model=SweepResponse)
async def run_reminder_sweep(
    caller: str = Depends(require_scheduler),
    sweeper: ReminderSweeper = Depends(get_reminder_sweeper),
) -> SweepResponse:
    result = await sweeper.run()
    return SweepResponse(
        sent=result.sent,
        failed=result.failed,
        now_utc=result.now_utc,
        window_end_utc=result.window_end_utc,
    )
