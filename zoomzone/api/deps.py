"""Per-request construction of the booking collaborators.

FastAPI caches each dependency for the duration of a request, so the
availability check and the event creation in one booking share the same
``RefreshingCredential`` and a token refreshed by one is reused by the other.
"""

import hmac

import httpx
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from zoomzone.core.config import settings
from zoomzone.core.db import get_session
from zoomzone.core.security import decode_access_token
from zoomzone.models.integration import GOOGLE, ZOOM
from zoomzone.services.availability_service import AvailabilityService
from zoomzone.services.booking_service import BookingOrchestrator
from zoomzone.services.busy_service import BusyIntervalProvider
from zoomzone.services.credentials import RefreshingCredential
from zoomzone.services.email_service import SmtpNotifier
from zoomzone.services.google_calendar_service import GoogleCalendarClient
from zoomzone.services.reminder_service import ReminderSweeper
from zoomzone.services.stores import SqlBookingStore, SqlCredentialStore
from zoomzone.services.zoom_service import ZoomClient

security = HTTPBearer(auto_error=False)


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_credential_store(session: AsyncSession = Depends(get_session)) -> SqlCredentialStore:
    return SqlCredentialStore(session)


def get_booking_store(session: AsyncSession = Depends(get_session)) -> SqlBookingStore:
    return SqlBookingStore(session)


def get_calendar_client(http: httpx.AsyncClient = Depends(get_http_client)) -> GoogleCalendarClient:
    return GoogleCalendarClient(http)


def get_zoom_client(http: httpx.AsyncClient = Depends(get_http_client)) -> ZoomClient:
    return ZoomClient(http)


def get_notifier() -> SmtpNotifier:
    return SmtpNotifier()


def get_google_credential(
    store: SqlCredentialStore = Depends(get_credential_store),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
) -> RefreshingCredential:
    return RefreshingCredential(GOOGLE, store, calendar.refresh_token)


def get_zoom_credential(
    store: SqlCredentialStore = Depends(get_credential_store),
    zoom: ZoomClient = Depends(get_zoom_client),
) -> RefreshingCredential:
    return RefreshingCredential(ZOOM, store, zoom.refresh_token)


def get_busy_provider(
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
    credential: RefreshingCredential = Depends(get_google_credential),
) -> BusyIntervalProvider:
    return BusyIntervalProvider(calendar, credential, settings.tz)


def get_availability_service(
    busy: BusyIntervalProvider = Depends(get_busy_provider),
) -> AvailabilityService:
    return AvailabilityService(
        busy,
        settings.tz,
        start_hour=settings.business_start_hour,
        end_hour=settings.business_end_hour,
    )


def get_booking_orchestrator(
    availability: AvailabilityService = Depends(get_availability_service),
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
    google_credential: RefreshingCredential = Depends(get_google_credential),
    zoom: ZoomClient = Depends(get_zoom_client),
    zoom_credential: RefreshingCredential = Depends(get_zoom_credential),
    bookings: SqlBookingStore = Depends(get_booking_store),
    notifier: SmtpNotifier = Depends(get_notifier),
) -> BookingOrchestrator:
    return BookingOrchestrator(
        availability=availability,
        calendar=calendar,
        calendar_credential=google_credential,
        meetings=zoom,
        meeting_credential=zoom_credential,
        bookings=bookings,
        notifier=notifier,
        tz=settings.tz,
        operator_email=settings.operator_notice_email,
    )


def get_reminder_sweeper(
    bookings: SqlBookingStore = Depends(get_booking_store),
    notifier: SmtpNotifier = Depends(get_notifier),
) -> ReminderSweeper:
    return ReminderSweeper(bookings, notifier, settings.tz, settings.reminder_lookahead_minutes)


def _operator_from_token(token: str) -> str | None:
    subject = decode_access_token(token)
    if not subject or not settings.operator_email:
        return None
    if subject.lower() != settings.operator_email.lower():
        return None
    return subject


async def get_current_operator(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    operator = _operator_from_token(credentials.credentials)
    if not operator:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return operator


async def require_scheduler(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """Cron callers send ``Authorization: Bearer <CRON_SECRET>``; operators may use their JWT."""
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token = credentials.credentials
    if settings.cron_secret and hmac.compare_digest(token.encode(), settings.cron_secret.encode()):
        return "cron"
    operator = _operator_from_token(token)
    if not operator:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid cron secret or token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return operator
