import asyncio
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from zoomzone.api.routes import auth, bookings, calendar, integrations, reminders, slots
from zoomzone.core.config import _ENV_FILE, settings
from zoomzone.core.db import async_session_maker, close_db, init_db
from zoomzone.core.errors import BookingError, InvalidInput
from zoomzone.services.email_service import SmtpNotifier
from zoomzone.services.reminder_service import ReminderSweeper
from zoomzone.services.stores import SqlBookingStore

if settings.env != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)

HTTP_TIMEOUT_SECONDS = 20.0


def _log_startup() -> None:
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    logger.info(
        "Business hours %02d:00-%02d:00 %s, reminder lookahead %d min",
        settings.business_start_hour,
        settings.business_end_hour,
        settings.business_timezone,
        settings.reminder_lookahead_minutes,
    )
    for name, configured in (
        ("Google OAuth", settings.google_client_id and settings.google_redirect_uri),
        ("Zoom OAuth", settings.zoom_client_id and settings.zoom_redirect_uri),
        ("SMTP email", settings.email_enabled),
    ):
        if configured:
            logger.info("%s: configured", name)
        else:
            logger.warning("%s: NOT configured. Set it in %s", name, _ENV_FILE)


async def _run_reminder_sweep() -> None:
    """One sweep with its own session; errors are logged so the loop keeps going."""
    try:
        async with async_session_maker() as session:
            sweeper = ReminderSweeper(
                SqlBookingStore(session),
                SmtpNotifier(),
                settings.tz,
                settings.reminder_lookahead_minutes,
            )
            result = await sweeper.run()
            if result.sent or result.failed:
                logger.info("Reminder sweep: sent=%s failed=%s", result.sent, [f.id for f in result.failed])
    except Exception as e:
        logger.exception("Reminder sweep failed: %s", e)


async def _reminder_loop(interval_seconds: int) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        await _run_reminder_sweep()


@asynccontextmanager
async def lifespan(app: FastAPI):
    _log_startup()
    if settings.env == "development":
        await init_db()
    app.state.http_client = httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)
    task = None
    # Otherwise an external scheduler calls /api/v1/reminders/sweep
    if settings.reminder_sweep_interval_seconds > 0:
        task = asyncio.create_task(_reminder_loop(settings.reminder_sweep_interval_seconds))
    yield
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    await app.state.http_client.aclose()
    await close_db()


app = FastAPI(
    title="Zoom Zone API",
    description="Meeting booking: availability, Zoom + Google Calendar booking, reminders",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(auth.router, prefix="/api/v1")
app.include_router(slots.router, prefix="/api/v1")
app.include_router(calendar.router, prefix="/api/v1")
app.include_router(bookings.router, prefix="/api/v1")
app.include_router(reminders.router, prefix="/api/v1")
app.include_router(integrations.router, prefix="/api/v1")


def _cors_headers(origin: str | None) -> dict[str, str]:
    """Add CORS headers to error responses so the browser doesn't block them."""
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Authorization, Content-Type",
    }
    if origin and origin in settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = origin
    elif settings.cors_origins_list:
        headers["Access-Control-Allow-Origin"] = settings.cors_origins_list[0]
    return headers


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    """Typed booking failures keep their kind so the caller knows whether to retry, re-pick or escalate."""
    if exc.status_code >= 500:
        logger.warning("%s on %s: %s", exc.kind, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=_cors_headers(request.headers.get("origin")),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}" for err in exc.errors()
    )
    return await booking_error_handler(request, InvalidInput(problems or "invalid request"))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return actual error in JSON; include CORS so 500 responses are not blocked by browser."""
    origin = request.headers.get("origin")
    headers = _cors_headers(origin)
    if isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )
    logger.exception("Unhandled exception: %s", exc)
    detail = f"{type(exc).__name__}: {str(exc)}"
    return JSONResponse(
        status_code=500,
        content={"error": "server_error", "detail": detail},
        headers=headers,
    )


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
