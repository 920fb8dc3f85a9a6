import logging
from datetime import datetime
from urllib.parse import quote, urlencode
from zoneinfo import ZoneInfo

import httpx

from zoomzone.core.config import settings
from zoomzone.core.errors import ProviderError
from zoomzone.models.integration import GOOGLE, IntegrationCredential
from zoomzone.services.provider_http import credential_from_token_response, send_json
from zoomzone.services.time_utils import ensure_utc, to_provider_local

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
CALENDAR_API_URL = "https://www.googleapis.com/calendar/v3"
CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
    "openid",
    "email",
    "profile",
]


def _rfc3339(dt: datetime) -> str:
    return ensure_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


class GoogleCalendarClient:
    """Google Calendar v3 over REST. Token-bearing calls take the access token explicitly."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        tz: ZoneInfo | None = None,
        calendar_id: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
    ):
        self.http = http
        self.tz = tz or settings.tz
        self.calendar_id = calendar_id or settings.google_calendar_id
        self.client_id = client_id if client_id is not None else settings.google_client_id
        self.client_secret = client_secret if client_secret is not None else settings.google_client_secret
        self.redirect_uri = redirect_uri if redirect_uri is not None else settings.google_redirect_uri

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.redirect_uri)

    @property
    def _events_url(self) -> str:
        return f"{CALENDAR_API_URL}/calendars/{quote(self.calendar_id, safe='')}/events"

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(CALENDAR_SCOPES),
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> IntegrationCredential:
        data = await send_json(
            self.http,
            GOOGLE,
            "POST",
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        return credential_from_token_response(GOOGLE, data)

    async def refresh_token(self, credential: IntegrationCredential) -> IntegrationCredential:
        data = await send_json(
            self.http,
            GOOGLE,
            "POST",
            GOOGLE_TOKEN_URL,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": credential.refresh_token,
                "grant_type": "refresh_token",
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        return credential_from_token_response(GOOGLE, data)

    async def list_events(self, access_token: str, time_min: datetime, time_max: datetime) -> list[dict]:
        """All single (expanded) events overlapping ``[time_min, time_max)``, across pages."""
        params = {
            "timeMin": _rfc3339(time_min),
            "timeMax": _rfc3339(time_max),
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        items: list[dict] = []
        while True:
            data = await send_json(
                self.http,
                GOOGLE,
                "GET",
                self._events_url,
                params=params,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            items.extend(data.get("items") or [])
            page_token = data.get("nextPageToken")
            if not page_token:
                break
            params = {**params, "pageToken": page_token}
        logger.debug("Google Calendar returned %d event(s) for %s..%s", len(items), time_min, time_max)
        return items

    async def create_event(
        self,
        access_token: str,
        summary: str,
        start: datetime,
        end: datetime,
        attendees: list[str],
        description: str,
    ) -> dict:
        body = {
            "summary": summary,
            "start": to_provider_local(start, self.tz),
            "end": to_provider_local(end, self.tz),
            "attendees": [{"email": a} for a in attendees],
            "description": description,
        }
        data = await send_json(
            self.http,
            GOOGLE,
            "POST",
            self._events_url,
            json=body,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not data.get("id"):
            raise ProviderError(GOOGLE, "event insert returned no id", body=data)
        return data
