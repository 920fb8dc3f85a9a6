import logging
from datetime import datetime
from typing import Any
from urllib.parse import urlencode

import httpx

from zoomzone.core.config import settings
from zoomzone.core.errors import ProviderError
from zoomzone.models.integration import ZOOM, IntegrationCredential
from zoomzone.services.provider_http import credential_from_token_response, send_json
from zoomzone.services.time_utils import ensure_utc

logger = logging.getLogger(__name__)

ZOOM_AUTH_URL = "https://zoom.us/oauth/authorize"
ZOOM_TOKEN_URL = "https://zoom.us/oauth/token"
ZOOM_API_URL = "https://api.zoom.us/v2"

# 124: invalid access token, 1241: access token expired/revoked
ZOOM_AUTH_ERROR_CODES = frozenset({124, 1241})
SCHEDULED_MEETING = 2


def is_zoom_auth_error(resp: httpx.Response, body: Any) -> bool:
    if resp.status_code == 401:
        return True
    return isinstance(body, dict) and body.get("code") in ZOOM_AUTH_ERROR_CODES


class ZoomClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        client_id: str | None = None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
    ):
        self.http = http
        self.client_id = client_id if client_id is not None else settings.zoom_client_id
        self.client_secret = client_secret if client_secret is not None else settings.zoom_client_secret
        self.redirect_uri = redirect_uri if redirect_uri is not None else settings.zoom_redirect_uri

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.redirect_uri)

    @property
    def _basic_auth(self) -> httpx.BasicAuth:
        return httpx.BasicAuth(self.client_id, self.client_secret)

    def authorization_url(self, state: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "state": state,
        }
        return f"{ZOOM_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> IntegrationCredential:
        data = await send_json(
            self.http,
            ZOOM,
            "POST",
            ZOOM_TOKEN_URL,
            params={"grant_type": "authorization_code", "code": code, "redirect_uri": self.redirect_uri},
            auth=self._basic_auth,
        )
        return credential_from_token_response(ZOOM, data)

    async def refresh_token(self, credential: IntegrationCredential) -> IntegrationCredential:
        data = await send_json(
            self.http,
            ZOOM,
            "POST",
            ZOOM_TOKEN_URL,
            params={"grant_type": "refresh_token", "refresh_token": credential.refresh_token},
            auth=self._basic_auth,
        )
        return credential_from_token_response(ZOOM, data)

    async def create_meeting(
        self, access_token: str, topic: str, start_utc: datetime, duration_minutes: int
    ) -> str:
        """Create a scheduled meeting and return its join URL."""
        data = await send_json(
            self.http,
            ZOOM,
            "POST",
            f"{ZOOM_API_URL}/users/me/meetings",
            is_auth_error=is_zoom_auth_error,
            json={
                "topic": topic,
                "type": SCHEDULED_MEETING,
                "start_time": ensure_utc(start_utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
                "duration": duration_minutes,
            },
            headers={"Authorization": f"Bearer {access_token}"},
        )
        join_url = data.get("join_url")
        if not join_url:
            raise ProviderError(ZOOM, "meeting creation returned no join_url", body=data)
        logger.info("Created Zoom meeting %s", data.get("id"))
        return join_url
