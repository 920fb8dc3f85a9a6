import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import HTMLResponse

from zoomzone.api.deps import get_calendar_client, get_credential_store, get_current_operator, get_zoom_client
from zoomzone.api.schemas.auth import AuthorizationUrl
from zoomzone.core.config import settings
from zoomzone.core.errors import ProviderError
from zoomzone.core.security import create_oauth_state, verify_oauth_state
from zoomzone.models.integration import GOOGLE, PROVIDER_IDS, ZOOM, IntegrationStatus
from zoomzone.services.google_calendar_service import GoogleCalendarClient
from zoomzone.services.stores import SqlCredentialStore
from zoomzone.services.zoom_service import ZoomClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/integrations", tags=["integrations"])

_TITLES = {GOOGLE: "Google", ZOOM: "Zoom"}


def get_oauth_clients(
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
    zoom: ZoomClient = Depends(get_zoom_client),
) -> dict[str, GoogleCalendarClient | ZoomClient]:
    return {GOOGLE: calendar, ZOOM: zoom}


def _client_for(provider_id: str, clients: dict[str, GoogleCalendarClient | ZoomClient]):
    client = clients.get(provider_id)
    if client is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown integration {provider_id!r}")
    return client


@router.get("", response_model=list[IntegrationStatus])
async def integration_status(
    operator: str = Depends(get_current_operator),
    store: SqlCredentialStore = Depends(get_credential_store),
) -> list[IntegrationStatus]:
    stored = {c.provider_id: c for c in await store.list_all()}
    return [
        IntegrationStatus(
            provider_id=p,
            connected=p in stored,
            updated_at=stored[p].updated_at if p in stored else None,
        )
        for p in PROVIDER_IDS
    ]


@router.get("/{provider_id}", response_model=AuthorizationUrl)
async def start_connect(
    provider_id: str,
    operator: str = Depends(get_current_operator),
    clients: dict = Depends(get_oauth_clients),
) -> AuthorizationUrl:
    """Authorization URL for connecting the Google calendar or the Zoom account."""
    client = _client_for(provider_id, clients)
    if not client.configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{_TITLES[provider_id]} OAuth is not configured (client id, secret and redirect URI)",
        )
    return AuthorizationUrl(
        provider_id=provider_id,
        authorization_url=client.authorization_url(create_oauth_state(provider_id)),
    )


@router.get("/{provider_id}/callback", response_class=HTMLResponse)
async def connect_callback(
    provider_id: str,
    code: str = Query(...),
    state: str | None = Query(None),
    clients: dict = Depends(get_oauth_clients),
    store: SqlCredentialStore = Depends(get_credential_store),
) -> HTMLResponse:
    client = _client_for(provider_id, clients)
    if not verify_oauth_state(state, provider_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired OAuth state")
    try:
        credential = await client.exchange_code(code)
    except ProviderError as e:
        logger.warning("%s token exchange failed: %s body=%s", provider_id, e, e.body)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to exchange OAuth code for tokens",
        ) from e
    await store.upsert(credential)
    logger.info("%s integration connected", provider_id)
    return HTMLResponse(
        f"<h2>{_TITLES[provider_id]} connected ✅</h2>"
        f"<p>You can close this window and return to {settings.site_name}.</p>"
    )
