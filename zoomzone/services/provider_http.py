import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx

from zoomzone.core.errors import ProviderAuthExpired, ProviderError
from zoomzone.models.integration import IntegrationCredential

logger = logging.getLogger(__name__)


def _default_is_auth_error(resp: httpx.Response, body: Any) -> bool:
    return resp.status_code == 401


async def send_json(
    http: httpx.AsyncClient,
    provider: str,
    method: str,
    url: str,
    is_auth_error: Callable[[httpx.Response, Any], bool] = _default_is_auth_error,
    **kwargs: Any,
) -> dict:
    """Send a request and return the JSON body, mapping failures to ProviderError."""
    try:
        resp = await http.request(method, url, **kwargs)
    except httpx.HTTPError as e:
        raise ProviderError(provider, f"{method} {url} failed: {type(e).__name__}: {e}") from e
    try:
        body = resp.json() if resp.content else {}
    except ValueError:
        body = {"raw": resp.text[:500]}
    if is_auth_error(resp, body):
        raise ProviderAuthExpired(provider, f"access token rejected ({resp.status_code})", resp.status_code, body)
    if resp.is_error:
        logger.warning(
            "%s %s %s failed: status=%s body=%s", provider, method, url, resp.status_code, resp.text[:500]
        )
        raise ProviderError(provider, f"{method} {url} returned {resp.status_code}", resp.status_code, body)
    if not isinstance(body, dict):
        raise ProviderError(provider, f"{method} {url} returned a non-object body", resp.status_code, body)
    return body


def credential_from_token_response(provider_id: str, data: dict) -> IntegrationCredential:
    """Build a credential from an OAuth token endpoint response."""
    access_token = data.get("access_token")
    if not access_token:
        raise ProviderError(provider_id, "token response has no access_token", body=data)
    expires_at = None
    if data.get("expires_in"):
        expires_at = datetime.now(UTC) + timedelta(seconds=int(data["expires_in"]))
    return IntegrationCredential(
        provider_id=provider_id,
        access_token=access_token,
        refresh_token=data.get("refresh_token"),
        expires_at=expires_at,
        scope=data.get("scope"),
    )
