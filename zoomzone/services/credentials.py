"""One reusable refresh-and-retry policy for calls made with a stored OAuth token."""

import logging
from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar

from zoomzone.core.errors import (
    IntegrationNotConnected,
    ProviderAuthExpired,
    ProviderError,
    UpstreamUnavailable,
)
from zoomzone.models.integration import IntegrationCredential

logger = logging.getLogger(__name__)

T = TypeVar("T")

Refresher = Callable[[IntegrationCredential], Awaitable[IntegrationCredential]]


class CredentialStore(Protocol):
    async def get(self, provider_id: str) -> IntegrationCredential | None: ...

    async def upsert(self, credential: IntegrationCredential) -> IntegrationCredential: ...


def is_auth_expired(exc: Exception) -> bool:
    return isinstance(exc, ProviderAuthExpired)


class RefreshingCredential:
    """Runs ``fn(access_token)``; on an auth-expired failure refreshes once and retries once.

    The credential is loaded lazily and kept for the lifetime of this object
    (one request), so a token refreshed by one call is reused by the next.
    Any provider failure that is not fixed by the single refresh surfaces as
    ``UpstreamUnavailable``.
    """

    def __init__(
        self,
        provider_id: str,
        store: CredentialStore,
        refresher: Refresher,
        needs_refresh: Callable[[Exception], bool] = is_auth_expired,
    ):
        self.provider_id = provider_id
        self._store = store
        self._refresher = refresher
        self._needs_refresh = needs_refresh
        self._credential: IntegrationCredential | None = None

    async def current(self) -> IntegrationCredential:
        if self._credential is None:
            credential = await self._store.get(self.provider_id)
            if credential is None:
                raise IntegrationNotConnected(f"{self.provider_id} integration is not connected")
            self._credential = credential
        return self._credential

    async def refresh(self, stale: IntegrationCredential) -> IntegrationCredential:
        if not stale.refresh_token:
            raise UpstreamUnavailable(f"{self.provider_id} token expired and no refresh token is stored")
        try:
            fresh = await self._refresher(stale)
        except ProviderError as e:
            raise UpstreamUnavailable(f"{self.provider_id} token refresh failed: {e}") from e
        fresh.provider_id = self.provider_id
        # Google omits refresh_token on refresh; keep the one we have
        if not fresh.refresh_token:
            fresh.refresh_token = stale.refresh_token
        try:
            fresh = await self._store.upsert(fresh)
        except Exception:
            # The new token is still good for this request
            logger.exception("Could not save refreshed %s credential", self.provider_id)
        logger.info("Refreshed %s access token", self.provider_id)
        self._credential = fresh
        return fresh

    async def call(self, fn: Callable[[str], Awaitable[T]]) -> T:
        credential = await self.current()
        try:
            return await fn(credential.access_token)
        except ProviderError as e:
            if not self._needs_refresh(e):
                raise UpstreamUnavailable(f"{self.provider_id} request failed: {e}") from e
            logger.info("%s rejected access token, refreshing once: %s", self.provider_id, e)

        credential = await self.refresh(credential)
        try:
            return await fn(credential.access_token)
        except ProviderError as e:
            raise UpstreamUnavailable(f"{self.provider_id} request failed after token refresh: {e}") from e
