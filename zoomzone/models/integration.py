from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

GOOGLE = "google"
ZOOM = "zoom"
PROVIDER_IDS = (GOOGLE, ZOOM)


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def _naive_utc(dt: datetime) -> datetime:
    """For TIMESTAMP WITHOUT TIME ZONE: store as naive UTC."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC)
    return dt.replace(tzinfo=None)


class IntegrationCredential(SQLModel, table=True):
    """OAuth tokens for one provider ("google" or "zoom")."""

    __tablename__ = "integrations"
    provider_id: str = Field(primary_key=True)
    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = Field(default=None, sa_type=DateTime())
    scope: str | None = None
    updated_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())

    def model_post_init(self, __context: object) -> None:
        """Ensure expires_at is naive UTC for asyncpg TIMESTAMP WITHOUT TIME ZONE."""
        if self.expires_at is not None:
            self.expires_at = _naive_utc(self.expires_at)


class IntegrationStatus(SQLModel):
    provider_id: str
    connected: bool
    updated_at: datetime | None = None
