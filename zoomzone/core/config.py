from functools import cached_property
from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from project root so it loads regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str

    # JWT (operator access tokens and OAuth state)
    secret_key: str
    access_token_expire_minutes: int = 60
    oauth_state_expire_minutes: int = 10
    algorithm: str = "HS256"

    # CORS
    cors_origins: str = "http://localhost:5173"

    # Google Calendar OAuth
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = ""
    google_calendar_id: str = "primary"

    # Zoom OAuth
    zoom_client_id: str = ""
    zoom_client_secret: str = ""
    zoom_redirect_uri: str = ""

    # Slot/booking business rules. One business timezone for everything.
    business_timezone: str = "America/Denver"
    business_start_hour: int = 6
    business_end_hour: int = 22  # exclusive, last slot starts before 22:00
    default_duration_minutes: int = 15
    allowed_durations: str = "15,30,45,60"

    # Reminders
    reminder_lookahead_minutes: int = 60
    # 0 disables the in-process loop; an external cron calls /reminders/sweep instead
    reminder_sweep_interval_seconds: int = 0
    cron_secret: str = ""

    # Operator account (bcrypt hash, see zoomzone.core.security.hash_password)
    operator_email: str = ""
    operator_password_hash: str = ""

    # Env
    env: str = "development"

    # Email (Gmail SMTP). Leave smtp_host empty to disable sending.
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    from_email: str = ""
    from_name: str = "Zoom Zone"
    site_name: str = "Zoom Zone"
    signature: str = "Zoom Zone"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def allowed_durations_list(self) -> list[int]:
        return [int(d) for d in self.allowed_durations.split(",") if d.strip()]

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password and self.from_email)

    @property
    def operator_notice_email(self) -> str:
        """Where new-booking notices go: the operator, else the sender mailbox."""
        return self.operator_email or self.from_email

    @cached_property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.business_timezone)


settings = Settings()
