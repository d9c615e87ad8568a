# backend/studio/config.py

from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/studio.db"
    redis_url: str = "redis://localhost:6379/0"

    log_level: str = "INFO"

    # Studio wall clock: every date key is computed in this zone
    studio_timezone: str = "Europe/London"
    # Optional JSON weekly table, e.g. {"monday": {"morning": {...}}}
    weekly_schedule: Optional[str] = None
    default_session_minutes: int = 45

    # Identity
    admin_email: str = "admin@example.com"
    auth_secret: str = "change-me"
    auth_algorithm: str = "HS256"
    auth_token_minutes: int = 60 * 24 * 7

    # Billing
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    public_origin: str = "http://localhost:5173"

    # Buddy
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"

    # Web Push
    vapid_private_key: str = ""
    vapid_email: str = ""
    # Start the push consumer loops inside the API process
    run_push_consumers: bool = False

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            return f"sqlite:///{absolute_path}"
        return url

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.studio_timezone)


settings = Settings()
