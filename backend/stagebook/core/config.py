from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator
from typing import Any, ClassVar
import json
from pathlib import Path
import os


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        case_sensitive=True,
    )

    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Stagebook Booking API"

    # JWT configuration (provide a fallback for local development)
    SECRET_KEY: str = "fallback_secret_for_dev_only"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Database URL
    # Use an absolute path so running the app from different directories
    # (e.g., repo root or backend/) always resolves the same DB file.
    BASE_DIR: ClassVar[Path] = Path(__file__).resolve().parents[2]
    SQLALCHEMY_DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'stagebook.db'}"

    # CORS origins
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    CORS_ALLOW_ALL: bool = False

    # Base frontend URL used to build links in notifications
    FRONTEND_URL: str = "http://localhost:3000"

    # SMTP email settings
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 25
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = "no-reply@localhost"

    # Twilio SMS (leave blank to disable the SMS channel)
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_FROM_NUMBER: str = ""

    # Logging / tracing
    LOG_LEVEL: str = "INFO"
    ENABLE_CONSOLE_TRACING: bool = False

    # Confirmed bookings auto-complete this many hours after the event date
    BOOKING_AUTO_COMPLETE_HOURS: int = 12

    # Maximum modification proposals per rider negotiation (0 = unlimited)
    RIDER_MAX_PROPOSAL_ROUNDS: int = 0
    # Days after sharing / last proposal on which reminders go out
    RIDER_REMINDER_DAYS: list[int] = [1, 3, 7]

    # Outbox delivery
    OUTBOX_MAX_ATTEMPTS: int = 5
    OUTBOX_MAX_BATCH: int = 200

    # Maintenance loop cadence (seconds)
    MAINTENANCE_INTERVAL_SECONDS: int = 1800

    @field_validator("CORS_ORIGINS", mode="before")
    def split_origins(cls, v: Any) -> list[str]:
        """Parse comma-separated or JSON list of origins from environment."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("RIDER_REMINDER_DAYS", mode="before")
    def split_reminder_days(cls, v: Any) -> list[int]:
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return [int(d) for d in parsed]
            except json.JSONDecodeError:
                pass
            return [int(s) for s in v.split(",") if s.strip()]
        return v

    @field_validator("FRONTEND_URL", mode="before")
    def strip_whitespace(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().rstrip("/")
        return v

    @model_validator(mode="after")
    def allow_all_if_requested(cls, values: "Settings") -> "Settings":
        if values.CORS_ALLOW_ALL:
            values.CORS_ORIGINS = ["*"]
        return values


def load_settings() -> "Settings":
    return Settings(_env_file=os.getenv("ENV_FILE", str(Path(__file__).resolve().parents[3] / ".env")))


settings = load_settings()
