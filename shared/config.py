"""
Shared configuration module for the BezKomprese notification functions.
All trigger handlers and the reminder sweep use this configuration module.
"""
from pydantic_settings import BaseSettings
from pydantic import field_validator
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "BezKomprese Notifications"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Firebase - on Cloud Functions the default credentials are used,
    # the service account settings are only needed for local runs.
    FIREBASE_PROJECT_ID: str = ""
    FIREBASE_SERVICE_ACCOUNT_PATH: str = ""
    FIREBASE_SERVICE_ACCOUNT_JSON: str = ""
    FUNCTIONS_REGION: str = "europe-west1"

    # Notification rules
    NOTIFICATION_TIMEZONE: str = "Europe/Prague"
    REMINDER_SCHEDULE: str = "0 9 * * *"  # Every day at 9:00
    FRIEND_REQUEST_COOLDOWN_HOURS: int = 24  # 0 disables the cooldown
    SERVICE_REMINDERS_ENABLED: bool = True
    SERVICE_OVERDUE_COOLOFF_DAYS: int = 7

    # Sentry
    SENTRY_DSN: str = ""
    SENTRY_ENVIRONMENT: str = "development"
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    # Logging
    LOG_LEVEL: str = "INFO"

    @field_validator('NOTIFICATION_TIMEZONE')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Quiet hours and reminder dates are evaluated in this zone."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"NOTIFICATION_TIMEZONE '{v}' is not a known IANA timezone")
        return v

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"LOG_LEVEL '{v}' is not a valid logging level")
        return level

    @field_validator('FRIEND_REQUEST_COOLDOWN_HOURS', 'SERVICE_OVERDUE_COOLOFF_DAYS')
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Cooldown periods must not be negative")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self.NOTIFICATION_TIMEZONE)

    def validate_production_settings(self) -> None:
        """Validate settings for production environment."""
        if self.ENVIRONMENT == "production":
            if self.DEBUG:
                raise ValueError("DEBUG must be False in production")
            if self.FIREBASE_SERVICE_ACCOUNT_JSON:
                # Inline keys end up in function env dumps; deployed functions use default credentials
                raise ValueError("FIREBASE_SERVICE_ACCOUNT_JSON must not be set in production")


settings = Settings()

# A misconfigured deployment must not start serving triggers
if settings.ENVIRONMENT == "production":
    try:
        settings.validate_production_settings()
    except ValueError as e:
        logging.getLogger(__name__).critical(f"Production configuration error: {e}")
        raise SystemExit(f"CRITICAL: Production configuration error: {e}")
