"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Application
    app_name: str = Field(default="PanchakarmaPro API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Database
    database_url: str = Field(..., alias="DATABASE_URL")

    # Redis
    redis_host: str = Field(..., alias="REDIS_HOST")
    redis_port: int = Field(..., alias="REDIS_PORT")
    redis_username: str = Field(default="default", alias="REDIS_USERNAME")
    redis_password: str = Field(default="", alias="REDIS_PASSWORD")
    redis_decode_responses: bool = Field(default=True, alias="REDIS_DECODE_RESPONSES")

    # JWT (tokens are issued by the identity service, verified here)
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # CORS
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    # Scheduling
    clinic_day_start: str = Field(default="10:00", alias="CLINIC_DAY_START")
    clinic_day_end: str = Field(default="18:00", alias="CLINIC_DAY_END")
    slot_duration_minutes: int = Field(default=30, ge=5, alias="SLOT_DURATION_MINUTES")
    conflict_policy: Literal["exact_start", "interval_overlap"] = Field(
        default="exact_start",
        alias="CONFLICT_POLICY",
        description="How a new booking is compared against active bookings",
    )
    status_transition_policy: Literal["permissive", "strict"] = Field(
        default="permissive",
        alias="STATUS_TRANSITION_POLICY",
        description="'strict' enforces the appointment state machine",
    )
    recheck_conflicts_on_reschedule: bool = Field(
        default=False,
        alias="RECHECK_CONFLICTS_ON_RESCHEDULE",
    )

    # Reminders
    reminder_email_hours_before: int = Field(default=24, alias="REMINDER_EMAIL_HOURS_BEFORE")
    reminder_sms_hours_before: int = Field(default=2, alias="REMINDER_SMS_HOURS_BEFORE")

    # Notifications outbox
    notification_queue_key: str = Field(
        default="notifications:outbox",
        alias="NOTIFICATION_QUEUE_KEY",
    )
    notification_requeue_after_minutes: int = Field(
        default=15,
        alias="NOTIFICATION_REQUEUE_AFTER_MINUTES",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
