"""Centralized application configuration using Pydantic settings."""
from datetime import timezone, tzinfo
from functools import lru_cache
from typing import List
from zoneinfo import ZoneInfo

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration shared across services."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    database_url: str = Field(
        default="sqlite:///./spa.db",
        description="SQLAlchemy database URL. Defaults to local SQLite for development.",
    )
    run_db_migrations: bool = Field(
        default=False,
        description="Whether this service should create/update database tables on startup.",
    )
    jwt_secret: str = Field(default="super-secret", description="JWT signing secret")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    access_token_expire_minutes: int = Field(default=60, description="Token lifetime in minutes")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")
    default_rate_limit: str = Field(default="60/minute", description="Global rate limiting rule")
    rate_limiting_enabled: bool = Field(default=True, description="Toggle to disable SlowAPI limits (useful in tests)")

    timezone: str = Field(default="UTC", description="IANA zone used for day boundaries and booking timestamps")
    business_day_start_hour: int = Field(default=8, ge=0, le=23, description="First hour of the slot grid")
    business_day_end_hour: int = Field(default=22, ge=1, le=23, description="Hour at which the slot grid ends")
    slot_minutes: int = Field(default=30, gt=0, description="Width of one slot in the room grid")
    workload_reference_minutes: int = Field(default=480, gt=0, description="Minutes that count as a full therapist day")
    quick_booking_limit: int = Field(default=10, ge=0, description="Maximum quick booking shortcuts returned")
    quick_booking_default_duration: int = Field(default=60, description="Duration shown for quick bookings without one")
    default_category_hexcode: str = Field(default="#2196f3", description="Fallback category background colour")
    default_category_textcolor: str = Field(default="#ffffff", description="Fallback category text colour")

    log_dir: str = Field(default="logs", description="Directory receiving the per-service audit logs")

    directory_service_port: int = 8001
    bookings_service_port: int = 8002
    reservations_service_port: int = 8003


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of the Settings object."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the cached Settings instance (useful for tests)."""

    get_settings.cache_clear()


def get_zone() -> tzinfo:
    """Zone in which booking days start and end."""

    name = get_settings().timezone
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)
