# backend/booking_engine/core/config.py
from dataclasses import dataclass
from datetime import time
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    database_url: str = Field(
        default="sqlite+pysqlite:///./booking_engine.db",
        alias="DATABASE_URL",
        description="SQLAlchemy URL for the booking database",
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Scheduling policy
    travel_buffer_minutes: int = Field(
        default=30,
        ge=0,
        alias="TRAVEL_BUFFER_MINUTES",
        description="Minimum idle time around a home-visit booking",
    )
    min_lead_time_minutes: int = Field(
        default=0,
        ge=0,
        alias="MIN_LEAD_TIME_MINUTES",
        description="How far ahead of its start a booking must be made",
    )
    max_advance_booking_days: int = Field(default=365, gt=0, alias="MAX_ADVANCE_BOOKING_DAYS")
    slot_interval_minutes: int = Field(default=30, gt=0, alias="SLOT_INTERVAL_MINUTES")
    conflict_scan_window_hours: int = Field(
        default=24,
        gt=0,
        alias="CONFLICT_SCAN_WINDOW_HOURS",
        description="Half-width of the window scanned for conflicting bookings",
    )

    # Business hours fallback when a tenant has no schedule
    default_open_time: time = Field(default=time(9, 0), alias="DEFAULT_OPEN_TIME")
    default_close_time: time = Field(default=time(17, 0), alias="DEFAULT_CLOSE_TIME")
    default_timezone: str = Field(default="UTC", alias="DEFAULT_TIMEZONE")

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value


settings = Settings()


@dataclass(frozen=True)
class SchedulingPolicy:
    """Platform-wide scheduling knobs handed to the scheduling services."""

    travel_buffer_minutes: int = 30
    min_lead_time_minutes: int = 0
    max_advance_booking_days: int = 365
    slot_interval_minutes: int = 30
    conflict_scan_window_hours: int = 24

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "SchedulingPolicy":
        source = source or settings
        return cls(
            travel_buffer_minutes=source.travel_buffer_minutes,
            min_lead_time_minutes=source.min_lead_time_minutes,
            max_advance_booking_days=source.max_advance_booking_days,
            slot_interval_minutes=source.slot_interval_minutes,
            conflict_scan_window_hours=source.conflict_scan_window_hours,
        )
