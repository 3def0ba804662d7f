# backend/booking_engine/services/time_validator.py
"""
Time Validator

Cheapest filter in the booking pipeline: rejects start times that are in
the past, inside the minimum lead time, or beyond the advance-booking
window. Runs before any database access.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..core.config import SchedulingPolicy
from ..core.timezone_utils import Clock, ensure_utc, utc_now

PAST_TIME_MESSAGE = "Booking time must be in the future"


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    message: Optional[str] = None


class TimeValidator:
    def __init__(self, policy: Optional[SchedulingPolicy] = None, clock: Clock = utc_now):
        self.policy = policy or SchedulingPolicy.from_settings()
        self.clock = clock

    def validate(self, scheduled_at: datetime) -> ValidationResult:
        now = ensure_utc(self.clock())
        scheduled_at = ensure_utc(scheduled_at)

        if scheduled_at <= now:
            return ValidationResult(valid=False, message=PAST_TIME_MESSAGE)

        lead_time = self.policy.min_lead_time_minutes
        if lead_time and scheduled_at < now + timedelta(minutes=lead_time):
            return ValidationResult(
                valid=False,
                message=f"Bookings must be made at least {lead_time} minutes in advance",
            )

        max_days = self.policy.max_advance_booking_days
        if scheduled_at > now + timedelta(days=max_days):
            return ValidationResult(
                valid=False,
                message=f"Booking time cannot be more than {max_days} days in the future",
            )

        return ValidationResult(valid=True)
