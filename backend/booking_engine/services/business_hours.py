# backend/booking_engine/services/business_hours.py
"""
Business Hours Resolver

Maps a tenant and a calendar date to an open/closed state and an operating
window. Times are wall-clock times in the tenant's timezone; the resolved
value can project its window and breaks onto UTC for comparisons with
stored bookings.

A tenant without a schedule, or a schedule without an entry for the day,
falls back to the injected default hours. Absence of configuration is not
an error.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
import logging
from typing import Any, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.timezone_utils import (
    ensure_utc,
    format_clock_time,
    get_timezone,
    local_to_utc,
    parse_clock_time,
    to_local,
)
from ..models.tenant import BusinessHours
from ..repositories.business_hours_repository import BusinessHoursRepository
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .time_validator import ValidationResult

logger = logging.getLogger(__name__)

DAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

CLOSED_DAY_MESSAGE = "Business is closed on this day"
BLOCKED_DAY_MESSAGE = "Bookings are not accepted on this date"
BREAK_MESSAGE = "Booking overlaps a scheduled break"


@dataclass(frozen=True)
class BreakWindow:
    start: time
    end: time


@dataclass(frozen=True)
class DefaultBusinessHours:
    """Hours applied when a tenant has no schedule for a day."""

    open_time: time = time(9, 0)
    close_time: time = time(17, 0)
    timezone: str = "UTC"

    @classmethod
    def from_settings(cls) -> "DefaultBusinessHours":
        return cls(
            open_time=settings.default_open_time,
            close_time=settings.default_close_time,
            timezone=settings.default_timezone,
        )


DEFAULT_BUSINESS_HOURS = DefaultBusinessHours.from_settings()


@dataclass(frozen=True)
class ResolvedBusinessHours:
    """Business hours in effect for one tenant on one local date."""

    date: date
    is_open: bool
    timezone: str
    open_time: Optional[time] = None
    close_time: Optional[time] = None
    breaks: Tuple[BreakWindow, ...] = field(default_factory=tuple)
    is_blocked: bool = False

    def window_utc(self) -> Tuple[datetime, datetime]:
        """Opening and closing instants in UTC. Only valid for open days."""
        if not self.is_open or self.open_time is None or self.close_time is None:
            raise ValueError("Closed days have no operating window")
        return (
            local_to_utc(self.date, self.open_time, self.timezone),
            local_to_utc(self.date, self.close_time, self.timezone),
        )

    def breaks_utc(self) -> list[Tuple[datetime, datetime]]:
        return [
            (
                local_to_utc(self.date, window.start, self.timezone),
                local_to_utc(self.date, window.end, self.timezone),
            )
            for window in self.breaks
        ]

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"is_open": self.is_open}
        if self.is_open and self.open_time and self.close_time:
            result["open_time"] = format_clock_time(self.open_time)
            result["close_time"] = format_clock_time(self.close_time)
        return result


def _parse_breaks(raw_breaks: Any) -> Tuple[BreakWindow, ...]:
    windows = []
    for raw in raw_breaks or []:
        try:
            start = parse_clock_time(raw["start_time"])
            end = parse_clock_time(raw["end_time"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Ignoring malformed break entry", extra={"break_entry": raw})
            continue
        if start < end:
            windows.append(BreakWindow(start=start, end=end))
    return tuple(sorted(windows, key=lambda w: w.start))


class BusinessHoursResolver(BaseService):
    """Resolves per-day operating windows from tenant configuration."""

    def __init__(
        self,
        db: Session,
        default_hours: DefaultBusinessHours = DEFAULT_BUSINESS_HOURS,
        repository: Optional[BusinessHoursRepository] = None,
    ):
        super().__init__(db)
        self.default_hours = default_hours
        self.repository = repository or RepositoryFactory.create_business_hours_repository(db)

    def get_timezone(self, tenant_id: str) -> str:
        return self._timezone_for(tenant_id, self.repository.get_for_tenant(tenant_id))

    def _timezone_for(self, tenant_id: str, record: Optional[BusinessHours]) -> str:
        """Tenant timezone, or the default when unset or not a known zone name."""
        if record is None or not record.timezone:
            return self.default_hours.timezone
        tz_name = str(record.timezone)
        try:
            get_timezone(tz_name)
        except ValueError:
            self.logger.warning(
                "Unknown tenant timezone; using default",
                extra={
                    "tenant_id": tenant_id,
                    "timezone": tz_name,
                    "default_timezone": self.default_hours.timezone,
                },
            )
            return self.default_hours.timezone
        return tz_name

    def resolve(self, tenant_id: str, target_date: date) -> ResolvedBusinessHours:
        """
        Resolve the business hours for ``target_date`` (a local calendar date).

        Blocked dates resolve as closed with ``is_blocked`` set.
        """
        record = self.repository.get_for_tenant(tenant_id)
        tz_name = self._timezone_for(tenant_id, record)

        if self.repository.get_blocked_date(tenant_id, target_date) is not None:
            return ResolvedBusinessHours(
                date=target_date, is_open=False, timezone=tz_name, is_blocked=True
            )

        day_name = DAY_NAMES[target_date.weekday()]
        entry = record.day_entry(day_name) if record is not None else None
        if entry is None:
            return ResolvedBusinessHours(
                date=target_date,
                is_open=True,
                timezone=tz_name,
                open_time=self.default_hours.open_time,
                close_time=self.default_hours.close_time,
            )

        return self._from_entry(target_date, tz_name, entry)

    def resolve_for_instant(self, tenant_id: str, instant: datetime) -> ResolvedBusinessHours:
        """Resolve hours for the tenant-local date on which ``instant`` falls."""
        tz_name = self.get_timezone(tenant_id)
        return self.resolve(tenant_id, to_local(instant, tz_name).date())

    def validate_booking_window(
        self, tenant_id: str, start: datetime, duration_minutes: int
    ) -> ValidationResult:
        """
        Check that ``[start, start + duration)`` sits inside the day's hours.

        The booking must start at or after opening, end at or before closing,
        and must not overlap a break.
        """
        start = ensure_utc(start)
        end = start + timedelta(minutes=duration_minutes)
        hours = self.resolve_for_instant(tenant_id, start)

        if hours.is_blocked:
            return ValidationResult(valid=False, message=BLOCKED_DAY_MESSAGE)
        if not hours.is_open:
            return ValidationResult(valid=False, message=CLOSED_DAY_MESSAGE)

        open_at, close_at = hours.window_utc()
        if start < open_at or end > close_at:
            return ValidationResult(
                valid=False,
                message=(
                    f"Business hours are {format_clock_time(hours.open_time)} - "
                    f"{format_clock_time(hours.close_time)}"
                ),
            )

        for break_start, break_end in hours.breaks_utc():
            if start < break_end and break_start < end:
                return ValidationResult(valid=False, message=BREAK_MESSAGE)

        return ValidationResult(valid=True)

    def _from_entry(
        self, target_date: date, tz_name: str, entry: Mapping[str, Any]
    ) -> ResolvedBusinessHours:
        if not entry.get("is_open", True):
            return ResolvedBusinessHours(date=target_date, is_open=False, timezone=tz_name)

        try:
            open_time = parse_clock_time(entry.get("open_time") or "")
            close_time = parse_clock_time(entry.get("close_time") or "")
        except ValueError:
            self.logger.warning(
                "Malformed business hours entry; using defaults",
                extra={"day": DAY_NAMES[target_date.weekday()]},
            )
            open_time = self.default_hours.open_time
            close_time = self.default_hours.close_time

        if close_time <= open_time:
            return ResolvedBusinessHours(date=target_date, is_open=False, timezone=tz_name)

        return ResolvedBusinessHours(
            date=target_date,
            is_open=True,
            timezone=tz_name,
            open_time=open_time,
            close_time=close_time,
            breaks=_parse_breaks(entry.get("breaks")),
        )
