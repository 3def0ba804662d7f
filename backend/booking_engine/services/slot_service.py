# backend/booking_engine/services/slot_service.py
"""
Slot Generator

Enumerates fixed-step candidate start times across a day's business hours
for a service and annotates each with availability. Only confirmed bookings
block a slot; pending requests are still shown as available.

This is a read path: it takes no locks and writes nothing, so repeated
calls without intervening writes return identical results.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.config import SchedulingPolicy
from ..core.exceptions import NotFoundException, ValidationException
from ..repositories import RepositoryFactory
from ..repositories.conflict_checker_repository import ConflictCheckerRepository
from ..repositories.directory_repository import DirectoryRepository
from .base import BaseService
from .business_hours import BusinessHoursResolver, ResolvedBusinessHours
from .conflict_checker import evaluate_conflicts, intervals_overlap

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeSlot:
    start: datetime
    end: datetime
    available: bool
    conflicting_booking_id: Optional[str] = None


@dataclass(frozen=True)
class DayAvailability:
    date: date
    slots: List[TimeSlot]
    business_hours: ResolvedBusinessHours


class SlotGenerator(BaseService):
    def __init__(
        self,
        db: Session,
        policy: Optional[SchedulingPolicy] = None,
        hours_resolver: Optional[BusinessHoursResolver] = None,
        directory: Optional[DirectoryRepository] = None,
        repository: Optional[ConflictCheckerRepository] = None,
    ):
        super().__init__(db)
        self.policy = policy or SchedulingPolicy.from_settings()
        self.hours_resolver = hours_resolver or BusinessHoursResolver(db)
        self.directory = directory or RepositoryFactory.create_directory_repository(db)
        self.repository = repository or RepositoryFactory.create_conflict_checker_repository(db)

    @BaseService.measure_operation("generate_slots")
    def generate_slots(
        self,
        tenant_id: str,
        service_id: str,
        target_date: date,
        duration_minutes: Optional[int] = None,
        is_home_visit: bool = False,
    ) -> DayAvailability:
        """
        Build the availability calendar for one tenant-local date.

        Args:
            tenant_id: Tenant whose timeline is used
            service_id: Service supplying the default duration
            target_date: Local calendar date
            duration_minutes: Optional override of the service duration
            is_home_visit: Apply the travel buffer as a home visit would

        Returns:
            DayAvailability; closed or blocked days have no slots
        """
        service = self.directory.get_service(tenant_id, service_id)
        if service is None:
            raise NotFoundException(
                "Service not found", code="SERVICE_NOT_FOUND", details={"service_id": service_id}
            )

        duration = duration_minutes or service.duration_minutes
        if duration <= 0:
            raise ValidationException("Duration must be a positive number of minutes")

        hours = self.hours_resolver.resolve(tenant_id, target_date)
        if not hours.is_open:
            return DayAvailability(date=target_date, slots=[], business_hours=hours)

        open_at, close_at = hours.window_utc()
        scan = timedelta(hours=self.policy.conflict_scan_window_hours)
        confirmed = self.repository.get_confirmed_bookings_between(
            tenant_id, open_at - scan, close_at + scan
        )
        breaks = hours.breaks_utc()

        step = timedelta(minutes=self.policy.slot_interval_minutes)
        length = timedelta(minutes=duration)
        slots: List[TimeSlot] = []
        current = open_at
        while current + length <= close_at:
            slot_end = current + length
            in_break = any(
                intervals_overlap(current, slot_end, b_start, b_end) for b_start, b_end in breaks
            )
            if in_break:
                slots.append(TimeSlot(start=current, end=slot_end, available=False))
            else:
                conflict = evaluate_conflicts(
                    current,
                    duration,
                    is_home_visit,
                    confirmed,
                    self.policy.travel_buffer_minutes,
                )
                slots.append(
                    TimeSlot(
                        start=current,
                        end=slot_end,
                        available=not conflict.has_conflict,
                        conflicting_booking_id=(
                            conflict.conflicting_booking_ids[0] if conflict.has_conflict else None
                        ),
                    )
                )
            current += step

        return DayAvailability(date=target_date, slots=slots, business_hours=hours)
