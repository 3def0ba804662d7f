# backend/booking_engine/services/conflict_checker.py
"""
Conflict Detector for the booking engine

Decides whether a proposed interval collides with a tenant's active
bookings. Two rules apply to every candidate booking:

- Direct overlap: ``a.start < b.end and b.start < a.end`` (start inclusive,
  end exclusive), so back-to-back bookings do not collide.
- Travel buffer: when either booking is a home visit, the idle gap between
  them must be at least the travel buffer. A gap exactly equal to the buffer
  is accepted.

The scan is bounded to active bookings starting within the configured window
around the proposed start.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging
from typing import Any, Iterable, List, Optional

from sqlalchemy.orm import Session

from ..core.config import SchedulingPolicy
from ..core.timezone_utils import ensure_utc
from ..models.booking import Booking
from ..repositories import RepositoryFactory
from ..repositories.conflict_checker_repository import ConflictCheckerRepository
from .base import BaseService

logger = logging.getLogger(__name__)

TIME_CONFLICT = "time_conflict"
INSUFFICIENT_TRAVEL_TIME = "insufficient_travel_time"

TIME_CONFLICT_MESSAGE = "Time conflict with an existing booking"
TRAVEL_TIME_MESSAGE = "Insufficient travel time between home visit bookings"


@dataclass
class BookingConflict:
    """Outcome of a conflict check."""

    has_conflict: bool
    conflicting_bookings: List[Booking] = field(default_factory=list)
    reason: Optional[str] = None
    kind: Optional[str] = None

    @property
    def conflicting_booking_ids(self) -> List[str]:
        return [booking.id for booking in self.conflicting_bookings]


def intervals_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    return a_start < b_end and b_start < a_end


def classify_conflict(
    start: datetime,
    end: datetime,
    is_home_visit: bool,
    other: Any,
    travel_buffer: timedelta,
) -> Optional[str]:
    """
    Return the rule ``other`` breaks against ``[start, end)``, or None.

    ``other`` is anything exposing ``starts_at``, ``ends_at`` and
    ``is_home_visit`` (normally a Booking).
    """
    other_start, other_end = other.starts_at, other.ends_at
    if intervals_overlap(start, end, other_start, other_end):
        return TIME_CONFLICT

    if (is_home_visit or other.is_home_visit) and travel_buffer > timedelta(0):
        if start < other_end + travel_buffer and other_start < end + travel_buffer:
            return INSUFFICIENT_TRAVEL_TIME

    return None


def evaluate_conflicts(
    start: datetime,
    duration_minutes: int,
    is_home_visit: bool,
    candidates: Iterable[Any],
    travel_buffer_minutes: int,
) -> BookingConflict:
    """
    Collect every candidate that conflicts with the proposed booking.

    The reason reports a time conflict when any candidate overlaps directly,
    and insufficient travel time otherwise.
    """
    start = ensure_utc(start)
    end = start + timedelta(minutes=duration_minutes)
    buffer = timedelta(minutes=travel_buffer_minutes)

    conflicting = []
    kinds = set()
    for candidate in candidates:
        kind = classify_conflict(start, end, is_home_visit, candidate, buffer)
        if kind is not None:
            conflicting.append(candidate)
            kinds.add(kind)

    if not conflicting:
        return BookingConflict(has_conflict=False)

    if TIME_CONFLICT in kinds:
        return BookingConflict(
            has_conflict=True,
            conflicting_bookings=conflicting,
            reason=TIME_CONFLICT_MESSAGE,
            kind=TIME_CONFLICT,
        )
    return BookingConflict(
        has_conflict=True,
        conflicting_bookings=conflicting,
        reason=TRAVEL_TIME_MESSAGE,
        kind=INSUFFICIENT_TRAVEL_TIME,
    )


class ConflictChecker(BaseService):
    """
    Service for checking booking conflicts on a tenant's shared timeline.
    """

    def __init__(
        self,
        db: Session,
        policy: Optional[SchedulingPolicy] = None,
        repository: Optional[ConflictCheckerRepository] = None,
    ):
        """
        Initialize conflict checker service.

        Args:
            db: Database session
            policy: Scheduling policy (travel buffer, scan window)
            repository: Optional ConflictCheckerRepository instance
        """
        super().__init__(db)
        self.policy = policy or SchedulingPolicy.from_settings()
        self.repository = repository or RepositoryFactory.create_conflict_checker_repository(db)

    @BaseService.measure_operation("check_booking_conflicts")
    def check_booking_conflicts(
        self,
        tenant_id: str,
        start: datetime,
        duration_minutes: int,
        is_home_visit: bool,
        exclude_booking_id: Optional[str] = None,
    ) -> BookingConflict:
        """
        Check a proposed booking against the tenant's active bookings.

        Args:
            tenant_id: Tenant whose timeline is checked
            start: Proposed start time
            duration_minutes: Proposed duration
            is_home_visit: Whether the proposed booking is a home visit
            exclude_booking_id: Booking to ignore (the one being updated)

        Returns:
            BookingConflict describing every conflicting booking
        """
        candidates = self.repository.get_active_bookings_near(
            tenant_id,
            ensure_utc(start),
            timedelta(hours=self.policy.conflict_scan_window_hours),
            exclude_booking_id=exclude_booking_id,
        )
        result = evaluate_conflicts(
            start,
            duration_minutes,
            is_home_visit,
            candidates,
            self.policy.travel_buffer_minutes,
        )

        if result.has_conflict:
            self.logger.debug(
                f"Conflict for tenant {tenant_id} at {start}: {result.kind} "
                f"with {result.conflicting_booking_ids}"
            )
        return result
