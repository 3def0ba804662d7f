# backend/booking_engine/repositories/conflict_checker_repository.py
"""
ConflictChecker Repository

Bounded reads of a tenant's timeline used by conflict detection and slot
generation. Both queries filter on the booking start time only, so callers
widen the window by the longest duration they care about.
"""

from datetime import datetime, timedelta
import logging
from typing import List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..core.timezone_utils import ensure_utc
from ..models.booking import ACTIVE_STATUSES, Booking, BookingStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ConflictCheckerRepository(BaseRepository[Booking]):
    """Repository for conflict checking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def get_active_bookings_near(
        self,
        tenant_id: str,
        around: datetime,
        window: timedelta,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """
        Get active (pending/confirmed) bookings starting within ``around ± window``.

        Args:
            tenant_id: Tenant whose timeline is scanned
            around: Proposed start time
            window: Half-width of the scan
            exclude_booking_id: Booking to leave out (update-in-place checks)

        Returns:
            Bookings ordered by start time
        """
        around = ensure_utc(around)
        try:
            query = self.db.query(Booking).filter(
                Booking.tenant_id == tenant_id,
                Booking.status.in_(ACTIVE_STATUSES),
                Booking.scheduled_at >= around - window,
                Booking.scheduled_at <= around + window,
            )
            if exclude_booking_id:
                query = query.filter(Booking.id != exclude_booking_id)

            return cast(List[Booking], query.order_by(Booking.scheduled_at).all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for conflict check: {str(e)}")
            raise RepositoryException(f"Failed to get conflict bookings: {str(e)}")

    def get_confirmed_bookings_between(
        self, tenant_id: str, start: datetime, end: datetime
    ) -> List[Booking]:
        """Get confirmed bookings starting in ``[start, end)``, ordered by start time."""
        try:
            return cast(
                List[Booking],
                self.db.query(Booking)
                .filter(
                    Booking.tenant_id == tenant_id,
                    Booking.status == BookingStatus.CONFIRMED.value,
                    Booking.scheduled_at >= ensure_utc(start),
                    Booking.scheduled_at < ensure_utc(end),
                )
                .order_by(Booking.scheduled_at)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting confirmed bookings: {str(e)}")
            raise RepositoryException(f"Failed to get bookings: {str(e)}")
