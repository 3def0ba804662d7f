# backend/booking_engine/repositories/booking_repository.py
"""
Booking Repository

Tenant-scoped reads and writes of booking records, plus the per-tenant
write lock that serialises check-then-write sequences.
"""

from datetime import datetime
import logging
from typing import List, Optional, cast

from sqlalchemy import func, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..core.timezone_utils import ensure_utc
from ..models.booking import ACTIVE_STATUSES, Booking
from ..models.customer import Customer
from ..models.tenant import Tenant
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def acquire_tenant_lock(self, tenant_id: str) -> None:
        """
        Take the tenant's scheduling lock for the rest of the transaction.

        PostgreSQL uses a transaction-scoped advisory lock keyed on the tenant.
        Other backends write to the tenant row instead. SQLite ignores
        ``SELECT ... FOR UPDATE`` and pysqlite only opens the transaction, and
        takes the database write lock, at the first DML statement.
        """
        try:
            if self.dialect_name == "postgresql":
                self.db.execute(
                    text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
                    {"key": f"booking-schedule:{tenant_id}"},
                )
                return
            self.db.execute(
                update(Tenant)
                .where(Tenant.id == tenant_id)
                .values(name=Tenant.name)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error acquiring scheduling lock for tenant {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to acquire scheduling lock: {str(e)}") from e

    def get_for_tenant(self, tenant_id: str, booking_id: str) -> Optional[Booking]:
        try:
            return cast(
                Optional[Booking],
                self.db.query(Booking)
                .filter(Booking.id == booking_id, Booking.tenant_id == tenant_id)
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve booking: {str(e)}")

    def list_for_tenant(
        self,
        tenant_id: str,
        *,
        status: Optional[str] = None,
        customer_id: Optional[str] = None,
        service_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Booking]:
        """
        List a tenant's bookings, newest start first.

        ``start`` is inclusive and ``end`` exclusive, both compared to the
        booking start time.
        """
        try:
            query = self.db.query(Booking).filter(Booking.tenant_id == tenant_id)
            if status:
                query = query.filter(Booking.status == status)
            if customer_id:
                query = query.filter(Booking.customer_id == customer_id)
            if service_id:
                query = query.filter(Booking.service_id == service_id)
            if start is not None:
                query = query.filter(Booking.scheduled_at >= ensure_utc(start))
            if end is not None:
                query = query.filter(Booking.scheduled_at < ensure_utc(end))

            return cast(
                List[Booking],
                query.order_by(Booking.scheduled_at.desc(), Booking.id)
                .offset(offset)
                .limit(limit)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings for tenant {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")

    def count_active_home_visits_between(
        self,
        tenant_id: str,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> int:
        """Count active home visits starting in ``[start, end)``."""
        try:
            query = self.db.query(func.count(Booking.id)).filter(
                Booking.tenant_id == tenant_id,
                Booking.is_home_visit.is_(True),
                Booking.status.in_(ACTIVE_STATUSES),
                Booking.scheduled_at >= ensure_utc(start),
                Booking.scheduled_at < ensure_utc(end),
            )
            if exclude_booking_id:
                query = query.filter(Booking.id != exclude_booking_id)
            return int(query.scalar() or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting home visits: {str(e)}")
            raise RepositoryException(f"Failed to count home visits: {str(e)}")

    def adjust_customer_booking_count(
        self, customer_id: str, delta: int, last_booking_at: Optional[datetime] = None
    ) -> Optional[Customer]:
        """
        Apply ``delta`` to the customer's booking counter, clamped at zero.

        ``last_booking_at`` is only written when given.
        """
        try:
            customer = self.db.query(Customer).filter(Customer.id == customer_id).first()
            if customer is None:
                return None
            customer.total_bookings = max(0, (customer.total_bookings or 0) + delta)
            if last_booking_at is not None:
                customer.last_booking_at = last_booking_at
            self.db.flush()
            return cast(Customer, customer)
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating booking count for customer {customer_id}: {str(e)}")
            raise RepositoryException(f"Failed to update customer booking count: {str(e)}") from e
