# backend/booking_engine/models/booking.py
"""
Booking model for the scheduling engine.

A booking occupies ``[scheduled_at, scheduled_at + duration_minutes)`` on its
tenant's single shared timeline. Duration is snapshotted from the service at
creation time so later service edits never move existing bookings.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
import logging
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.timezone_utils import ensure_utc
from ..database import Base

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"  # Requested, not yet confirmed by the tenant
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


# Statuses that occupy time on the tenant's timeline
ACTIVE_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    BookingStatus.PENDING.value: frozenset(
        {BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value}
    ),
    BookingStatus.CONFIRMED.value: frozenset(
        {BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value}
    ),
    BookingStatus.COMPLETED.value: frozenset(),
    BookingStatus.CANCELLED.value: frozenset(),
}


class Booking(Base):
    """Scheduled appointment for one customer and one service."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    booking_number = Column(String(32), nullable=False, unique=True)

    tenant_id = Column(String(26), ForeignKey("tenants.id"), nullable=False)
    customer_id = Column(String(26), ForeignKey("customers.id"), nullable=False)
    service_id = Column(String(26), ForeignKey("services.id"), nullable=False)

    scheduled_at = Column(DateTime(timezone=True), nullable=False)
    duration_minutes = Column(Integer, nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)

    # Home visit details
    is_home_visit = Column(Boolean, nullable=False, default=False)
    home_visit_address = Column(Text, nullable=True)
    home_visit_latitude = Column(Float, nullable=True)
    home_visit_longitude = Column(Float, nullable=True)

    # Pricing snapshot
    total_amount = Column(Numeric(12, 2), nullable=False)
    travel_surcharge_amount = Column(Numeric(12, 2), nullable=False, default=0)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)

    notes = Column(Text, nullable=True)
    reminders_sent = Column(JSON, nullable=False, default=list)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    customer = relationship("Customer")
    service = relationship("Service")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled')",
            name="ck_bookings_status",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'refunded')",
            name="ck_bookings_payment_status",
        ),
        CheckConstraint("duration_minutes > 0", name="check_booking_duration_positive"),
        CheckConstraint("total_amount >= 0", name="check_booking_amount_non_negative"),
        Index("ix_bookings_tenant_scheduled_at", "tenant_id", "scheduled_at"),
        Index("ix_bookings_tenant_status", "tenant_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: tenant={self.tenant_id}, customer={self.customer_id}, "
            f"start={self.scheduled_at}, {self.duration_minutes}min, status={self.status}>"
        )

    @property
    def starts_at(self) -> datetime:
        """Start as aware UTC regardless of what the driver hands back."""
        return ensure_utc(self.scheduled_at)

    @property
    def ends_at(self) -> datetime:
        return self.starts_at + timedelta(minutes=self.duration_minutes)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def can_transition_to(self, new_status: str) -> bool:
        if new_status == self.status:
            return True
        return new_status in ALLOWED_TRANSITIONS.get(self.status, frozenset())

    def confirm(self, at: Optional[datetime] = None) -> None:
        self.status = BookingStatus.CONFIRMED.value
        self.confirmed_at = at or datetime.now(timezone.utc)

    def complete(self, at: Optional[datetime] = None) -> None:
        self.status = BookingStatus.COMPLETED.value
        self.completed_at = at or datetime.now(timezone.utc)

    def cancel(self, reason: Optional[str] = None, at: Optional[datetime] = None) -> None:
        self.status = BookingStatus.CANCELLED.value
        self.cancelled_at = at or datetime.now(timezone.utc)
        self.cancellation_reason = reason
        logger.info(f"Booking {self.id} cancelled")
