# backend/booking_engine/models/customer.py
from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func
import ulid

from ..database import Base


class Customer(Base):
    """
    A tenant's client.

    ``total_bookings`` and ``last_booking_at`` are maintained by the booking
    lifecycle; nothing else in the engine writes to customers.
    """

    __tablename__ = "customers"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(
        String(26), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=True)
    total_bookings = Column(Integer, nullable=False, default=0)
    last_booking_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("total_bookings >= 0", name="check_customer_total_bookings_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Customer {self.id}: {self.name} bookings={self.total_bookings}>"
