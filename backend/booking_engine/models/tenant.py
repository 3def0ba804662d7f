# backend/booking_engine/models/tenant.py
"""
Tenant configuration consumed by the scheduling engine.

Tenants own a weekly business-hours schedule (stored as JSON keyed by
lowercase day name) and a list of blocked dates on which no bookings are
taken.
"""

from typing import Any

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class Tenant(Base):
    """An independent business account; all scheduling data is partitioned by tenant."""

    __tablename__ = "tenants"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    name = Column(String(255), nullable=False)
    home_visits_enabled = Column(Boolean, nullable=False, default=True)
    # Max active home visits per local day; NULL means unlimited
    home_visit_daily_quota = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    business_hours = relationship(
        "BusinessHours", back_populates="tenant", uselist=False, cascade="all, delete-orphan"
    )
    blocked_dates = relationship(
        "BlockedDate", back_populates="tenant", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Tenant {self.id}: {self.name}>"


class BusinessHours(Base):
    """
    Weekly schedule for a tenant.

    ``schedule`` maps day names to entries shaped like::

        {"is_open": true, "open_time": "09:00", "close_time": "17:00",
         "breaks": [{"start_time": "12:00", "end_time": "13:00"}]}

    Times are wall-clock times in ``timezone``.
    """

    __tablename__ = "business_hours"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(
        String(26), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    schedule = Column(JSON, nullable=False, default=dict)
    timezone = Column(String(64), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    tenant = relationship("Tenant", back_populates="business_hours")

    def day_entry(self, day_name: str) -> dict[str, Any] | None:
        """Case-insensitive lookup of one day's entry."""
        wanted = day_name.lower()
        for key, value in (self.schedule or {}).items():
            if str(key).lower() == wanted:
                return value
        return None

    def __repr__(self) -> str:
        return f"<BusinessHours tenant={self.tenant_id} tz={self.timezone}>"


class BlockedDate(Base):
    """A calendar date on which the tenant does not accept bookings."""

    __tablename__ = "blocked_dates"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(
        String(26), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    blocked_date = Column(Date, nullable=False)
    reason = Column(Text, nullable=True)

    tenant = relationship("Tenant", back_populates="blocked_dates")

    __table_args__ = (
        UniqueConstraint("tenant_id", "blocked_date", name="uq_blocked_dates_tenant_date"),
    )

    def __repr__(self) -> str:
        return f"<BlockedDate tenant={self.tenant_id} date={self.blocked_date}>"
