# backend/booking_engine/models/service.py
"""Offered unit of work. The scheduling engine only reads services."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.sql import func
import ulid

from ..database import Base


class Service(Base):
    __tablename__ = "services"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(
        String(26), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    home_visit_available = Column(Boolean, nullable=False, default=False)
    home_visit_surcharge = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="check_service_duration_positive"),
        CheckConstraint("price >= 0", name="check_service_price_non_negative"),
        CheckConstraint(
            "home_visit_surcharge IS NULL OR home_visit_surcharge >= 0",
            name="check_service_surcharge_non_negative",
        ),
    )

    def __repr__(self) -> str:
        return f"<Service {self.id}: {self.name} ({self.duration_minutes}min)>"
