# backend/booking_engine/models/service_area.py
"""Circular home-visit coverage zones with travel surcharge pricing."""

from sqlalchemy import Boolean, CheckConstraint, Column, Float, ForeignKey, Numeric, String
import ulid

from ..database import Base


class ServiceArea(Base):
    __tablename__ = "service_areas"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(
        String(26), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(255), nullable=False)
    center_latitude = Column(Float, nullable=False)
    center_longitude = Column(Float, nullable=False)
    radius_km = Column(Float, nullable=False)
    base_travel_surcharge = Column(Numeric(12, 2), nullable=False, default=0)
    per_km_surcharge = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("radius_km > 0", name="check_service_area_radius_positive"),
    )

    def __repr__(self) -> str:
        return f"<ServiceArea {self.id}: {self.name} r={self.radius_km}km>"
