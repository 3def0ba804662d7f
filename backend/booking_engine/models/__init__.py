# backend/booking_engine/models/__init__.py
"""
SQLAlchemy models for the booking engine.

Importing this package registers every table on ``Base.metadata``.
"""

from .booking import ACTIVE_STATUSES, Booking, BookingStatus, PaymentStatus
from .customer import Customer
from .service import Service
from .service_area import ServiceArea
from .tenant import BlockedDate, BusinessHours, Tenant

__all__ = [
    "ACTIVE_STATUSES",
    "BlockedDate",
    "Booking",
    "BookingStatus",
    "BusinessHours",
    "Customer",
    "PaymentStatus",
    "Service",
    "ServiceArea",
    "Tenant",
]
