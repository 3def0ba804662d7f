# backend/booking_engine/api/dependencies.py
"""
Dependency providers for the HTTP layer.

Services are built per request around the request's session; nothing is
cached between requests.
"""

from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from ..core.config import SchedulingPolicy
from ..database import get_db as original_get_db
from ..services.booking_service import BookingService
from ..services.pricing_service import PricingCalculator
from ..services.slot_service import SlotGenerator
from ..services.travel.base import TravelSurchargeProvider
from ..services.travel.service_area_provider import ServiceAreaSurchargeProvider


def get_db() -> Generator[Session, None, None]:
    """
    Get database session dependency.

    Yields:
        Database session that will be closed after use
    """
    yield from original_get_db()


def get_scheduling_policy() -> SchedulingPolicy:
    return SchedulingPolicy.from_settings()


def get_surcharge_provider(db: Session = Depends(get_db)) -> TravelSurchargeProvider:
    return ServiceAreaSurchargeProvider(db)


def get_booking_service(
    db: Session = Depends(get_db),
    policy: SchedulingPolicy = Depends(get_scheduling_policy),
    surcharge_provider: TravelSurchargeProvider = Depends(get_surcharge_provider),
) -> BookingService:
    return BookingService(db, policy=policy, pricing=PricingCalculator(surcharge_provider))


def get_slot_generator(
    db: Session = Depends(get_db),
    policy: SchedulingPolicy = Depends(get_scheduling_policy),
) -> SlotGenerator:
    return SlotGenerator(db, policy=policy)
