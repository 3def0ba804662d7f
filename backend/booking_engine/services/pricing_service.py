"""Centralized pricing calculations for bookings."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Optional

from ..models.service import Service
from .travel.base import Coordinates, NullSurchargeProvider, TravelSurchargeProvider

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _money(value: Optional[Decimal | int | float | str]) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: Decimal
    home_visit_surcharge: Decimal
    location_surcharge: Decimal
    total: Decimal
    # Set when the location lookup failed and zero was used instead
    surcharge_degraded: bool = False


class PricingCalculator:
    """
    Derives a booking's total from its service and home-visit status.

    total = base price
            + flat home-visit surcharge (home visits only)
            + location surcharge (home visits only)
    """

    def __init__(self, surcharge_provider: Optional[TravelSurchargeProvider] = None) -> None:
        self.surcharge_provider = surcharge_provider or NullSurchargeProvider()

    def compute_total(
        self,
        service: Service,
        is_home_visit: bool,
        location_surcharge: Optional[Decimal] = None,
    ) -> Decimal:
        return self.breakdown(service, is_home_visit, location_surcharge).total

    def breakdown(
        self,
        service: Service,
        is_home_visit: bool,
        location_surcharge: Optional[Decimal] = None,
        surcharge_degraded: bool = False,
    ) -> PriceBreakdown:
        base = _money(service.price)
        flat = _money(service.home_visit_surcharge) if is_home_visit else _money(None)
        location = _money(location_surcharge) if is_home_visit else _money(None)
        return PriceBreakdown(
            base_price=base,
            home_visit_surcharge=flat,
            location_surcharge=location,
            total=base + flat + location,
            surcharge_degraded=surcharge_degraded,
        )

    def price_booking(
        self,
        tenant_id: str,
        service: Service,
        is_home_visit: bool,
        address: Optional[str] = None,
        coordinates: Optional[Coordinates] = None,
    ) -> PriceBreakdown:
        """
        Price a booking, resolving the location surcharge for home visits.

        A failing surcharge lookup never fails the booking: the surcharge is
        zero and ``surcharge_degraded`` is set for the caller to report.
        """
        if not is_home_visit:
            return self.breakdown(service, False)

        try:
            surcharge = self.surcharge_provider.get_surcharge(tenant_id, address, coordinates)
        except Exception as exc:
            logger.debug(f"Surcharge lookup raised {type(exc).__name__}: {exc}")
            return self.breakdown(service, True, None, surcharge_degraded=True)

        return self.breakdown(service, True, surcharge)
