"""Location surcharge collaborators used by the pricing calculator."""

from .base import Coordinates, NullSurchargeProvider, TravelSurchargeProvider
from .service_area_provider import ServiceAreaSurchargeProvider

__all__ = [
    "Coordinates",
    "NullSurchargeProvider",
    "ServiceAreaSurchargeProvider",
    "TravelSurchargeProvider",
]
