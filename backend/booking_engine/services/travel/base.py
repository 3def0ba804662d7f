"""Provider-agnostic location surcharge interfaces."""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class TravelSurchargeProvider(ABC):
    """
    Resolves the location-based surcharge for a home visit.

    Implementations return None when no surcharge applies and may raise on
    lookup failure; the pricing calculator treats failures as a zero
    surcharge.
    """

    @abstractmethod
    def get_surcharge(
        self,
        tenant_id: str,
        address: Optional[str],
        coordinates: Optional[Coordinates],
    ) -> Optional[Decimal]:
        pass


class NullSurchargeProvider(TravelSurchargeProvider):
    """Provider for deployments without location pricing."""

    def get_surcharge(
        self,
        tenant_id: str,
        address: Optional[str],
        coordinates: Optional[Coordinates],
    ) -> Optional[Decimal]:
        return None
