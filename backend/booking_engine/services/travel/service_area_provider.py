"""Surcharge lookup against a tenant's circular service areas."""

from decimal import Decimal
import logging
import math
from typing import Optional

from sqlalchemy.orm import Session

from ...repositories.directory_repository import DirectoryRepository
from ...repositories.factory import RepositoryFactory
from .base import Coordinates, TravelSurchargeProvider

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


class ServiceAreaSurchargeProvider(TravelSurchargeProvider):
    """
    Prices a home visit from the nearest active service area containing it.

    surcharge = base_travel_surcharge + distance_km * per_km_surcharge,
    where distance is measured from the area's center. Points outside every
    area, or requests without coordinates, get no surcharge.
    """

    def __init__(self, db: Session, repository: Optional[DirectoryRepository] = None):
        self.repository = repository or RepositoryFactory.create_directory_repository(db)

    def get_surcharge(
        self,
        tenant_id: str,
        address: Optional[str],
        coordinates: Optional[Coordinates],
    ) -> Optional[Decimal]:
        if coordinates is None:
            return None

        matches = []
        for area in self.repository.get_active_service_areas(tenant_id):
            distance = haversine_km(
                area.center_latitude,
                area.center_longitude,
                coordinates.latitude,
                coordinates.longitude,
            )
            if distance <= area.radius_km:
                matches.append((distance, area))

        if not matches:
            logger.debug(f"No service area covers {coordinates} for tenant {tenant_id}")
            return None

        distance, area = min(matches, key=lambda match: match[0])
        surcharge = Decimal(area.base_travel_surcharge or 0)
        if area.per_km_surcharge:
            surcharge += Decimal(str(round(distance, 3))) * Decimal(area.per_km_surcharge)
        return surcharge
