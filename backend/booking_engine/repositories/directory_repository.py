# backend/booking_engine/repositories/directory_repository.py
"""
Tenant-scoped lookups of the records a booking references.

Every getter takes the tenant id and returns None when the record exists
but belongs to a different tenant.
"""

import logging
from typing import List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.customer import Customer
from ..models.service import Service
from ..models.service_area import ServiceArea
from ..models.tenant import Tenant
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class DirectoryRepository(BaseRepository[Tenant]):
    def __init__(self, db: Session):
        super().__init__(db, Tenant)

    def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        return self.get_by_id(tenant_id)

    def get_service(self, tenant_id: str, service_id: str) -> Optional[Service]:
        try:
            return cast(
                Optional[Service],
                self.db.query(Service)
                .filter(Service.id == service_id, Service.tenant_id == tenant_id)
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting service {service_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve service: {str(e)}")

    def get_customer(self, tenant_id: str, customer_id: str) -> Optional[Customer]:
        try:
            return cast(
                Optional[Customer],
                self.db.query(Customer)
                .filter(Customer.id == customer_id, Customer.tenant_id == tenant_id)
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting customer {customer_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve customer: {str(e)}")

    def get_active_service_areas(self, tenant_id: str) -> List[ServiceArea]:
        try:
            return cast(
                List[ServiceArea],
                self.db.query(ServiceArea)
                .filter(ServiceArea.tenant_id == tenant_id, ServiceArea.is_active.is_(True))
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting service areas for tenant {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve service areas: {str(e)}")
