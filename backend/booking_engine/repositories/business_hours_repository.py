# backend/booking_engine/repositories/business_hours_repository.py
from datetime import date
import logging
from typing import Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.tenant import BlockedDate, BusinessHours
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BusinessHoursRepository(BaseRepository[BusinessHours]):
    """Read access to weekly schedules and blocked dates."""

    def __init__(self, db: Session):
        super().__init__(db, BusinessHours)

    def get_for_tenant(self, tenant_id: str) -> Optional[BusinessHours]:
        return cast(Optional[BusinessHours], self.find_one_by(tenant_id=tenant_id))

    def get_blocked_date(self, tenant_id: str, target_date: date) -> Optional[BlockedDate]:
        try:
            return cast(
                Optional[BlockedDate],
                self.db.query(BlockedDate)
                .filter(
                    BlockedDate.tenant_id == tenant_id,
                    BlockedDate.blocked_date == target_date,
                )
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking blocked date {target_date}: {str(e)}")
            raise RepositoryException(f"Failed to check blocked dates: {str(e)}")
