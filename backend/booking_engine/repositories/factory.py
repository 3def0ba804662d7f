# backend/booking_engine/repositories/factory.py
"""
Repository Factory

Centralizes creation of repository instances so services receive their
data access objects the same way everywhere.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .business_hours_repository import BusinessHoursRepository
    from .conflict_checker_repository import ConflictCheckerRepository
    from .directory_repository import DirectoryRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_conflict_checker_repository(db: Session) -> "ConflictCheckerRepository":
        """Create repository for conflict checking operations."""
        from .conflict_checker_repository import ConflictCheckerRepository

        return ConflictCheckerRepository(db)

    @staticmethod
    def create_directory_repository(db: Session) -> "DirectoryRepository":
        """Create repository for tenant, service and customer lookups."""
        from .directory_repository import DirectoryRepository

        return DirectoryRepository(db)

    @staticmethod
    def create_business_hours_repository(db: Session) -> "BusinessHoursRepository":
        from .business_hours_repository import BusinessHoursRepository

        return BusinessHoursRepository(db)
