# backend/booking_engine/services/booking_service.py
"""
Booking Service

Owns every write to booking state. Creation and rescheduling run the
validation pipeline in order:

    time validator -> directory lookups -> business hours
    -> (tenant lock) conflict check -> persist

The conflict check and the write share one transaction holding the
tenant's scheduling lock, so two concurrent requests for overlapping
intervals cannot both succeed.
"""

from datetime import datetime, timedelta
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from ..core.config import SchedulingPolicy
from ..core.exceptions import (
    BookingConflictException,
    BusinessRuleException,
    InvalidStatusTransitionException,
    NotFoundException,
    RepositoryException,
    ValidationException,
)
from ..core.timezone_utils import Clock, ensure_utc, local_to_utc, to_local, utc_now
from ..core.ulid_helper import generate_booking_number
from ..models.booking import Booking, BookingStatus, PaymentStatus
from ..models.customer import Customer
from ..models.service import Service
from ..models.tenant import Tenant
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from ..repositories.directory_repository import DirectoryRepository
from ..schemas.booking import BookingCreate, BookingUpdate
from .base import BaseService
from .business_hours import BusinessHoursResolver
from .conflict_checker import BookingConflict, ConflictChecker
from .pricing_service import PriceBreakdown, PricingCalculator
from .time_validator import TimeValidator
from .travel.base import Coordinates

logger = logging.getLogger(__name__)

GENERIC_CONFLICT_MESSAGE = "This time slot conflicts with an existing booking"
HOME_VISITS_DISABLED_MESSAGE = "Home visit bookings are not enabled"
HOME_VISIT_UNSUPPORTED_MESSAGE = "This service does not support home visit bookings"
HOME_VISIT_ADDRESS_REQUIRED_MESSAGE = "Home visit address is required for home visit bookings"


class BookingService(BaseService):
    """
    Booking lifecycle manager.

    State machine: pending -> confirmed -> completed, and pending/confirmed
    -> cancelled. Completed and cancelled bookings are terminal.
    """

    @staticmethod
    def _is_deadlock_error(exc: OperationalError) -> bool:
        orig = getattr(exc, "orig", None)
        pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
        if pgcode in ("40P01", "40001"):
            return True
        message = str(exc).lower()
        return "deadlock detected" in message or "could not serialize" in message

    def __init__(
        self,
        db: Session,
        policy: Optional[SchedulingPolicy] = None,
        pricing: Optional[PricingCalculator] = None,
        hours_resolver: Optional[BusinessHoursResolver] = None,
        conflict_checker: Optional[ConflictChecker] = None,
        repository: Optional[BookingRepository] = None,
        directory: Optional[DirectoryRepository] = None,
        clock: Clock = utc_now,
    ):
        super().__init__(db)
        self.policy = policy or SchedulingPolicy.from_settings()
        self.clock = clock
        self.time_validator = TimeValidator(self.policy, clock=clock)
        self.pricing = pricing or PricingCalculator()
        self.hours_resolver = hours_resolver or BusinessHoursResolver(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db, policy=self.policy)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)
        self.directory = directory or RepositoryFactory.create_directory_repository(db)

    # Reads

    @BaseService.measure_operation("get_booking")
    def get_booking(self, tenant_id: str, booking_id: str) -> Booking:
        booking = self.repository.get_for_tenant(tenant_id, booking_id)
        if booking is None:
            raise NotFoundException(
                "Booking not found", code="BOOKING_NOT_FOUND", details={"booking_id": booking_id}
            )
        return booking

    @BaseService.measure_operation("list_bookings")
    def list_bookings(
        self,
        tenant_id: str,
        *,
        status: Optional[str] = None,
        customer_id: Optional[str] = None,
        service_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Booking]:
        if limit <= 0 or offset < 0:
            raise ValidationException("limit must be positive and offset non-negative")
        return self.repository.list_for_tenant(
            tenant_id,
            status=status,
            customer_id=customer_id,
            service_id=service_id,
            start=start,
            end=end,
            limit=limit,
            offset=offset,
        )

    # Writes

    @BaseService.measure_operation("create_booking")
    def create_booking(self, tenant_id: str, booking_data: BookingCreate) -> Booking:
        """
        Create a pending booking.

        Raises:
            ValidationException: Bad time, hours, inactive service or home-visit input
            NotFoundException: Tenant, service or customer missing for this tenant
            BusinessRuleException: Daily home-visit quota reached
            BookingConflictException: Overlap or insufficient travel time
        """
        scheduled_at = ensure_utc(booking_data.scheduled_at)
        self.log_operation(
            "create_booking",
            tenant_id=tenant_id,
            service_id=booking_data.service_id,
            customer_id=booking_data.customer_id,
            scheduled_at=scheduled_at.isoformat(),
            is_home_visit=booking_data.is_home_visit,
        )

        # 1. Cheapest filter first
        self._validate_time(scheduled_at)

        # 2. Referenced records must exist for this tenant
        tenant = self._require_tenant(tenant_id)
        service = self._require_service(tenant_id, booking_data.service_id)
        customer = self._require_customer(tenant_id, booking_data.customer_id)

        if booking_data.is_home_visit:
            self._validate_home_visit(tenant, service, booking_data.home_visit_address)

        # 3. Business hours for the whole interval
        self._validate_business_hours(tenant_id, scheduled_at, service.duration_minutes)

        # 4. Price outside the lock; the surcharge lookup may be slow
        price = self._price(
            tenant_id,
            service,
            booking_data.is_home_visit,
            booking_data.home_visit_address,
            booking_data.home_visit_coordinates,
        )

        # 5. Check and write atomically per tenant
        with self.transaction():
            try:
                self.repository.acquire_tenant_lock(tenant_id)
                if booking_data.is_home_visit:
                    self._check_home_visit_quota(tenant, scheduled_at)
                self._ensure_no_conflict(
                    tenant_id, scheduled_at, service.duration_minutes, booking_data.is_home_visit
                )
                booking = self._create_booking_record(
                    tenant_id, booking_data, scheduled_at, service, price
                )
                self.repository.adjust_customer_booking_count(
                    customer.id, 1, last_booking_at=self.clock()
                )
            except (IntegrityError, OperationalError, RepositoryException) as exc:
                self._raise_if_concurrent_conflict(exc)
                raise

        self.logger.info(
            f"Created booking {booking.id} ({booking.booking_number}) for tenant {tenant_id}"
        )
        return booking

    @BaseService.measure_operation("update_booking")
    def update_booking(
        self, tenant_id: str, booking_id: str, update_data: BookingUpdate
    ) -> Booking:
        """
        Apply a partial update.

        Only the fields present in ``update_data`` are validated and written.
        Every check runs before any field is touched, so a rejected update
        leaves the booking exactly as it was.
        """
        booking = self.get_booking(tenant_id, booking_id)
        changes = update_data.model_dump(exclude_unset=True)
        for non_nullable in ("scheduled_at", "status", "is_home_visit", "payment_status"):
            if changes.get(non_nullable) is None:
                changes.pop(non_nullable, None)
        if not changes:
            return booking

        self.log_operation(
            "update_booking",
            tenant_id=tenant_id,
            booking_id=booking_id,
            fields=sorted(changes),
        )

        current_start = booking.starts_at
        new_start = current_start
        if "scheduled_at" in changes:
            new_start = ensure_utc(changes["scheduled_at"])
        time_changed = new_start != current_start
        new_home_visit = changes.get("is_home_visit", booking.is_home_visit)
        home_visit_changed = new_home_visit != booking.is_home_visit
        new_address = changes.get("home_visit_address", booking.home_visit_address)
        new_coordinates = self._coordinates_for_update(booking, changes)

        new_status = None
        if "status" in changes:
            new_status = BookingStatus(changes["status"]).value
            if new_status == booking.status:
                new_status = None
            elif not booking.can_transition_to(new_status):
                raise InvalidStatusTransitionException(booking.status, new_status)

        remains_active = (new_status or booking.status) in (
            BookingStatus.PENDING.value,
            BookingStatus.CONFIRMED.value,
        )
        if time_changed and not remains_active:
            raise BusinessRuleException(
                "Only pending or confirmed bookings can be rescheduled",
                code="BOOKING_NOT_ACTIVE",
                details={"status": new_status or booking.status},
            )

        if time_changed:
            self._validate_time(new_start)
            self._validate_business_hours(tenant_id, new_start, booking.duration_minutes)

        # Deactivating a service does not freeze bookings already made against it
        price: Optional[PriceBreakdown] = None
        if home_visit_changed:
            service = self._get_service(tenant_id, booking.service_id)
            if new_home_visit:
                self._validate_home_visit(self._require_tenant(tenant_id), service, new_address)
            price = self._price(tenant_id, service, new_home_visit, new_address, new_coordinates)
        elif new_home_visit and "home_visit_address" in changes:
            self._validate_home_visit_address(new_address)

        needs_conflict_check = remains_active and (time_changed or home_visit_changed)
        quota_tenant: Optional[Tenant] = None
        if needs_conflict_check and new_home_visit:
            if home_visit_changed or self._day_changed(tenant_id, current_start, new_start):
                quota_tenant = self._require_tenant(tenant_id)

        with self.transaction():
            try:
                if needs_conflict_check:
                    self.repository.acquire_tenant_lock(tenant_id)
                    if quota_tenant is not None:
                        self._check_home_visit_quota(
                            quota_tenant, new_start, exclude_booking_id=booking.id
                        )
                    self._ensure_no_conflict(
                        tenant_id,
                        new_start,
                        booking.duration_minutes,
                        new_home_visit,
                        exclude_booking_id=booking.id,
                    )

                if time_changed:
                    booking.scheduled_at = new_start
                if home_visit_changed:
                    booking.is_home_visit = new_home_visit
                if "home_visit_address" in changes:
                    booking.home_visit_address = changes["home_visit_address"]
                if "home_visit_coordinates" in changes:
                    booking.home_visit_latitude = (
                        new_coordinates.latitude if new_coordinates else None
                    )
                    booking.home_visit_longitude = (
                        new_coordinates.longitude if new_coordinates else None
                    )
                if price is not None:
                    booking.total_amount = price.total
                    booking.travel_surcharge_amount = price.location_surcharge
                if "notes" in changes:
                    booking.notes = changes["notes"]
                if "payment_status" in changes:
                    booking.payment_status = PaymentStatus(changes["payment_status"]).value
                if new_status is not None:
                    self._apply_status(booking, new_status)

                self.repository.flush()
            except (IntegrityError, OperationalError, RepositoryException) as exc:
                self._raise_if_concurrent_conflict(exc)
                raise

        return booking

    @BaseService.measure_operation("change_booking_status")
    def change_status(
        self, tenant_id: str, booking_id: str, new_status: str, reason: Optional[str] = None
    ) -> Booking:
        """Move a booking along the state machine (confirm, complete or cancel)."""
        booking = self.get_booking(tenant_id, booking_id)
        new_status = BookingStatus(new_status).value
        if new_status == booking.status:
            return booking
        if not booking.can_transition_to(new_status):
            raise InvalidStatusTransitionException(booking.status, new_status)

        with self.transaction():
            self._apply_status(booking, new_status, reason=reason)
            self.repository.flush()

        self.logger.info(f"Booking {booking.id} moved to {new_status}")
        return booking

    def confirm_booking(self, tenant_id: str, booking_id: str) -> Booking:
        return self.change_status(tenant_id, booking_id, BookingStatus.CONFIRMED.value)

    def complete_booking(self, tenant_id: str, booking_id: str) -> Booking:
        return self.change_status(tenant_id, booking_id, BookingStatus.COMPLETED.value)

    def cancel_booking(
        self, tenant_id: str, booking_id: str, reason: Optional[str] = None
    ) -> Booking:
        return self.change_status(tenant_id, booking_id, BookingStatus.CANCELLED.value, reason)

    @BaseService.measure_operation("delete_booking")
    def delete_booking(self, tenant_id: str, booking_id: str) -> None:
        """Hard-delete a booking and decrement its customer's counter (never below 0)."""
        booking = self.get_booking(tenant_id, booking_id)
        customer_id = booking.customer_id

        with self.transaction():
            self.repository.delete(booking.id)
            self.repository.adjust_customer_booking_count(customer_id, -1)

        self.logger.info(f"Deleted booking {booking_id} for tenant {tenant_id}")

    # Validation helpers

    def _validate_time(self, scheduled_at: datetime) -> None:
        result = self.time_validator.validate(scheduled_at)
        if not result.valid:
            raise ValidationException(
                result.message or "Invalid booking time",
                code="INVALID_BOOKING_TIME",
                details={"scheduled_at": scheduled_at.isoformat()},
            )

    def _validate_business_hours(
        self, tenant_id: str, scheduled_at: datetime, duration_minutes: int
    ) -> None:
        result = self.hours_resolver.validate_booking_window(
            tenant_id, scheduled_at, duration_minutes
        )
        if not result.valid:
            raise ValidationException(
                result.message or "Outside business hours",
                code="OUTSIDE_BUSINESS_HOURS",
                details={"scheduled_at": scheduled_at.isoformat()},
            )

    def _validate_home_visit(
        self, tenant: Tenant, service: Service, address: Optional[str]
    ) -> None:
        if not tenant.home_visits_enabled:
            raise ValidationException(
                HOME_VISITS_DISABLED_MESSAGE,
                code="HOME_VISITS_DISABLED",
                details={"tenant_id": tenant.id},
            )
        if not service.home_visit_available:
            raise ValidationException(
                HOME_VISIT_UNSUPPORTED_MESSAGE,
                code="HOME_VISIT_NOT_SUPPORTED",
                details={"service_id": service.id},
            )
        self._validate_home_visit_address(address)

    def _validate_home_visit_address(self, address: Optional[str]) -> None:
        if not address or not address.strip():
            raise ValidationException(
                HOME_VISIT_ADDRESS_REQUIRED_MESSAGE, code="HOME_VISIT_ADDRESS_REQUIRED"
            )

    def _require_tenant(self, tenant_id: str) -> Tenant:
        tenant = self.directory.get_tenant(tenant_id)
        if tenant is None:
            raise NotFoundException(
                "Tenant not found", code="TENANT_NOT_FOUND", details={"tenant_id": tenant_id}
            )
        return tenant

    def _get_service(self, tenant_id: str, service_id: str) -> Service:
        service = self.directory.get_service(tenant_id, service_id)
        if service is None:
            raise NotFoundException(
                "Service not found", code="SERVICE_NOT_FOUND", details={"service_id": service_id}
            )
        return service

    def _require_service(self, tenant_id: str, service_id: str) -> Service:
        """Like ``_get_service`` but new bookings also need an active service."""
        service = self._get_service(tenant_id, service_id)
        if not service.is_active:
            raise ValidationException(
                "Service is not active", code="SERVICE_INACTIVE", details={"service_id": service_id}
            )
        return service

    def _require_customer(self, tenant_id: str, customer_id: str) -> Customer:
        customer = self.directory.get_customer(tenant_id, customer_id)
        if customer is None:
            raise NotFoundException(
                "Customer not found",
                code="CUSTOMER_NOT_FOUND",
                details={"customer_id": customer_id},
            )
        return customer

    def _check_home_visit_quota(
        self, tenant: Tenant, scheduled_at: datetime, exclude_booking_id: Optional[str] = None
    ) -> None:
        quota = tenant.home_visit_daily_quota
        if quota is None:
            return

        tz_name = self.hours_resolver.get_timezone(tenant.id)
        local_day = to_local(scheduled_at, tz_name).date()
        day_start = local_to_utc(local_day, datetime.min.time(), tz_name)
        day_end = local_to_utc(local_day + timedelta(days=1), datetime.min.time(), tz_name)
        booked = self.repository.count_active_home_visits_between(
            tenant.id, day_start, day_end, exclude_booking_id=exclude_booking_id
        )
        if booked >= quota:
            raise BusinessRuleException(
                f"Home visit slots are fully booked for this date (max {quota} per day)",
                code="HOME_VISIT_QUOTA_EXCEEDED",
                details={"date": local_day.isoformat(), "quota": quota},
            )

    def _day_changed(self, tenant_id: str, old_start: datetime, new_start: datetime) -> bool:
        tz_name = self.hours_resolver.get_timezone(tenant_id)
        return to_local(old_start, tz_name).date() != to_local(new_start, tz_name).date()

    def _ensure_no_conflict(
        self,
        tenant_id: str,
        scheduled_at: datetime,
        duration_minutes: int,
        is_home_visit: bool,
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        conflict: BookingConflict = self.conflict_checker.check_booking_conflicts(
            tenant_id,
            scheduled_at,
            duration_minutes,
            is_home_visit,
            exclude_booking_id=exclude_booking_id,
        )
        if conflict.has_conflict:
            prometheus_metrics.inc_booking_conflict(conflict.kind or "unknown")
            raise BookingConflictException(
                message=conflict.reason,
                reason=conflict.kind,
                conflicting_booking_ids=conflict.conflicting_booking_ids,
            )

    def _raise_if_concurrent_conflict(self, exc: Exception) -> None:
        """Translate races that slipped past the lock into a booking conflict."""
        cause = exc.__cause__ if isinstance(exc, RepositoryException) else exc
        if isinstance(cause, IntegrityError) or (
            isinstance(cause, OperationalError) and self._is_deadlock_error(cause)
        ):
            self.logger.warning(f"Concurrent booking write rejected: {cause}")
            raise BookingConflictException(message=GENERIC_CONFLICT_MESSAGE) from exc

    # Pricing and persistence helpers

    def _price(
        self,
        tenant_id: str,
        service: Service,
        is_home_visit: bool,
        address: Optional[str],
        coordinates: Optional[Coordinates],
    ) -> PriceBreakdown:
        price = self.pricing.price_booking(tenant_id, service, is_home_visit, address, coordinates)
        if price.surcharge_degraded:
            prometheus_metrics.inc_surcharge_degraded()
            self.logger.warning(
                "Location surcharge lookup failed; pricing without it",
                extra={"tenant_id": tenant_id, "service_id": service.id},
            )
        return price

    def _coordinates_for_update(
        self, booking: Booking, changes: Dict[str, Any]
    ) -> Optional[Coordinates]:
        if "home_visit_coordinates" in changes:
            raw = changes["home_visit_coordinates"]
            return Coordinates(**raw) if raw is not None else None
        if booking.home_visit_latitude is None or booking.home_visit_longitude is None:
            return None
        return Coordinates(
            latitude=booking.home_visit_latitude, longitude=booking.home_visit_longitude
        )

    def _create_booking_record(
        self,
        tenant_id: str,
        booking_data: BookingCreate,
        scheduled_at: datetime,
        service: Service,
        price: PriceBreakdown,
    ) -> Booking:
        coordinates = None
        address = None
        if booking_data.is_home_visit:
            coordinates = booking_data.home_visit_coordinates
            address = booking_data.home_visit_address
        return self.repository.create(
            booking_number=generate_booking_number(self.clock()),
            tenant_id=tenant_id,
            customer_id=booking_data.customer_id,
            service_id=service.id,
            scheduled_at=scheduled_at,
            duration_minutes=service.duration_minutes,
            status=BookingStatus.PENDING.value,
            is_home_visit=booking_data.is_home_visit,
            home_visit_address=address,
            home_visit_latitude=coordinates.latitude if coordinates else None,
            home_visit_longitude=coordinates.longitude if coordinates else None,
            total_amount=price.total,
            travel_surcharge_amount=price.location_surcharge,
            payment_status=PaymentStatus.PENDING.value,
            notes=booking_data.notes,
            reminders_sent=[],
        )

    def _apply_status(
        self, booking: Booking, new_status: str, reason: Optional[str] = None
    ) -> None:
        now = self.clock()
        if new_status == BookingStatus.CONFIRMED.value:
            booking.confirm(at=now)
        elif new_status == BookingStatus.COMPLETED.value:
            booking.complete(at=now)
        elif new_status == BookingStatus.CANCELLED.value:
            booking.cancel(reason=reason, at=now)
        else:
            raise InvalidStatusTransitionException(booking.status, new_status)
