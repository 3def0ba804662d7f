# backend/tests/unit/conftest.py
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Callable, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from booking_engine.core.config import SchedulingPolicy
from booking_engine.core.ulid_helper import generate_booking_number
from booking_engine.database import Base, init_db
from booking_engine.models import Booking, BusinessHours, Customer, Service, Tenant
from booking_engine.services.booking_service import BookingService
from booking_engine.services.business_hours import BusinessHoursResolver, DefaultBusinessHours

# Tuesday 2030-01-01, a week before the Tuesday most tests book on.
FIXED_NOW = datetime(2030, 1, 1, 0, 0, tzinfo=timezone.utc)
BOOKING_DAY = date(2030, 1, 8)


@pytest.fixture(scope="function")
def _unit_engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    init_db(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def unit_db(_unit_engine) -> Session:
    """
    Provide a session on a fresh in-memory database.

    Services commit for real; the database is discarded after each test.
    """
    SessionLocal = sessionmaker(bind=_unit_engine, expire_on_commit=False, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def policy() -> SchedulingPolicy:
    return SchedulingPolicy()


@pytest.fixture
def tenant(unit_db: Session) -> Tenant:
    tenant = Tenant(name="Glow Salon")
    unit_db.add(tenant)
    unit_db.commit()
    return tenant


@pytest.fixture
def service(unit_db: Session, tenant: Tenant) -> Service:
    service = Service(
        tenant_id=tenant.id,
        name="Hair Treatment",
        duration_minutes=60,
        price=Decimal("100000"),
        is_active=True,
        home_visit_available=True,
        home_visit_surcharge=Decimal("20000"),
    )
    unit_db.add(service)
    unit_db.commit()
    return service


@pytest.fixture
def customer(unit_db: Session, tenant: Tenant) -> Customer:
    customer = Customer(tenant_id=tenant.id, name="Sari", phone="081234567890", total_bookings=0)
    unit_db.add(customer)
    unit_db.commit()
    return customer


@pytest.fixture
def make_booking(unit_db: Session, tenant: Tenant, service: Service, customer: Customer):
    """Insert a booking directly, bypassing validation."""

    def _make(
        scheduled_at: datetime,
        *,
        duration_minutes: int = 60,
        status: str = "confirmed",
        is_home_visit: bool = False,
        tenant_id: Optional[str] = None,
    ) -> Booking:
        booking = Booking(
            booking_number=generate_booking_number(scheduled_at),
            tenant_id=tenant_id or tenant.id,
            customer_id=customer.id,
            service_id=service.id,
            scheduled_at=scheduled_at,
            duration_minutes=duration_minutes,
            status=status,
            is_home_visit=is_home_visit,
            home_visit_address="Jl. Melati 5" if is_home_visit else None,
            total_amount=Decimal("100000"),
            reminders_sent=[],
        )
        unit_db.add(booking)
        unit_db.commit()
        return booking

    return _make


@pytest.fixture
def set_schedule(unit_db: Session, tenant: Tenant):
    def _set(schedule: dict, timezone_name: Optional[str] = "UTC") -> BusinessHours:
        hours = BusinessHours(tenant_id=tenant.id, schedule=schedule, timezone=timezone_name)
        unit_db.add(hours)
        unit_db.commit()
        return hours

    return _set


@pytest.fixture
def hours_resolver(unit_db: Session) -> BusinessHoursResolver:
    return BusinessHoursResolver(unit_db, default_hours=DefaultBusinessHours())


@pytest.fixture
def booking_service(
    unit_db: Session, policy: SchedulingPolicy, hours_resolver, fixed_clock
) -> BookingService:
    return BookingService(
        unit_db, policy=policy, hours_resolver=hours_resolver, clock=fixed_clock
    )


@pytest.fixture
def at() -> Callable[..., datetime]:
    """Build aware UTC datetimes on BOOKING_DAY unless another day is given."""

    def _at(hour: int, minute: int = 0, day: date = BOOKING_DAY) -> datetime:
        return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)

    return _at
