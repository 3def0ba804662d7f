"""Request and response DTOs for bookings."""

from datetime import datetime
from typing import List, Optional

from pydantic import ConfigDict, Field, field_validator

from ..core.timezone_utils import ensure_utc
from ..models.booking import BookingStatus, PaymentStatus
from ..services.travel.base import Coordinates
from ._strict_base import StrictRequestModel
from .base import Money, StandardizedModel


class BookingCreate(StrictRequestModel):
    """
    Request to schedule a booking.

    Duration and price are not accepted from callers; both are derived from
    the service.
    """

    customer_id: str = Field(..., min_length=1, description="Customer being booked")
    service_id: str = Field(..., min_length=1, description="Service being booked")
    scheduled_at: datetime = Field(..., description="Start time; naive values are UTC")
    is_home_visit: bool = False
    home_visit_address: Optional[str] = Field(None, max_length=500)
    home_visit_coordinates: Optional[Coordinates] = None
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("scheduled_at")
    @classmethod
    def _normalize_scheduled_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("home_visit_address", "notes")
    @classmethod
    def clean_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class BookingUpdate(StrictRequestModel):
    """
    Partial update of a booking.

    Only fields present in the request are applied.
    """

    scheduled_at: Optional[datetime] = None
    status: Optional[BookingStatus] = None
    is_home_visit: Optional[bool] = None
    home_visit_address: Optional[str] = Field(None, max_length=500)
    home_visit_coordinates: Optional[Coordinates] = None
    notes: Optional[str] = Field(None, max_length=2000)
    payment_status: Optional[PaymentStatus] = None

    @field_validator("scheduled_at")
    @classmethod
    def _normalize_scheduled_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else v

    @field_validator("home_visit_address", "notes")
    @classmethod
    def clean_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class BookingCancel(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=500, description="Cancellation reason")


class BookingResponse(StandardizedModel):
    id: str
    booking_number: str
    tenant_id: str
    customer_id: str
    service_id: str
    scheduled_at: datetime
    scheduled_end: datetime
    duration_minutes: int
    status: BookingStatus
    is_home_visit: bool
    home_visit_address: Optional[str] = None
    home_visit_latitude: Optional[float] = None
    home_visit_longitude: Optional[float] = None
    total_amount: Money
    travel_surcharge_amount: Money
    payment_status: PaymentStatus
    notes: Optional[str] = None
    reminders_sent: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, use_enum_values=True, populate_by_name=True)

    @classmethod
    def from_booking(cls, booking) -> "BookingResponse":
        return cls.model_validate(
            {
                "id": booking.id,
                "booking_number": booking.booking_number,
                "tenant_id": booking.tenant_id,
                "customer_id": booking.customer_id,
                "service_id": booking.service_id,
                "scheduled_at": booking.starts_at,
                "scheduled_end": booking.ends_at,
                "duration_minutes": booking.duration_minutes,
                "status": booking.status,
                "is_home_visit": booking.is_home_visit,
                "home_visit_address": booking.home_visit_address,
                "home_visit_latitude": booking.home_visit_latitude,
                "home_visit_longitude": booking.home_visit_longitude,
                "total_amount": booking.total_amount,
                "travel_surcharge_amount": booking.travel_surcharge_amount or 0,
                "payment_status": booking.payment_status,
                "notes": booking.notes,
                "reminders_sent": list(booking.reminders_sent or []),
                "created_at": booking.created_at,
                "updated_at": booking.updated_at,
                "confirmed_at": booking.confirmed_at,
                "completed_at": booking.completed_at,
                "cancelled_at": booking.cancelled_at,
                "cancellation_reason": booking.cancellation_reason,
            }
        )


class BookingListResponse(StandardizedModel):
    """Response for booking list endpoints."""

    bookings: List[BookingResponse]
    limit: int
    offset: int
