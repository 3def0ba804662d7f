# backend/booking_engine/routes/bookings.py
"""
Booking routes, scoped by tenant.

Handlers are async and run the synchronous services in a worker thread.
Domain errors are translated to HTTP responses here and nowhere else.
"""

import asyncio
from datetime import date, datetime
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status

from ..api.dependencies import get_booking_service, get_slot_generator
from ..core.exceptions import DomainException
from ..models.booking import BookingStatus
from ..schemas.availability import AvailabilityResponse
from ..schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingUpdate,
)
from ..services.booking_service import BookingService
from ..services.slot_service import SlotGenerator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants/{tenant_id}", tags=["bookings"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get("/bookings", response_model=BookingListResponse)
async def list_bookings(
    tenant_id: str,
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    customer_id: Optional[str] = Query(None),
    service_id: Optional[str] = Query(None),
    start: Optional[datetime] = Query(None, description="Inclusive lower bound on start time"),
    end: Optional[datetime] = Query(None, description="Exclusive upper bound on start time"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    try:
        bookings = await asyncio.to_thread(
            lambda: booking_service.list_bookings(
                tenant_id,
                status=status_filter.value if status_filter else None,
                customer_id=customer_id,
                service_id=service_id,
                start=start,
                end=end,
                limit=limit,
                offset=offset,
            )
        )
        return BookingListResponse(
            bookings=[BookingResponse.from_booking(b) for b in bookings],
            limit=limit,
            offset=offset,
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    tenant_id: str,
    booking_data: BookingCreate = Body(...),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.create_booking, tenant_id, booking_data)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(
    tenant_id: str,
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.get_booking, tenant_id, booking_id)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/bookings/{booking_id}", response_model=BookingResponse)
async def update_booking(
    tenant_id: str,
    booking_id: str,
    update_data: BookingUpdate = Body(...),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.update_booking, tenant_id, booking_id, update_data
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    tenant_id: str,
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service),
) -> Response:
    try:
        await asyncio.to_thread(booking_service.delete_booking, tenant_id, booking_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/bookings/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    tenant_id: str,
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.confirm_booking, tenant_id, booking_id)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/bookings/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    tenant_id: str,
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.complete_booking, tenant_id, booking_id)
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/bookings/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    tenant_id: str,
    booking_id: str,
    cancel_data: Optional[BookingCancel] = Body(None),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        reason = cancel_data.reason if cancel_data else None
        booking = await asyncio.to_thread(
            booking_service.cancel_booking, tenant_id, booking_id, reason
        )
        return BookingResponse.from_booking(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/availability", response_model=AvailabilityResponse)
async def get_availability(
    tenant_id: str,
    service_id: str = Query(...),
    target_date: date = Query(..., alias="date"),
    duration: Optional[int] = Query(None, ge=5, le=1440),
    home_visit: bool = Query(False),
    slot_generator: SlotGenerator = Depends(get_slot_generator),
) -> AvailabilityResponse:
    """Availability calendar for one service on one tenant-local date."""
    try:
        day = await asyncio.to_thread(
            slot_generator.generate_slots, tenant_id, service_id, target_date, duration, home_visit
        )
        return AvailabilityResponse.from_day(day)
    except DomainException as e:
        handle_domain_exception(e)
