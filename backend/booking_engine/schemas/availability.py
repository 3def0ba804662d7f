"""Availability calendar DTOs."""

import datetime as dt
from typing import List, Optional

from .base import StandardizedModel


class BusinessHoursInfo(StandardizedModel):
    is_open: bool
    open_time: Optional[str] = None
    close_time: Optional[str] = None
    is_blocked: bool = False


class TimeSlotResponse(StandardizedModel):
    start: dt.datetime
    end: dt.datetime
    available: bool
    conflicting_booking_id: Optional[str] = None


class AvailabilityResponse(StandardizedModel):
    date: dt.date
    slots: List[TimeSlotResponse]
    business_hours: BusinessHoursInfo

    @classmethod
    def from_day(cls, day) -> "AvailabilityResponse":
        hours = day.business_hours
        return cls(
            date=day.date,
            slots=[
                TimeSlotResponse(
                    start=slot.start,
                    end=slot.end,
                    available=slot.available,
                    conflicting_booking_id=slot.conflicting_booking_id,
                )
                for slot in day.slots
            ],
            business_hours=BusinessHoursInfo(**hours.to_dict(), is_blocked=hours.is_blocked),
        )
