# backend/tests/unit/services/test_business_hours_resolver.py
from datetime import date, datetime, time, timezone
import logging

from booking_engine.models import BlockedDate
from booking_engine.services.business_hours import (
    BLOCKED_DAY_MESSAGE,
    BREAK_MESSAGE,
    CLOSED_DAY_MESSAGE,
    BusinessHoursResolver,
    DefaultBusinessHours,
)

TUESDAY = date(2030, 1, 8)
MONDAY = date(2030, 1, 7)


def _open(open_time: str = "09:00", close_time: str = "17:00", **extra) -> dict:
    return {"is_open": True, "open_time": open_time, "close_time": close_time, **extra}


class TestResolve:
    def test_tenant_without_schedule_gets_default_hours(self, hours_resolver, tenant) -> None:
        hours = hours_resolver.resolve(tenant.id, TUESDAY)

        assert hours.is_open
        assert hours.open_time == time(9, 0)
        assert hours.close_time == time(17, 0)
        assert hours.to_dict() == {"is_open": True, "open_time": "09:00", "close_time": "17:00"}

    def test_custom_default_hours_are_injected(self, unit_db, tenant) -> None:
        resolver = BusinessHoursResolver(
            unit_db,
            default_hours=DefaultBusinessHours(open_time=time(8, 0), close_time=time(20, 0)),
        )

        hours = resolver.resolve(tenant.id, TUESDAY)

        assert (hours.open_time, hours.close_time) == (time(8, 0), time(20, 0))

    def test_closed_day(self, hours_resolver, tenant, set_schedule) -> None:
        set_schedule({"monday": {"is_open": False}, "tuesday": _open()})

        hours = hours_resolver.resolve(tenant.id, MONDAY)

        assert not hours.is_open
        assert hours.to_dict() == {"is_open": False}

    def test_missing_day_entry_falls_back_to_default(
        self, hours_resolver, tenant, set_schedule
    ) -> None:
        set_schedule({"monday": {"is_open": False}})

        hours = hours_resolver.resolve(tenant.id, TUESDAY)

        assert hours.is_open
        assert hours.open_time == time(9, 0)

    def test_day_keys_are_case_insensitive(self, hours_resolver, tenant, set_schedule) -> None:
        set_schedule({"Tuesday": _open("10:00", "18:00")})

        hours = hours_resolver.resolve(tenant.id, TUESDAY)

        assert (hours.open_time, hours.close_time) == (time(10, 0), time(18, 0))

    def test_close_before_open_resolves_closed(self, hours_resolver, tenant, set_schedule) -> None:
        set_schedule({"tuesday": _open("17:00", "09:00")})

        assert not hours_resolver.resolve(tenant.id, TUESDAY).is_open

    def test_malformed_times_use_defaults(self, hours_resolver, tenant, set_schedule) -> None:
        set_schedule({"tuesday": _open("nine", "five")})

        hours = hours_resolver.resolve(tenant.id, TUESDAY)

        assert hours.is_open
        assert (hours.open_time, hours.close_time) == (time(9, 0), time(17, 0))

    def test_blocked_date_is_closed(self, unit_db, hours_resolver, tenant) -> None:
        unit_db.add(BlockedDate(tenant_id=tenant.id, blocked_date=TUESDAY, reason="Holiday"))
        unit_db.commit()

        hours = hours_resolver.resolve(tenant.id, TUESDAY)

        assert not hours.is_open
        assert hours.is_blocked
        assert hours_resolver.resolve(tenant.id, date(2030, 1, 9)).is_open

    def test_breaks_are_sorted_and_malformed_ones_dropped(
        self, hours_resolver, tenant, set_schedule
    ) -> None:
        set_schedule(
            {
                "tuesday": _open(
                    breaks=[
                        {"start_time": "15:00", "end_time": "15:30"},
                        {"start_time": "12:00"},
                        {"start_time": "12:00", "end_time": "13:00"},
                    ]
                )
            }
        )

        hours = hours_resolver.resolve(tenant.id, TUESDAY)

        assert [(b.start, b.end) for b in hours.breaks] == [
            (time(12, 0), time(13, 0)),
            (time(15, 0), time(15, 30)),
        ]

    def test_window_is_projected_from_tenant_timezone(
        self, hours_resolver, tenant, set_schedule
    ) -> None:
        set_schedule({"tuesday": _open()}, timezone_name="Asia/Jakarta")

        open_at, close_at = hours_resolver.resolve(tenant.id, TUESDAY).window_utc()

        assert open_at == datetime(2030, 1, 8, 2, 0, tzinfo=timezone.utc)
        assert close_at == datetime(2030, 1, 8, 10, 0, tzinfo=timezone.utc)

    def test_unknown_timezone_falls_back_to_default(
        self, hours_resolver, tenant, set_schedule, caplog
    ) -> None:
        set_schedule({"tuesday": _open("10:00", "14:00")}, timezone_name="Mars/Olympus")

        with caplog.at_level(logging.WARNING):
            hours = hours_resolver.resolve(tenant.id, TUESDAY)

        assert hours.timezone == "UTC"
        assert (hours.open_time, hours.close_time) == (time(10, 0), time(14, 0))
        assert hours_resolver.get_timezone(tenant.id) == "UTC"
        assert any("Unknown tenant timezone" in r.getMessage() for r in caplog.records)


class TestValidateBookingWindow:
    def test_inside_hours(self, hours_resolver, tenant, at) -> None:
        assert hours_resolver.validate_booking_window(tenant.id, at(10), 60).valid

    def test_booking_may_end_exactly_at_close(self, hours_resolver, tenant, at) -> None:
        assert hours_resolver.validate_booking_window(tenant.id, at(16), 60).valid

    def test_booking_running_past_close_is_rejected(self, hours_resolver, tenant, at) -> None:
        result = hours_resolver.validate_booking_window(tenant.id, at(16, 30), 60)

        assert not result.valid
        assert result.message == "Business hours are 09:00 - 17:00"

    def test_booking_before_open_is_rejected(self, hours_resolver, tenant, at) -> None:
        assert not hours_resolver.validate_booking_window(tenant.id, at(8, 30), 60).valid

    def test_closed_day_message(self, hours_resolver, tenant, set_schedule, at) -> None:
        set_schedule({"monday": {"is_open": False}})

        result = hours_resolver.validate_booking_window(tenant.id, at(10, day=MONDAY), 60)

        assert not result.valid
        assert result.message == CLOSED_DAY_MESSAGE

    def test_blocked_date_message(self, unit_db, hours_resolver, tenant, at) -> None:
        unit_db.add(BlockedDate(tenant_id=tenant.id, blocked_date=TUESDAY))
        unit_db.commit()

        result = hours_resolver.validate_booking_window(tenant.id, at(10), 60)

        assert result.message == BLOCKED_DAY_MESSAGE

    def test_break_overlap_is_rejected(self, hours_resolver, tenant, set_schedule, at) -> None:
        set_schedule({"tuesday": _open(breaks=[{"start_time": "12:00", "end_time": "13:00"}])})

        result = hours_resolver.validate_booking_window(tenant.id, at(11, 30), 60)

        assert not result.valid
        assert result.message == BREAK_MESSAGE
        assert hours_resolver.validate_booking_window(tenant.id, at(13), 60).valid

    def test_local_date_decides_the_day(self, hours_resolver, tenant, set_schedule) -> None:
        # 2030-01-07 20:00 UTC is Tuesday 03:00 in Jakarta
        set_schedule(
            {"monday": _open(), "tuesday": {"is_open": False}}, timezone_name="Asia/Jakarta"
        )
        start = datetime(2030, 1, 7, 20, 0, tzinfo=timezone.utc)

        result = hours_resolver.validate_booking_window(tenant.id, start, 60)

        assert result.message == CLOSED_DAY_MESSAGE
