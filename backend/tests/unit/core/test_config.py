# backend/tests/unit/core/test_config.py
from datetime import time

from booking_engine.core.config import SchedulingPolicy, Settings
from booking_engine.services.business_hours import DefaultBusinessHours


def test_policy_defaults_match_platform_constants() -> None:
    policy = SchedulingPolicy()

    assert policy.travel_buffer_minutes == 30
    assert policy.conflict_scan_window_hours == 24
    assert policy.slot_interval_minutes == 30


def test_policy_from_settings() -> None:
    source = Settings(TRAVEL_BUFFER_MINUTES=45, MIN_LEAD_TIME_MINUTES=60)

    policy = SchedulingPolicy.from_settings(source)

    assert policy.travel_buffer_minutes == 45
    assert policy.min_lead_time_minutes == 60


def test_log_level_is_normalized() -> None:
    assert Settings(LOG_LEVEL=" debug ").log_level == "DEBUG"


def test_default_business_hours() -> None:
    hours = DefaultBusinessHours()

    assert (hours.open_time, hours.close_time, hours.timezone) == (time(9, 0), time(17, 0), "UTC")
