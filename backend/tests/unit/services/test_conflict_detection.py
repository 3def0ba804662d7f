# backend/tests/unit/services/test_conflict_detection.py
"""
Conflict detection rules: direct overlap, travel buffer around home visits,
and the bounded scan against the tenant's active bookings.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from booking_engine.core.config import SchedulingPolicy
from booking_engine.services.conflict_checker import (
    INSUFFICIENT_TRAVEL_TIME,
    TIME_CONFLICT,
    TIME_CONFLICT_MESSAGE,
    TRAVEL_TIME_MESSAGE,
    ConflictChecker,
    evaluate_conflicts,
    intervals_overlap,
)

DAY = datetime(2030, 1, 8, tzinfo=timezone.utc)


def _at(hour: int, minute: int = 0) -> datetime:
    return DAY.replace(hour=hour, minute=minute)


def _existing(booking_id: str, hour: int, minute: int = 0, duration: int = 60, home: bool = False):
    start = _at(hour, minute)
    return SimpleNamespace(
        id=booking_id,
        starts_at=start,
        ends_at=start + timedelta(minutes=duration),
        is_home_visit=home,
    )


class TestIntervalOverlap:
    def test_adjacent_intervals_do_not_overlap(self) -> None:
        assert not intervals_overlap(_at(10), _at(11), _at(11), _at(12))

    def test_partial_overlap(self) -> None:
        assert intervals_overlap(_at(10), _at(11), _at(10, 45), _at(11, 45))

    def test_containment(self) -> None:
        assert intervals_overlap(_at(9), _at(12), _at(10), _at(11))


class TestEvaluateConflicts:
    """Pure rule evaluation, no database."""

    def test_overlapping_request_is_a_time_conflict(self) -> None:
        existing = [_existing("a", 10)]

        result = evaluate_conflicts(_at(10, 45), 60, False, existing, 30)

        assert result.has_conflict
        assert result.kind == TIME_CONFLICT
        assert result.reason == TIME_CONFLICT_MESSAGE
        assert result.conflicting_booking_ids == ["a"]

    def test_adjacent_non_home_visits_are_accepted(self) -> None:
        existing = [_existing("a", 10)]

        result = evaluate_conflicts(_at(11), 60, False, existing, 30)

        assert not result.has_conflict
        assert result.conflicting_bookings == []
        assert result.reason is None

    def test_home_visit_gap_below_buffer_is_rejected(self) -> None:
        existing = [_existing("a", 10, home=True)]

        result = evaluate_conflicts(_at(11, 15), 60, True, existing, 30)

        assert result.has_conflict
        assert result.kind == INSUFFICIENT_TRAVEL_TIME
        assert result.reason == TRAVEL_TIME_MESSAGE

    def test_home_visit_gap_equal_to_buffer_is_accepted(self) -> None:
        existing = [_existing("a", 10, home=True)]

        result = evaluate_conflicts(_at(11, 30), 60, True, existing, 30)

        assert not result.has_conflict

    def test_buffer_applies_before_a_home_visit_too(self) -> None:
        # Proposed 08:45-09:45 ends 15 minutes before a 10:00 home visit
        existing = [_existing("a", 10, home=True)]

        result = evaluate_conflicts(_at(8, 45), 60, False, existing, 30)

        assert result.has_conflict
        assert result.kind == INSUFFICIENT_TRAVEL_TIME

    def test_buffer_applies_when_only_the_proposed_booking_is_a_home_visit(self) -> None:
        existing = [_existing("a", 10, home=False)]

        result = evaluate_conflicts(_at(11, 10), 60, True, existing, 30)

        assert result.has_conflict
        assert result.kind == INSUFFICIENT_TRAVEL_TIME

    def test_no_buffer_between_two_salon_bookings(self) -> None:
        existing = [_existing("a", 10)]

        result = evaluate_conflicts(_at(11, 5), 60, False, existing, 30)

        assert not result.has_conflict

    def test_all_conflicts_are_collected_and_overlap_wins_the_reason(self) -> None:
        existing = [
            _existing("travel", 9, home=True),  # ends 10:00, gap 15 minutes
            _existing("overlap", 11),
        ]

        result = evaluate_conflicts(_at(10, 15), 60, True, existing, 30)

        assert result.has_conflict
        assert sorted(result.conflicting_booking_ids) == ["overlap", "travel"]
        assert result.kind == TIME_CONFLICT

    def test_zero_buffer_disables_travel_rule(self) -> None:
        existing = [_existing("a", 10, home=True)]

        result = evaluate_conflicts(_at(11), 60, True, existing, 0)

        assert not result.has_conflict

    @pytest.mark.parametrize(
        "start_minute,expected",
        [(0, True), (29, True), (30, False), (45, False)],
    )
    def test_buffer_boundary(self, start_minute: int, expected: bool) -> None:
        existing = [_existing("a", 10, home=True)]

        result = evaluate_conflicts(_at(11, start_minute), 30, True, existing, 30)

        assert result.has_conflict is expected


class TestConflictCheckerAgainstDatabase:
    def test_detects_existing_active_booking(self, unit_db, tenant, make_booking, at) -> None:
        existing = make_booking(at(10), status="pending")
        checker = ConflictChecker(unit_db, policy=SchedulingPolicy())

        result = checker.check_booking_conflicts(tenant.id, at(10, 30), 60, False)

        assert result.has_conflict
        assert result.conflicting_booking_ids == [existing.id]

    def test_cancelled_and_completed_bookings_do_not_conflict(
        self, unit_db, tenant, make_booking, at
    ) -> None:
        make_booking(at(10), status="cancelled")
        make_booking(at(12), status="completed")
        checker = ConflictChecker(unit_db, policy=SchedulingPolicy())

        assert not checker.check_booking_conflicts(tenant.id, at(10), 60, False).has_conflict
        assert not checker.check_booking_conflicts(tenant.id, at(12), 60, False).has_conflict

    def test_excluded_booking_is_ignored(self, unit_db, tenant, make_booking, at) -> None:
        existing = make_booking(at(10))
        checker = ConflictChecker(unit_db, policy=SchedulingPolicy())

        result = checker.check_booking_conflicts(
            tenant.id, at(10, 30), 60, False, exclude_booking_id=existing.id
        )

        assert not result.has_conflict

    def test_other_tenants_bookings_are_invisible(
        self, unit_db, tenant, make_booking, at
    ) -> None:
        from booking_engine.models import Tenant

        other = Tenant(name="Other Salon")
        unit_db.add(other)
        unit_db.commit()
        make_booking(at(10), tenant_id=other.id)
        checker = ConflictChecker(unit_db, policy=SchedulingPolicy())

        assert checker.check_booking_conflicts(other.id, at(10), 60, False).has_conflict
        assert not checker.check_booking_conflicts(tenant.id, at(10), 60, False).has_conflict

    def test_scan_window_bounds_candidates(self, unit_db, tenant, make_booking, at) -> None:
        # A 3-day booking starting two days earlier is outside a 24h scan
        make_booking(at(10) - timedelta(days=2), duration_minutes=3 * 24 * 60)
        narrow = ConflictChecker(unit_db, policy=SchedulingPolicy(conflict_scan_window_hours=24))
        wide = ConflictChecker(unit_db, policy=SchedulingPolicy(conflict_scan_window_hours=72))

        assert not narrow.check_booking_conflicts(tenant.id, at(10), 60, False).has_conflict
        assert wide.check_booking_conflicts(tenant.id, at(10), 60, False).has_conflict
