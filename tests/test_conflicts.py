from datetime import datetime, timedelta, timezone

import pytest

from cleanbook.domain.bookings.conflicts import ConflictChecker, conflict_window, to_utc_naive
from cleanbook.domain.bookings.service import BookingService
from cleanbook.exceptions import ConflictError
from cleanbook.models import Booking, BookingStatus
from tests.conftest import BASE_TIME, OTHER_REQUESTER_ID, OTHER_SERVICE_ID, REQUESTER_ID, SERVICE_ID, utc


def test_to_utc_naive_converts_offsets():
    aware = datetime(2025, 6, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert to_utc_naive(aware) == datetime(2025, 6, 1, 10, 0)
    assert to_utc_naive(datetime(2025, 6, 1, 10, 0)) == datetime(2025, 6, 1, 10, 0)


def test_conflict_window_is_closed_interval_around_candidate():
    start, end = conflict_window(utc(2025, 6, 1, 10, 0))
    assert start == datetime(2025, 6, 1, 8, 0)
    assert end == datetime(2025, 6, 1, 12, 0)


@pytest.mark.parametrize("offset_minutes", [-120, -90, -1, 0, 1, 60, 119, 120])
@pytest.mark.parametrize(
    "status", [BookingStatus.PENDING, BookingStatus.ACCEPTED, BookingStatus.IN_PROGRESS]
)
def test_active_booking_within_window_conflicts(db, make_booking, status, offset_minutes):
    make_booking(status=status, scheduled_at=BASE_TIME)
    checker = ConflictChecker(db)

    candidate = BASE_TIME + timedelta(minutes=offset_minutes)
    assert checker.has_conflict(SERVICE_ID, REQUESTER_ID, candidate) is True


@pytest.mark.parametrize("offset_minutes", [-121, 121, 180, -24 * 60])
def test_booking_outside_window_does_not_conflict(db, make_booking, offset_minutes):
    make_booking(scheduled_at=BASE_TIME)
    checker = ConflictChecker(db)

    candidate = BASE_TIME + timedelta(minutes=offset_minutes)
    assert checker.has_conflict(SERVICE_ID, REQUESTER_ID, candidate) is False


def test_finished_booking_never_conflicts(db, make_booking):
    make_booking(status=BookingStatus.FINISHED, scheduled_at=BASE_TIME)
    assert ConflictChecker(db).has_conflict(SERVICE_ID, REQUESTER_ID, BASE_TIME) is False


def test_conflicts_are_scoped_to_the_service_requester_pair(db, make_booking):
    make_booking(scheduled_at=BASE_TIME)
    checker = ConflictChecker(db)

    assert checker.has_conflict(OTHER_SERVICE_ID, REQUESTER_ID, BASE_TIME) is False
    assert checker.has_conflict(SERVICE_ID, OTHER_REQUESTER_ID, BASE_TIME) is False


def test_aware_candidate_is_compared_in_utc(db, make_booking):
    make_booking(scheduled_at=BASE_TIME)
    # 13:00 at UTC+2 is 11:00 UTC, one hour from the existing booking
    candidate = datetime(2025, 6, 1, 13, 0, tzinfo=timezone(timedelta(hours=2)))
    assert ConflictChecker(db).has_conflict(SERVICE_ID, REQUESTER_ID, candidate) is True


def test_ensure_no_conflict_describes_the_collision(db, make_booking):
    existing = make_booking(scheduled_at=BASE_TIME)

    with pytest.raises(ConflictError) as exc_info:
        ConflictChecker(db).ensure_no_conflict(SERVICE_ID, REQUESTER_ID, BASE_TIME + timedelta(minutes=90))

    details = exc_info.value.details
    assert details["windowStart"] == "2025-06-01T09:30:00"
    assert details["windowEnd"] == "2025-06-01T13:30:00"
    assert [c["id"] for c in details["conflicts"]] == [existing.id]


def test_window_width_can_be_overridden(db, make_booking):
    make_booking(scheduled_at=BASE_TIME)
    checker = ConflictChecker(db, window_minutes=30)

    assert checker.has_conflict(SERVICE_ID, REQUESTER_ID, BASE_TIME + timedelta(minutes=30)) is True
    assert checker.has_conflict(SERVICE_ID, REQUESTER_ID, BASE_TIME + timedelta(minutes=31)) is False


def test_boundary_120_rejected_121_accepted(db, requester):
    service = BookingService(db)
    service.create(requester, SERVICE_ID, REQUESTER_ID, utc(2025, 6, 1, 10, 0))

    with pytest.raises(ConflictError):
        service.create(requester, SERVICE_ID, REQUESTER_ID, utc(2025, 6, 1, 12, 0))

    booking = service.create(requester, SERVICE_ID, REQUESTER_ID, utc(2025, 6, 1, 12, 1))
    assert booking.status == BookingStatus.PENDING.value


def test_scenario_a_create_conflict_then_clear_slot(db, requester):
    service = BookingService(db)

    first = service.create(requester, SERVICE_ID, REQUESTER_ID, utc(2025, 6, 1, 10, 0))
    assert first.status == "pending"

    with pytest.raises(ConflictError):
        service.create(requester, SERVICE_ID, REQUESTER_ID, utc(2025, 6, 1, 11, 30))

    third = service.create(requester, SERVICE_ID, REQUESTER_ID, utc(2025, 6, 1, 13, 0))
    assert third.status == "pending"

    assert db.query(Booking).count() == 2


def test_exists_conflicting_is_read_only(db, make_booking):
    make_booking(scheduled_at=BASE_TIME)
    service = BookingService(db)

    assert service.exists_conflicting(SERVICE_ID, REQUESTER_ID, BASE_TIME) is True
    assert service.exists_conflicting(SERVICE_ID, REQUESTER_ID, BASE_TIME) is True
    assert service.exists_conflicting(SERVICE_ID, REQUESTER_ID, BASE_TIME + timedelta(hours=3)) is False
    assert db.query(Booking).count() == 1
