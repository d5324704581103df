"""
Booking status transitions.

    pending -> accepted -> in_progress -> finished

Status only moves forward one step at a time. Every transition re-reads the
booking under a row lock inside the transaction that writes it, so two
concurrent requests cannot both move the same booking from a stale state.
"""

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...exceptions import BookingDomainError, NotFoundError, StateError
from ...models import Booking, BookingStatus
from .repository import BookingRepository

logger = logging.getLogger(__name__)

TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.ACCEPTED}),
    BookingStatus.ACCEPTED: frozenset({BookingStatus.IN_PROGRESS}),
    BookingStatus.IN_PROGRESS: frozenset({BookingStatus.FINISHED}),
    BookingStatus.FINISHED: frozenset(),
}

TERMINAL_STATES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)


def _require_cleaner_finished(booking: Booking) -> None:
    if not booking.cleaner_finished:
        raise StateError(
            "Booking cannot be finished before the cleaner reports the job as finished",
            details={"bookingId": booking.id, "cleanerFinished": False},
        )


# Extra preconditions checked after the status itself is known to be valid
GUARDS: dict[BookingStatus, Callable[[Booking], None]] = {
    BookingStatus.FINISHED: _require_cleaner_finished,
}


def parse_status(value: str) -> BookingStatus:
    """Map a stored/free-form status string onto the closed enum"""
    try:
        return BookingStatus(value)
    except ValueError as e:
        raise StateError(f"Unknown booking status: {value!r}") from e


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def validate_transition(current: BookingStatus, target: BookingStatus) -> None:
    if not can_transition(current, target):
        allowed = sorted(s.value for s in TRANSITIONS.get(current, frozenset()))
        raise StateError(
            f"Cannot move booking from '{current.value}' to '{target.value}'",
            details={"from": current.value, "to": target.value, "allowed": allowed},
        )


class BookingStateMachine:
    """Validates and applies status transitions"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()

    def transition(
        self,
        booking_id: int,
        target: BookingStatus,
        authorize: Optional[Callable[[Booking], None]] = None,
    ) -> Booking:
        """
        Move a booking to `target`.

        The order of checks is: existence, caller authorization, status
        table, target guard. On any failure the transaction is rolled back
        and the booking is left untouched.
        """
        try:
            booking = self.repo.get_for_update(self.db, booking_id)
            if not booking:
                raise NotFoundError(f"Booking {booking_id} not found", details={"bookingId": booking_id})

            if authorize:
                authorize(booking)

            current = parse_status(booking.status)
            validate_transition(current, target)
            guard = GUARDS.get(target)
            if guard:
                guard(booking)
        except BookingDomainError:
            self.db.rollback()
            raise

        booking = self.repo.update(self.db, booking, status=target.value)
        logger.info(f"✅ Booking {booking.id} transitioned: {current.value} → {target.value}")
        return booking
