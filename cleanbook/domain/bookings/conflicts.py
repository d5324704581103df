"""
Scheduling conflict detection.

Two bookings of the same (service, requester) pair collide when neither is
finished and their scheduled times are at most the conflict window apart.
The window is closed: exactly 120 minutes apart is still a conflict.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ...config import BOOKING_CONFLICT_WINDOW_MINUTES
from ...exceptions import ConflictError
from ...models import Booking
from .repository import BookingRepository

logger = logging.getLogger(__name__)


def to_utc_naive(value: datetime) -> datetime:
    """Normalize a datetime to naive UTC. Naive input is taken to already be UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def conflict_window(
    candidate: datetime, minutes: int = BOOKING_CONFLICT_WINDOW_MINUTES
) -> tuple[datetime, datetime]:
    """Closed interval [candidate - minutes, candidate + minutes] in naive UTC"""
    candidate = to_utc_naive(candidate)
    delta = timedelta(minutes=minutes)
    return candidate - delta, candidate + delta


class ConflictChecker:
    """Looks for active bookings that would collide with a candidate time"""

    def __init__(self, db: Session, window_minutes: Optional[int] = None):
        self.db = db
        self.repo = BookingRepository()
        self.window_minutes = (
            BOOKING_CONFLICT_WINDOW_MINUTES if window_minutes is None else window_minutes
        )

    def find_conflicts(
        self, service_id: int, requester_id: int, candidate_time: datetime
    ) -> list[Booking]:
        window_start, window_end = conflict_window(candidate_time, self.window_minutes)
        return self.repo.find_active_in_window(
            self.db, service_id, requester_id, window_start, window_end
        )

    def has_conflict(self, service_id: int, requester_id: int, candidate_time: datetime) -> bool:
        return bool(self.find_conflicts(service_id, requester_id, candidate_time))

    def ensure_no_conflict(
        self, service_id: int, requester_id: int, candidate_time: datetime
    ) -> None:
        """Raise ConflictError describing the collision, if there is one"""
        conflicts = self.find_conflicts(service_id, requester_id, candidate_time)
        if not conflicts:
            return

        window_start, window_end = conflict_window(candidate_time, self.window_minutes)
        logger.warning(
            f"⚠️ Booking conflict for service {service_id}, requester {requester_id} "
            f"at {to_utc_naive(candidate_time).isoformat()}: {len(conflicts)} active booking(s) in window"
        )
        raise ConflictError(
            f"Requester {requester_id} already has an active booking for service {service_id} "
            f"within {self.window_minutes} minutes of {to_utc_naive(candidate_time).isoformat()}",
            details={
                "serviceId": service_id,
                "requesterId": requester_id,
                "scheduledAt": to_utc_naive(candidate_time).isoformat(),
                "windowStart": window_start.isoformat(),
                "windowEnd": window_end.isoformat(),
                "conflicts": [
                    {"id": b.id, "scheduledAt": b.scheduled_at.isoformat(), "status": b.status}
                    for b in conflicts
                ],
            },
        )
