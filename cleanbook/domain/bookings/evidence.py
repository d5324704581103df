"""Before/after photo references attached to a booking"""

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...exceptions import BookingDomainError, NotFoundError, ValidationError
from ...models import Booking
from .repository import BookingRepository

logger = logging.getLogger(__name__)

BEFORE = "before"
AFTER = "after"

_FIELDS = {BEFORE: "evidence_before", AFTER: "evidence_after"}


def validate_refs(refs: Optional[list]) -> list[str]:
    """Refs must be a non-empty list of non-blank strings. Order is kept as given."""
    if refs is None or not isinstance(refs, (list, tuple)) or len(refs) == 0:
        raise ValidationError("At least one evidence reference is required")

    for index, ref in enumerate(refs):
        if not isinstance(ref, str) or not ref.strip():
            raise ValidationError(
                "Evidence references must be non-empty strings",
                details={"index": index},
            )
    return list(refs)


class EvidenceStore:
    """Replaces the before/after evidence lists of a booking"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()

    def _replace(
        self,
        booking_id: int,
        kind: str,
        refs: Optional[list],
        authorize: Optional[Callable[[Booking], None]] = None,
    ) -> Booking:
        refs = validate_refs(refs)

        try:
            booking = self.repo.get_for_update(self.db, booking_id)
            if not booking:
                raise NotFoundError(f"Booking {booking_id} not found", details={"bookingId": booking_id})
            if authorize:
                authorize(booking)
        except BookingDomainError:
            self.db.rollback()
            raise

        booking = self.repo.update(self.db, booking, **{_FIELDS[kind]: refs})
        logger.info(f"📸 Stored {len(refs)} '{kind}' evidence reference(s) for booking {booking_id}")
        return booking

    def set_before_evidence(
        self,
        booking_id: int,
        refs: Optional[list],
        authorize: Optional[Callable[[Booking], None]] = None,
    ) -> Booking:
        return self._replace(booking_id, BEFORE, refs, authorize)

    def set_after_evidence(
        self,
        booking_id: int,
        refs: Optional[list],
        authorize: Optional[Callable[[Booking], None]] = None,
    ) -> Booking:
        return self._replace(booking_id, AFTER, refs, authorize)
