"""Booking service - Business logic for the proposal lifecycle"""

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...auth import Caller, Provider, Requester
from ...exceptions import (
    AuthorizationError,
    BookingDomainError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from ...models import Booking, BookingStatus
from ...utils.sanitization import clean_text, sanitize_text
from .conflicts import ConflictChecker, to_utc_naive
from .evidence import EvidenceStore
from .repository import BookingRepository
from .state_machine import BookingStateMachine

logger = logging.getLogger(__name__)

# Name of the PostgreSQL exclusion constraint installed by
# migrations/add_proposal_conflict_constraint.py
CONFLICT_CONSTRAINT = "proposals_no_overlapping_active"

# Descriptive attributes accepted at creation time
CREATE_ATTRS = frozenset(
    {
        "address",
        "description",
        "requester_present",
        "recurring",
        "service_kind",
        "payment_method",
        "payment_reference",
        "card_id",
        "square_meters",
        "price",
    }
)

# Free text shown back to people: HTML-escaped before storage
_ESCAPED_LIMITS = {
    "address": 500,
    "description": 2000,
}

# Identifiers and labels: stored as given, only stripped and length-checked
_PLAIN_LIMITS = {
    "service_kind": 100,
    "payment_method": 50,
    "payment_reference": 255,
}


class BookingService:
    """Service layer for booking business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.conflicts = ConflictChecker(db)
        self.state_machine = BookingStateMachine(db)
        self.evidence = EvidenceStore(db)

    # ------------------------------------------------------------------
    # Authorization helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _ensure_owner(caller: Caller, booking: Booking) -> None:
        if not isinstance(caller, Requester) or caller.id != booking.requester_id:
            logger.warning(f"⚠️ {caller} is not the requester of booking {booking.id}")
            raise AuthorizationError(
                "Only the requester who owns this booking can do this",
                details={"bookingId": booking.id},
            )

    @staticmethod
    def _ensure_assigned_provider(caller: Caller, booking: Booking) -> None:
        if not isinstance(caller, Provider) or booking.service is None or caller.id != booking.service.provider_id:
            logger.warning(f"⚠️ {caller} is not the provider assigned to booking {booking.id}")
            raise AuthorizationError(
                "Only the provider assigned to this booking can do this",
                details={"bookingId": booking.id},
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, booking_id: int, caller: Caller) -> Booking:
        """Get a booking visible to the caller (its requester or assigned provider)"""
        booking = self.repo.get(self.db, booking_id)
        if not booking:
            raise NotFoundError(f"Booking {booking_id} not found", details={"bookingId": booking_id})

        if isinstance(caller, Requester):
            self._ensure_owner(caller, booking)
        else:
            self._ensure_assigned_provider(caller, booking)
        return booking

    def list_for_caller(self, caller: Caller) -> list[Booking]:
        if isinstance(caller, Requester):
            return self.repo.list_for_requester(self.db, caller.id)
        return self.repo.list_for_provider(self.db, caller.id)

    def exists_conflicting(
        self,
        service_id: int,
        requester_id: int,
        scheduled_at: Optional[datetime],
        caller: Optional[Caller] = None,
    ) -> bool:
        """
        Read-only probe: would a booking at scheduled_at collide with an active one?

        With a caller, a requester may only probe their own schedule and a
        provider only schedules on services they offer.
        """
        if scheduled_at is None:
            raise ValidationError("scheduledAt is required")
        if caller is not None:
            self._ensure_can_probe(caller, service_id, requester_id)
        return self.conflicts.has_conflict(service_id, requester_id, scheduled_at)

    def _ensure_can_probe(self, caller: Caller, service_id: int, requester_id: int) -> None:
        if isinstance(caller, Requester):
            if caller.id != requester_id:
                logger.warning(f"⚠️ {caller} tried to probe the schedule of requester {requester_id}")
                raise AuthorizationError(
                    "Requesters can only check their own schedule",
                    details={"requesterId": requester_id},
                )
            return

        service = self.repo.get_service(self.db, service_id)
        if not service:
            raise NotFoundError(f"Service {service_id} not found", details={"serviceId": service_id})
        if service.provider_id != caller.id:
            logger.warning(f"⚠️ {caller} tried to probe service {service_id} it does not offer")
            raise AuthorizationError(
                "Providers can only check schedules on their own services",
                details={"serviceId": service_id},
            )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _clean_attrs(self, attrs: dict[str, Any]) -> dict[str, Any]:
        unknown = set(attrs) - CREATE_ATTRS
        if unknown:
            raise ValidationError(
                "Unknown booking attributes", details={"fields": sorted(unknown)}
            )

        cleaned = {}
        for key, value in attrs.items():
            if value is None:
                continue
            if key in _ESCAPED_LIMITS or key in _PLAIN_LIMITS:
                try:
                    if key in _ESCAPED_LIMITS:
                        value = sanitize_text(value, max_length=_ESCAPED_LIMITS[key])
                    else:
                        value = clean_text(value, max_length=_PLAIN_LIMITS[key])
                except ValueError as e:
                    raise ValidationError(str(e), details={"field": key}) from e
                if value is None:
                    continue
            cleaned[key] = value
        return cleaned

    def create(
        self,
        caller: Caller,
        service_id: int,
        requester_id: int,
        scheduled_at: Optional[datetime],
        **attrs: Any,
    ) -> Booking:
        """
        Create a pending booking.

        The service row is locked for the whole check-then-insert sequence,
        so concurrent creations for the same service cannot both pass the
        conflict check.
        """
        if scheduled_at is None:
            raise ValidationError("scheduledAt is required")
        if not isinstance(caller, Requester) or caller.id != requester_id:
            raise AuthorizationError(
                "Bookings can only be created by the requester they belong to",
                details={"requesterId": requester_id},
            )

        values = self._clean_attrs(attrs)
        scheduled_at = to_utc_naive(scheduled_at)
        logger.info(
            f"📝 Creating booking for requester {requester_id}, service {service_id} at {scheduled_at.isoformat()}"
        )

        try:
            service = self.repo.lock_service(self.db, service_id)
            if not service:
                raise NotFoundError(f"Service {service_id} not found", details={"serviceId": service_id})

            self.conflicts.ensure_no_conflict(service_id, requester_id, scheduled_at)

            booking = self.repo.add(
                self.db,
                service_id=service_id,
                requester_id=requester_id,
                scheduled_at=scheduled_at,
                status=BookingStatus.PENDING.value,
                **values,
            )
            self.db.commit()
            self.db.refresh(booking)
        except BookingDomainError:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            if CONFLICT_CONSTRAINT in str(e.orig):
                logger.warning(f"⚠️ Exclusion constraint rejected booking for service {service_id}")
                raise ConflictError(
                    "An active booking for this service and requester already exists in this time window",
                    details={
                        "serviceId": service_id,
                        "requesterId": requester_id,
                        "scheduledAt": scheduled_at.isoformat(),
                    },
                ) from e
            logger.error(f"❌ Failed to create booking: {e}")
            raise PersistenceError("Failed to create booking") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create booking: {e}")
            raise PersistenceError("Failed to create booking") from e

        logger.info(f"✅ Booking {booking.id} created (pending)")
        return booking

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def accept(self, booking_id: int, caller: Caller) -> Booking:
        """pending → accepted, by the provider assigned to the booking's service"""
        return self.state_machine.transition(
            booking_id,
            BookingStatus.ACCEPTED,
            authorize=lambda booking: self._ensure_assigned_provider(caller, booking),
        )

    def confirm(self, booking_id: int, caller: Caller) -> Booking:
        """accepted → in_progress, by the requester who owns the booking"""
        return self.state_machine.transition(
            booking_id,
            BookingStatus.IN_PROGRESS,
            authorize=lambda booking: self._ensure_owner(caller, booking),
        )

    def finish(self, booking_id: int, caller: Caller) -> Booking:
        """in_progress → finished, by the assigned provider once the cleaner reported the job finished"""
        return self.state_machine.transition(
            booking_id,
            BookingStatus.FINISHED,
            authorize=lambda booking: self._ensure_assigned_provider(caller, booking),
        )

    # ------------------------------------------------------------------
    # Provider updates during execution
    # ------------------------------------------------------------------

    def upload_before(self, booking_id: int, refs: Optional[list], caller: Caller) -> Booking:
        return self.evidence.set_before_evidence(
            booking_id, refs, authorize=lambda booking: self._ensure_assigned_provider(caller, booking)
        )

    def upload_after(self, booking_id: int, refs: Optional[list], caller: Caller) -> Booking:
        return self.evidence.set_after_evidence(
            booking_id, refs, authorize=lambda booking: self._ensure_assigned_provider(caller, booking)
        )

    def set_cleaner_progress(
        self,
        booking_id: int,
        caller: Caller,
        started: Optional[bool] = None,
        finished: Optional[bool] = None,
    ) -> Booking:
        """Record the cleaner's progress flags. Never changes status."""
        patch = {}
        if started is not None:
            patch["cleaner_started"] = bool(started)
        if finished is not None:
            patch["cleaner_finished"] = bool(finished)
        if not patch:
            raise ValidationError("Provide at least one of 'started' or 'finished'")

        try:
            booking = self.repo.get_for_update(self.db, booking_id)
            if not booking:
                raise NotFoundError(f"Booking {booking_id} not found", details={"bookingId": booking_id})
            self._ensure_assigned_provider(caller, booking)
        except BookingDomainError:
            self.db.rollback()
            raise

        booking = self.repo.update(self.db, booking, **patch)
        logger.info(f"🧹 Booking {booking_id} progress updated: {patch}")
        return booking
