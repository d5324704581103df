"""Booking repository - Database operations for proposals"""

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...exceptions import PersistenceError
from ...models import Booking, BookingStatus, Service, utcnow

logger = logging.getLogger(__name__)

# Columns that are never writable through update()
IMMUTABLE_FIELDS = frozenset({"id", "service_id", "requester_id", "scheduled_at", "created_at"})


def _store_failure(db: Session, action: str, exc: SQLAlchemyError) -> PersistenceError:
    db.rollback()
    logger.error(f"❌ Booking store failure while trying to {action}: {exc}")
    return PersistenceError(f"Failed to {action}")


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def find(db: Session, *criteria, order_by: Optional[list] = None) -> list[Booking]:
        """Get all bookings matching the given SQLAlchemy criteria"""
        try:
            query = db.query(Booking).filter(*criteria)
            if order_by:
                query = query.order_by(*order_by)
            return query.all()
        except SQLAlchemyError as e:
            raise _store_failure(db, "query bookings", e) from e

    @staticmethod
    def get(db: Session, booking_id: int) -> Optional[Booking]:
        """Get a booking by ID"""
        try:
            return db.query(Booking).filter(Booking.id == booking_id).first()
        except SQLAlchemyError as e:
            raise _store_failure(db, "load booking", e) from e

    @staticmethod
    def get_for_update(db: Session, booking_id: int) -> Optional[Booking]:
        """
        Re-read a booking inside the current transaction and lock its row.
        populate_existing makes sure a stale identity-map copy is refreshed.
        """
        try:
            return (
                db.query(Booking)
                .filter(Booking.id == booking_id)
                .populate_existing()
                .with_for_update()
                .first()
            )
        except SQLAlchemyError as e:
            raise _store_failure(db, "lock booking", e) from e

    @staticmethod
    def get_service(db: Session, service_id: int) -> Optional[Service]:
        """Get a service by ID"""
        try:
            return db.query(Service).filter(Service.id == service_id).first()
        except SQLAlchemyError as e:
            raise _store_failure(db, "load service", e) from e

    @staticmethod
    def lock_service(db: Session, service_id: int) -> Optional[Service]:
        """
        Lock the parent service row. Creations for the same service serialize
        on this lock, which makes conflict-check plus insert atomic.
        """
        try:
            return (
                db.query(Service)
                .filter(Service.id == service_id)
                .with_for_update()
                .first()
            )
        except SQLAlchemyError as e:
            raise _store_failure(db, "lock service", e) from e

    @staticmethod
    def find_active_in_window(
        db: Session,
        service_id: int,
        requester_id: int,
        window_start: datetime,
        window_end: datetime,
    ) -> list[Booking]:
        """Non-finished bookings of the pair scheduled inside [window_start, window_end]"""
        return BookingRepository.find(
            db,
            Booking.service_id == service_id,
            Booking.requester_id == requester_id,
            Booking.status != BookingStatus.FINISHED.value,
            Booking.scheduled_at.between(window_start, window_end),
            order_by=[Booking.scheduled_at.asc()],
        )

    @staticmethod
    def add(db: Session, **attrs: Any) -> Booking:
        """Stage a new booking in the current transaction without committing"""
        now = utcnow()
        attrs.setdefault("created_at", now)
        attrs.setdefault("updated_at", now)
        booking = Booking(**attrs)
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def create(db: Session, **attrs: Any) -> Booking:
        """Create a new booking"""
        try:
            booking = BookingRepository.add(db, **attrs)
            db.commit()
            db.refresh(booking)
            return booking
        except SQLAlchemyError as e:
            raise _store_failure(db, "create booking", e) from e

    @staticmethod
    def update(db: Session, booking: Booking, **patch: Any) -> Booking:
        """Apply a patch to a booking and bump updated_at"""
        illegal = IMMUTABLE_FIELDS.intersection(patch)
        if illegal:
            raise ValueError(f"Immutable booking fields cannot be updated: {sorted(illegal)}")

        for key, value in patch.items():
            if not hasattr(booking, key):
                raise ValueError(f"Unknown booking field: {key}")
            setattr(booking, key, value)
        booking.updated_at = utcnow()

        try:
            db.commit()
            db.refresh(booking)
            return booking
        except SQLAlchemyError as e:
            raise _store_failure(db, "update booking", e) from e

    @staticmethod
    def list_for_requester(db: Session, requester_id: int) -> list[Booking]:
        """Get all bookings made by a requester, soonest first"""
        return BookingRepository.find(
            db,
            Booking.requester_id == requester_id,
            order_by=[Booking.scheduled_at.asc(), Booking.id.asc()],
        )

    @staticmethod
    def list_for_provider(db: Session, provider_id: int) -> list[Booking]:
        """Get all bookings on services offered by a provider, soonest first"""
        try:
            return (
                db.query(Booking)
                .join(Service, Service.id == Booking.service_id)
                .filter(Service.provider_id == provider_id)
                .order_by(Booking.scheduled_at.asc(), Booking.id.asc())
                .all()
            )
        except SQLAlchemyError as e:
            raise _store_failure(db, "query provider bookings", e) from e
