"""Notification repository - read-only queries over proposals"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...exceptions import PersistenceError
from ...models import Booking, BookingStatus

logger = logging.getLogger(__name__)


class NotificationRepository:
    """Notices are derived from proposals that have left 'pending'"""

    @staticmethod
    def _notified(db: Session, requester_id: int):
        return db.query(Booking).filter(
            Booking.requester_id == requester_id,
            Booking.status != BookingStatus.PENDING.value,
        )

    @staticmethod
    def page(db: Session, requester_id: int, offset: int, limit: int) -> tuple[list[Booking], int]:
        """Return one page of notified proposals (most recently updated first) and the total count"""
        try:
            query = NotificationRepository._notified(db, requester_id)
            total = query.count()
            rows = (
                query.order_by(Booking.updated_at.desc(), Booking.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return rows, total
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Failed to load notifications for requester {requester_id}: {e}")
            raise PersistenceError("Failed to load notifications") from e

    @staticmethod
    def get_notified(db: Session, requester_id: int, booking_id: int) -> Optional[Booking]:
        try:
            return (
                NotificationRepository._notified(db, requester_id)
                .filter(Booking.id == booking_id)
                .first()
            )
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Failed to load notification {booking_id}: {e}")
            raise PersistenceError("Failed to load notification") from e
