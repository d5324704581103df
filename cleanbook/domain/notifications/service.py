"""
Notification service - status-change notices derived from proposals.

Nothing is persisted: a requester's notices are simply their proposals that
are no longer pending, rendered through a fixed template. Dismissal is a
client-side concept; the server only confirms the notice exists.
"""

import logging
import math
from typing import Optional

from sqlalchemy.orm import Session

from ...config import NOTIFICATIONS_DEFAULT_PAGE_SIZE, NOTIFICATIONS_MAX_PAGE_SIZE
from ...exceptions import NotFoundError, ValidationError
from ...models import Booking
from .repository import NotificationRepository
from .schemas import DismissResponse, NotificationItem, NotificationPage

logger = logging.getLogger(__name__)

MESSAGE_TEMPLATE = "propuesta {service_kind} ha sido '{status}'"

# Rendered in place of a proposal created without a service kind
MISSING_SERVICE_KIND = "null"


def render_message(booking: Booking) -> str:
    service_kind = booking.service_kind if booking.service_kind is not None else MISSING_SERVICE_KIND
    return MESSAGE_TEMPLATE.format(service_kind=service_kind, status=booking.status)


class NotificationDeriver:
    """Builds paginated notices for a requester"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = NotificationRepository()

    def list_notifications(
        self,
        requester_id: int,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> NotificationPage:
        page = 1 if page is None else page
        page_size = NOTIFICATIONS_DEFAULT_PAGE_SIZE if page_size is None else page_size

        if page < 1:
            raise ValidationError("page must be 1 or greater", details={"page": page})
        if page_size < 1:
            raise ValidationError("size must be 1 or greater", details={"size": page_size})
        page_size = min(page_size, NOTIFICATIONS_MAX_PAGE_SIZE)

        rows, total = self.repo.page(self.db, requester_id, (page - 1) * page_size, page_size)

        items = [
            NotificationItem(
                message=render_message(booking),
                proposalId=booking.id,
                serviceKind=booking.service_kind,
                status=booking.status,
                updatedAt=booking.updated_at,
            )
            for booking in rows
        ]
        return NotificationPage(
            items=items,
            totalCount=total,
            totalPages=math.ceil(total / page_size),
            currentPage=page,
            pageSize=page_size,
        )

    def dismiss_notification(self, requester_id: int, booking_id: int) -> DismissResponse:
        """Acknowledge a dismissal. The client is expected to drop the notice itself."""
        booking = self.repo.get_notified(self.db, requester_id, booking_id)
        if not booking:
            raise NotFoundError("Notification not found", details={"proposalId": booking_id})

        logger.debug(f"Requester {requester_id} dismissed notice for proposal {booking_id}")
        return DismissResponse(
            message="Notification dismissed (client should remove it)",
            proposalId=booking_id,
        )
