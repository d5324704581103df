"""Notification router - requester status-change notices"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Requester, get_current_requester
from ...database import get_db
from .schemas import DismissResponse, NotificationPage
from .service import NotificationDeriver

router = APIRouter(prefix="/users/notifications", tags=["Notifications"])


def get_notification_deriver(db: Session = Depends(get_db)) -> NotificationDeriver:
    """Dependency injection for NotificationDeriver"""
    return NotificationDeriver(db)


@router.get("", response_model=NotificationPage)
async def list_notifications(
    page: Optional[int] = Query(None, description="Page number (default 1)"),
    size: Optional[int] = Query(None, description="Page size (default 10)"),
    requester: Requester = Depends(get_current_requester),
    deriver: NotificationDeriver = Depends(get_notification_deriver),
):
    """Notices for proposals of the current requester that have left 'pending'"""
    return deriver.list_notifications(requester.id, page, size)


@router.delete("/{proposal_id}", response_model=DismissResponse)
async def dismiss_notification(
    proposal_id: int,
    requester: Requester = Depends(get_current_requester),
    deriver: NotificationDeriver = Depends(get_notification_deriver),
):
    """Dismiss a notice. Nothing is stored server-side."""
    return deriver.dismiss_notification(requester.id, proposal_id)
