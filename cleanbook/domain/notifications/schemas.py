"""Notification domain schemas"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, field_validator


class NotificationItem(BaseModel):
    message: str
    proposalId: int
    serviceKind: Optional[str] = None
    status: str
    updatedAt: datetime

    @field_validator("updatedAt")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class NotificationPage(BaseModel):
    items: list[NotificationItem]
    totalCount: int
    totalPages: int
    currentPage: int
    pageSize: int


class DismissResponse(BaseModel):
    message: str
    proposalId: int
