"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored datetimes are naive UTC; expose them with an explicit offset"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class BookingCreate(BaseModel):
    """Schema for creating a new booking (proposal)"""

    serviceId: int
    requesterId: Optional[int] = None  # Defaults to the authenticated requester
    scheduledAt: Optional[datetime] = None
    address: Optional[str] = None
    description: Optional[str] = None
    requesterPresent: bool = False
    recurring: bool = False
    serviceKind: Optional[str] = None
    paymentMethod: Optional[str] = None
    paymentReference: Optional[str] = None
    cardId: Optional[int] = None
    squareMeters: Optional[float] = Field(default=None, ge=0)
    price: Optional[Decimal] = Field(default=None, ge=0)


class EvidenceUpload(BaseModel):
    """Schema for replacing a before/after evidence list"""

    refs: Optional[list[str]] = None


class ProgressUpdate(BaseModel):
    """Schema for the cleaner progress flags"""

    started: Optional[bool] = None
    finished: Optional[bool] = None


class BookingResponse(BaseModel):
    """Schema for booking response"""

    id: int
    serviceId: int
    requesterId: int
    scheduledAt: datetime
    status: str
    address: Optional[str] = None
    description: Optional[str] = None
    requesterPresent: bool
    recurring: bool
    serviceKind: Optional[str] = None
    paymentMethod: Optional[str] = None
    paymentReference: Optional[str] = None
    cardId: Optional[int] = None
    cleanerStarted: bool
    cleanerFinished: bool
    evidenceBefore: list[str]
    evidenceAfter: list[str]
    squareMeters: Optional[float] = None
    price: Decimal
    createdAt: datetime
    updatedAt: datetime

    @field_validator("scheduledAt", "createdAt", "updatedAt")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @classmethod
    def from_booking(cls, booking) -> "BookingResponse":
        return cls(
            id=booking.id,
            serviceId=booking.service_id,
            requesterId=booking.requester_id,
            scheduledAt=booking.scheduled_at,
            status=booking.status,
            address=booking.address,
            description=booking.description,
            requesterPresent=booking.requester_present,
            recurring=booking.recurring,
            serviceKind=booking.service_kind,
            paymentMethod=booking.payment_method,
            paymentReference=booking.payment_reference,
            cardId=booking.card_id,
            cleanerStarted=booking.cleaner_started,
            cleanerFinished=booking.cleaner_finished,
            evidenceBefore=list(booking.evidence_before or []),
            evidenceAfter=list(booking.evidence_after or []),
            squareMeters=booking.square_meters,
            price=booking.price if booking.price is not None else Decimal("0"),
            createdAt=booking.created_at,
            updatedAt=booking.updated_at,
        )


class ConflictCheckResponse(BaseModel):
    """Schema for the read-only conflict probe"""

    conflict: bool
    serviceId: int
    requesterId: int
    scheduledAt: datetime
    windowStart: datetime
    windowEnd: datetime

    @field_validator("scheduledAt", "windowStart", "windowEnd")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return _as_utc(value)
