import enum
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    """Current time as naive UTC, the representation stored in every DateTime column"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class Service(Base):
    """A cleaning service offered by a provider. Managed outside the booking core."""

    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, nullable=False, index=True)  # The cleaner offering the service
    description = Column(String(500), nullable=True)
    price = Column(Numeric(10, 2), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    bookings = relationship("Booking", back_populates="service")


class Booking(Base):
    """A proposal: a requester asking for a service at a point in time"""

    __tablename__ = "proposals"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    requester_id = Column(Integer, nullable=False, index=True)
    scheduled_at = Column(DateTime, nullable=False)  # naive UTC
    status = Column(
        String(20), default=BookingStatus.PENDING.value, nullable=False, index=True
    )  # pending, accepted, in_progress, finished

    address = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    requester_present = Column(Boolean, default=False, nullable=False)
    recurring = Column(Boolean, default=False, nullable=False)
    service_kind = Column(String(100), nullable=True)  # free-form, e.g. "deep cleaning"

    # Payment linkage (gateway callbacks are handled elsewhere)
    payment_method = Column(String(50), nullable=True)
    payment_reference = Column(String(255), nullable=True)
    card_id = Column(Integer, nullable=True)

    # Progress flags, set by the assigned provider only
    cleaner_started = Column(Boolean, default=False, nullable=False)
    cleaner_finished = Column(Boolean, default=False, nullable=False)

    # Opaque image references, replaced wholesale
    evidence_before = Column(JSON, default=list, nullable=False)
    evidence_after = Column(JSON, default=list, nullable=False)

    square_meters = Column(Float, nullable=True)
    price = Column(Numeric(10, 2), default=0, nullable=False)  # Filled by the pricing step

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    service = relationship("Service", back_populates="bookings")

    __table_args__ = (
        Index("ix_proposals_pair_schedule", "service_id", "requester_id", "scheduled_at"),
        Index("ix_proposals_requester_updated", "requester_id", "updated_at"),
    )
