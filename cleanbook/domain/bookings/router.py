"""Booking router - FastAPI endpoints for the proposal lifecycle"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import Caller, Provider, Requester, get_current_caller, get_current_provider, get_current_requester
from ...database import get_db
from .conflicts import conflict_window, to_utc_naive
from .schemas import BookingCreate, BookingResponse, ConflictCheckResponse, EvidenceUpload, ProgressUpdate
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/proposals", tags=["Proposals"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


# ============================================================================
# CREATION & CONFLICT PROBE
# ============================================================================


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    requester: Requester = Depends(get_current_requester),
    service: BookingService = Depends(get_booking_service),
):
    """Create a new proposal (status pending)"""
    booking = service.create(
        requester,
        service_id=data.serviceId,
        requester_id=data.requesterId if data.requesterId is not None else requester.id,
        scheduled_at=data.scheduledAt,
        address=data.address,
        description=data.description,
        requester_present=data.requesterPresent,
        recurring=data.recurring,
        service_kind=data.serviceKind,
        payment_method=data.paymentMethod,
        payment_reference=data.paymentReference,
        card_id=data.cardId,
        square_meters=data.squareMeters,
        price=data.price,
    )
    return BookingResponse.from_booking(booking)


@router.get("/conflicts", response_model=ConflictCheckResponse)
async def check_conflict(
    service_id: int = Query(..., alias="serviceId"),
    scheduled_at: datetime = Query(..., alias="scheduledAt"),
    requester_id: Optional[int] = Query(None, alias="requesterId"),
    caller: Caller = Depends(get_current_caller),
    service: BookingService = Depends(get_booking_service),
):
    """Check whether a booking at scheduledAt would collide with an active one"""
    if requester_id is None:
        requester_id = caller.id
    conflict = service.exists_conflicting(service_id, requester_id, scheduled_at, caller=caller)
    window_start, window_end = conflict_window(scheduled_at, service.conflicts.window_minutes)
    return ConflictCheckResponse(
        conflict=conflict,
        serviceId=service_id,
        requesterId=requester_id,
        scheduledAt=to_utc_naive(scheduled_at),
        windowStart=window_start,
        windowEnd=window_end,
    )


# ============================================================================
# READS
# ============================================================================


@router.get("", response_model=list[BookingResponse])
async def list_bookings(
    caller: Caller = Depends(get_current_caller),
    service: BookingService = Depends(get_booking_service),
):
    """List the caller's proposals (requester: own, provider: on own services)"""
    return [BookingResponse.from_booking(b) for b in service.list_for_caller(caller)]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    caller: Caller = Depends(get_current_caller),
    service: BookingService = Depends(get_booking_service),
):
    """Get a single proposal"""
    return BookingResponse.from_booking(service.get(booking_id, caller))


# ============================================================================
# STATUS TRANSITIONS
# ============================================================================


@router.post("/{booking_id}/accept", response_model=BookingResponse)
async def accept_booking(
    booking_id: int,
    provider: Provider = Depends(get_current_provider),
    service: BookingService = Depends(get_booking_service),
):
    """Provider accepts a pending proposal"""
    return BookingResponse.from_booking(service.accept(booking_id, provider))


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: int,
    requester: Requester = Depends(get_current_requester),
    service: BookingService = Depends(get_booking_service),
):
    """Requester confirms an accepted proposal; the job is now in progress"""
    return BookingResponse.from_booking(service.confirm(booking_id, requester))


@router.post("/{booking_id}/finish", response_model=BookingResponse)
async def finish_booking(
    booking_id: int,
    provider: Provider = Depends(get_current_provider),
    service: BookingService = Depends(get_booking_service),
):
    """Provider closes an in-progress proposal"""
    return BookingResponse.from_booking(service.finish(booking_id, provider))


# ============================================================================
# EXECUTION: EVIDENCE & PROGRESS
# ============================================================================


@router.put("/{booking_id}/evidence/before", response_model=BookingResponse)
async def upload_before_evidence(
    booking_id: int,
    data: EvidenceUpload,
    provider: Provider = Depends(get_current_provider),
    service: BookingService = Depends(get_booking_service),
):
    """Replace the 'before' photo references"""
    return BookingResponse.from_booking(service.upload_before(booking_id, data.refs, provider))


@router.put("/{booking_id}/evidence/after", response_model=BookingResponse)
async def upload_after_evidence(
    booking_id: int,
    data: EvidenceUpload,
    provider: Provider = Depends(get_current_provider),
    service: BookingService = Depends(get_booking_service),
):
    """Replace the 'after' photo references"""
    return BookingResponse.from_booking(service.upload_after(booking_id, data.refs, provider))


@router.patch("/{booking_id}/progress", response_model=BookingResponse)
async def set_cleaner_progress(
    booking_id: int,
    data: ProgressUpdate,
    provider: Provider = Depends(get_current_provider),
    service: BookingService = Depends(get_booking_service),
):
    """Set the cleaner started/finished flags"""
    booking = service.set_cleaner_progress(
        booking_id, provider, started=data.started, finished=data.finished
    )
    return BookingResponse.from_booking(booking)
