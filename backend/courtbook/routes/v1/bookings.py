"""V1 court booking and session creation endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from ...api.dependencies import get_booking_ledger, get_session_scheduler
from ...core.exceptions import DomainException
from ...schemas.reservation import BookingCreate, ReservationResponse, SessionCreate
from ...services.booking_ledger import BookingLedger
from ...services.session_scheduler import SessionScheduler

logger = logging.getLogger(__name__)

# Mounted at /api/v1/bookings
router = APIRouter(tags=["bookings"])

# Mounted at /api/v1/sessions
sessions_router = APIRouter(tags=["sessions"])


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreate,
    ledger: BookingLedger = Depends(get_booking_ledger),
) -> ReservationResponse:
    """Create a pending court booking."""
    try:
        reservation = ledger.create_booking(
            payload.court_id,
            payload.booking_date,
            payload.start_time,
            payload.duration_minutes,
            payload.owner_id,
            payment_method=payload.payment_method,
            idempotency_key=payload.idempotency_key,
        )
    except DomainException as exc:
        raise exc.to_http_exception() from exc

    return ReservationResponse.model_validate(reservation)


@sessions_router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
def create_session(
    payload: SessionCreate,
    scheduler: SessionScheduler = Depends(get_session_scheduler),
) -> ReservationResponse:
    """Create a pending session holding a court and/or a coach."""
    try:
        reservation = scheduler.schedule_session(
            payload.resource_ids,
            payload.booking_date,
            payload.start_time,
            payload.duration_minutes,
            payload.owner_id,
            payment_method=payload.payment_method,
            idempotency_key=payload.idempotency_key,
        )
    except DomainException as exc:
        raise exc.to_http_exception() from exc

    return ReservationResponse.model_validate(reservation)
