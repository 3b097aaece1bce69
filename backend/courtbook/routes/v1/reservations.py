"""V1 reservation lifecycle endpoints shared by bookings and sessions."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_booking_ledger
from ...core.enums import ReservationStatus
from ...core.exceptions import DomainException
from ...schemas.reservation import CancelRequest, ReservationResponse
from ...services.booking_ledger import BookingLedger

logger = logging.getLogger(__name__)

# Mounted at /api/v1/reservations
router = APIRouter(tags=["reservations"])


@router.get("", response_model=List[ReservationResponse])
def list_reservations(
    owner_id: str = Query(..., min_length=1),
    status: Optional[ReservationStatus] = Query(default=None),
    ledger: BookingLedger = Depends(get_booking_ledger),
) -> List[ReservationResponse]:
    reservations = ledger.list_reservations_for_owner(owner_id, status)
    return [ReservationResponse.model_validate(r) for r in reservations]


@router.get("/{reservation_id}", response_model=ReservationResponse)
def get_reservation(
    reservation_id: str,
    ledger: BookingLedger = Depends(get_booking_ledger),
) -> ReservationResponse:
    try:
        reservation = ledger.get_reservation(reservation_id)
    except DomainException as exc:
        raise exc.to_http_exception() from exc
    return ReservationResponse.model_validate(reservation)


@router.post("/{reservation_id}/confirm", response_model=ReservationResponse)
def confirm_reservation(
    reservation_id: str,
    ledger: BookingLedger = Depends(get_booking_ledger),
) -> ReservationResponse:
    """Confirm and charge a pending reservation. Safe to repeat."""
    try:
        reservation = ledger.confirm(reservation_id)
    except DomainException as exc:
        raise exc.to_http_exception() from exc
    return ReservationResponse.model_validate(reservation)


@router.post("/{reservation_id}/cancel", response_model=ReservationResponse)
def cancel_reservation(
    reservation_id: str,
    payload: CancelRequest,
    ledger: BookingLedger = Depends(get_booking_ledger),
) -> ReservationResponse:
    """Cancel a reservation and apply the refund policy."""
    try:
        reservation = ledger.cancel(reservation_id, payload.actor_id, payload.reason)
    except DomainException as exc:
        raise exc.to_http_exception() from exc
    return ReservationResponse.model_validate(reservation)
