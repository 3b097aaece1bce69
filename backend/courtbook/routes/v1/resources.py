"""V1 availability endpoints for a single court or coach."""

from __future__ import annotations

from datetime import date, time
import logging

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_booking_ledger
from ...core.config import settings
from ...core.exceptions import DomainException
from ...schemas.reservation import AvailableSlotsResponse, MaxDurationResponse
from ...services.booking_ledger import BookingLedger

logger = logging.getLogger(__name__)

# V1 router - mounted at /api/v1/resources
router = APIRouter(tags=["availability"])


@router.get("/{resource_id}/slots", response_model=AvailableSlotsResponse)
def get_available_slots(
    resource_id: str,
    booking_date: date = Query(..., alias="date"),
    ledger: BookingLedger = Depends(get_booking_ledger),
) -> AvailableSlotsResponse:
    """Free start times for the resource on a date; empty on closed days."""
    try:
        slots = ledger.get_available_slots(resource_id, booking_date)
    except DomainException as exc:
        raise exc.to_http_exception() from exc

    return AvailableSlotsResponse(
        resource_id=resource_id,
        booking_date=booking_date,
        granularity_minutes=settings.slot_granularity_minutes,
        slots=slots,
    )


@router.get("/{resource_id}/max-duration", response_model=MaxDurationResponse)
def get_max_duration(
    resource_id: str,
    booking_date: date = Query(..., alias="date"),
    start_time: time = Query(..., alias="start"),
    ledger: BookingLedger = Depends(get_booking_ledger),
) -> MaxDurationResponse:
    """Longest bookable duration from a start time."""
    try:
        minutes = ledger.max_bookable_duration(resource_id, booking_date, start_time)
    except DomainException as exc:
        raise exc.to_http_exception() from exc

    return MaxDurationResponse(
        resource_id=resource_id,
        booking_date=booking_date,
        start_time=start_time,
        max_duration_minutes=minutes,
    )
