# backend/courtbook/services/booking_ledger.py
"""
Booking Ledger

Court bookings: a single court for a contiguous window. Confirmation and
cancellation follow the shared reservation lifecycle.
"""

from datetime import date, time
import logging
from typing import Optional, Sequence

from ..core.enums import PaymentMethod, ReservationKind, ResourceCategory
from ..core.exceptions import ValidationException
from ..models.reservation import Reservation
from ..models.resource import Resource
from .base import BaseService
from .reservation_service import ReservationService

logger = logging.getLogger(__name__)


class BookingLedger(ReservationService):
    """Service for single-court bookings."""

    kind = ReservationKind.COURT_BOOKING

    def _validate_resource_mix(self, resources: Sequence[Resource]) -> None:
        if len(resources) != 1 or resources[0].category != ResourceCategory.COURT.value:
            raise ValidationException(
                "A court booking holds exactly one court",
                code="INVALID_RESOURCE_MIX",
                details={"resource_ids": [resource.id for resource in resources]},
            )

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        court_id: str,
        booking_date: date,
        start_time: time,
        duration_minutes: int,
        owner_id: str,
        payment_method: PaymentMethod = PaymentMethod.TOKENS,
        idempotency_key: Optional[str] = None,
    ) -> Reservation:
        """Book one court; see ReservationService.create for failure modes."""
        return self.create(
            [court_id],
            booking_date,
            start_time,
            duration_minutes,
            owner_id,
            payment_method=payment_method,
            idempotency_key=idempotency_key,
        )
