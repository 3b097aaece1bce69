# backend/courtbook/services/session_scheduler.py
"""
Session Scheduler

Sessions hold a court and/or a coach for the same window. Conflicts are
checked per resource and the whole session is rejected if any resource is
busy; the reservation, its links and every claim are written in one
transaction, so a session never partially commits.
"""

from collections import Counter
from datetime import date, time
import logging
from typing import Optional, Sequence

from ..core.enums import PaymentMethod, ReservationKind
from ..core.exceptions import ValidationException
from ..models.reservation import Reservation
from ..models.resource import Resource
from .base import BaseService
from .reservation_service import ReservationService

logger = logging.getLogger(__name__)


class SessionScheduler(ReservationService):
    """Service for court + coach sessions."""

    kind = ReservationKind.SESSION

    def _validate_resource_mix(self, resources: Sequence[Resource]) -> None:
        per_category = Counter(resource.category for resource in resources)
        repeated = [category for category, count in per_category.items() if count > 1]
        if repeated:
            raise ValidationException(
                "A session holds at most one resource per category",
                code="INVALID_RESOURCE_MIX",
                details={"repeated_categories": sorted(repeated)},
            )

    @BaseService.measure_operation("schedule_session")
    def schedule_session(
        self,
        resource_ids: Sequence[str],
        booking_date: date,
        start_time: time,
        duration_minutes: int,
        owner_id: str,
        payment_method: PaymentMethod = PaymentMethod.TOKENS,
        idempotency_key: Optional[str] = None,
    ) -> Reservation:
        """Reserve a court and/or a coach together."""
        return self.create(
            resource_ids,
            booking_date,
            start_time,
            duration_minutes,
            owner_id,
            payment_method=payment_method,
            idempotency_key=idempotency_key,
        )
