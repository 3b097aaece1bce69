# backend/courtbook/repositories/conflict_repository.py
"""
Conflict Repository

Reads the reservation state a ConflictDetector needs: active reservations
holding a resource on a date. All conflict checking uses the reservation's
own date, start and end fields.
"""

from datetime import date
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import ReservationStatus
from ..models.reservation import Reservation, ReservationResource
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

_ACTIVE_STATUSES = [status.value for status in ReservationStatus.active()]


class ConflictRepository(BaseRepository[Reservation]):
    """Repository for conflict checking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Reservation)

    def get_active_reservations_for_resource(
        self,
        resource_id: str,
        check_date: date,
        exclude_reservation_id: Optional[str] = None,
    ) -> List[Reservation]:
        """
        Pending or confirmed reservations holding a resource on a date.

        Args:
            resource_id: The court or coach to check
            check_date: Club-local date
            exclude_reservation_id: Reservation to leave out (re-checks on confirm)

        Returns:
            Reservations ordered by start time
        """
        try:
            query = (
                self.db.query(Reservation)
                .join(ReservationResource, ReservationResource.reservation_id == Reservation.id)
                .filter(
                    ReservationResource.resource_id == resource_id,
                    Reservation.booking_date == check_date,
                    Reservation.status.in_(_ACTIVE_STATUSES),
                )
            )
            if exclude_reservation_id:
                query = query.filter(Reservation.id != exclude_reservation_id)

            return query.order_by(Reservation.start_time).all()
        except SQLAlchemyError as e:
            self._raise_repository_error("getting conflict candidates for", e)
