# backend/courtbook/repositories/reservation_repository.py
"""
Reservation Repository

Creates reservations together with their resource links and claims, and
releases claims on cancellation. Nothing here commits.
"""

from datetime import date, time
import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.reservation import Reservation, ReservationResource, ResourceClaim, claim_units
from ..models.resource import Resource
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ReservationRepository(BaseRepository[Reservation]):
    """Reservation persistence, including the claim rows that guard overlap."""

    def __init__(self, db: Session):
        super().__init__(db, Reservation)

    def create_with_claims(
        self,
        resources: Sequence[Resource],
        booking_date: date,
        start_time: time,
        end_time: time,
        unit_minutes: int,
        **fields: Any,
    ) -> Reservation:
        """
        Insert a reservation, its resource links and one claim per unit.

        A second active reservation on any of the same units raises
        IntegrityError at flush; the caller's transaction rolls everything
        back so a multi-resource session never partially commits.
        """
        reservation = Reservation(
            booking_date=booking_date,
            start_time=start_time,
            end_time=end_time,
            **fields,
        )
        reservation.resource_links = [
            ReservationResource(resource_id=resource.id, resource_category=resource.category)
            for resource in resources
        ]
        self.db.add(reservation)
        self.db.flush()

        claim_rows: List[Dict[str, Any]] = [
            {
                "resource_id": resource.id,
                "booking_date": booking_date,
                "unit_start": unit,
                "reservation_id": reservation.id,
            }
            for resource in resources
            for unit in claim_units(start_time, end_time, unit_minutes)
        ]
        BaseRepository(self.db, ResourceClaim).bulk_create(claim_rows)
        return reservation

    def release_claims(self, reservation_id: str) -> int:
        """Delete the claims of a reservation so its window can be re-booked."""
        try:
            deleted = (
                self.db.query(ResourceClaim)
                .filter(ResourceClaim.reservation_id == reservation_id)
                .delete(synchronize_session=False)
            )
            self.db.flush()
            return int(deleted or 0)
        except SQLAlchemyError as e:
            self._raise_repository_error("releasing claims for", e)

    def get_by_idempotency_key(self, key: str) -> Optional[Reservation]:
        return self.find_one_by(idempotency_key=key)

    def list_for_owner(
        self,
        owner_id: str,
        status: Optional[str] = None,
        limit: int = 100,
    ) -> List[Reservation]:
        """Owner's reservations, most recent date first."""
        try:
            query = self.db.query(Reservation).filter(Reservation.owner_id == owner_id)
            if status:
                query = query.filter(Reservation.status == status)
            return (
                query.order_by(Reservation.booking_date.desc(), Reservation.start_time.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self._raise_repository_error("listing owner", e)

    def transition_status(
        self,
        reservation_id: str,
        from_status: str,
        to_status: str,
        **values: Any,
    ) -> bool:
        """
        Compare-and-set the status column.

        Returns False when the row was no longer in from_status, so two
        concurrent confirms or cancels cannot both apply.
        """
        stmt = (
            update(Reservation)
            .where(Reservation.id == reservation_id, Reservation.status == from_status)
            .values(status=to_status, **values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
        except SQLAlchemyError as e:
            self._raise_repository_error("transitioning", e)
        return bool(result.rowcount)
