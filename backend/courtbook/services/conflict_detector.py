# backend/courtbook/services/conflict_detector.py
"""
Conflict Detector

Every booking path checks overlap here. Windows are half-open [start, end):
two windows overlap iff a.start < b.end and b.start < a.end, so back-to-back
reservations never conflict.

This pre-check gives callers a precise error; the ResourceClaim constraint
written with the reservation is what actually rules out double booking
under concurrency.
"""

from dataclasses import dataclass
from datetime import date, time
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import BookingConflictException
from ..models.reservation import minutes_of_day, time_from_minutes
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.conflict_repository import ConflictRepository
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeWindow:
    start: time
    end: time
    reservation_id: Optional[str] = None


def overlaps(candidate: TimeWindow, existing: TimeWindow) -> bool:
    return candidate.start < existing.end and existing.start < candidate.end


def find_conflicts(
    candidate: TimeWindow,
    existing: Iterable[TimeWindow],
    exclude_id: Optional[str] = None,
) -> List[TimeWindow]:
    return [
        window
        for window in existing
        if not (exclude_id and window.reservation_id == exclude_id) and overlaps(candidate, window)
    ]


def has_conflict(
    candidate: TimeWindow,
    existing: Iterable[TimeWindow],
    exclude_id: Optional[str] = None,
) -> bool:
    return bool(find_conflicts(candidate, existing, exclude_id))


def max_free_duration(
    start: time,
    existing: Sequence[TimeWindow],
    close: time,
    max_minutes: int = 240,
    step_minutes: int = 30,
) -> int:
    """
    Longest free duration from start, probing downward by step.

    Never runs past closing time. Returns 0 when not even one step fits.
    """
    start_minutes = minutes_of_day(start)
    limit = min(max_minutes, minutes_of_day(close) - start_minutes)

    duration = limit - (limit % step_minutes) if limit > 0 else 0
    while duration >= step_minutes:
        end = time_from_minutes(start_minutes + duration)
        if not has_conflict(TimeWindow(start, end), existing):
            return duration
        duration -= step_minutes
    return 0


class ConflictDetector(BaseService):
    """Reads reservation state and answers overlap questions per resource."""

    def __init__(self, db: Session, repository: Optional[ConflictRepository] = None):
        """
        Initialize conflict detector service.

        Args:
            db: Database session
            repository: Optional ConflictRepository instance
        """
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_conflict_repository(db)

    def existing_windows(
        self, resource_id: str, check_date: date, exclude_reservation_id: Optional[str] = None
    ) -> List[TimeWindow]:
        reservations = self.repository.get_active_reservations_for_resource(
            resource_id, check_date, exclude_reservation_id
        )
        return [TimeWindow(r.start_time, r.end_time, r.id) for r in reservations]

    @BaseService.measure_operation("check_resource_conflicts")
    def check_resource_conflicts(
        self,
        resource_id: str,
        check_date: date,
        start_time: time,
        end_time: time,
        exclude_reservation_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Conflicting reservations for one resource.

        Returns:
            List of conflicts with reservation details
        """
        candidate = TimeWindow(start_time, end_time)
        conflicts = find_conflicts(
            candidate, self.existing_windows(resource_id, check_date, exclude_reservation_id)
        )
        if conflicts:
            self.logger.warning(
                f"Found {len(conflicts)} conflicts for resource {resource_id} "
                f"on {check_date} between {start_time}-{end_time}"
            )
        return [
            {
                "resource_id": resource_id,
                "reservation_id": window.reservation_id,
                "start_time": window.start.isoformat(),
                "end_time": window.end.isoformat(),
            }
            for window in conflicts
        ]

    def ensure_no_conflicts(
        self,
        resource_ids: Sequence[str],
        check_date: date,
        start_time: time,
        end_time: time,
        exclude_reservation_id: Optional[str] = None,
    ) -> None:
        """
        Raise BookingConflictException if any resource is occupied.

        Each resource is checked independently; one busy resource rejects the
        whole request.
        """
        conflicts: List[Dict[str, Any]] = []
        for resource_id in resource_ids:
            conflicts.extend(
                self.check_resource_conflicts(
                    resource_id, check_date, start_time, end_time, exclude_reservation_id
                )
            )
        if conflicts:
            prometheus_metrics.inc_booking_conflict("precheck")
            raise BookingConflictException(
                details={
                    "date": check_date.isoformat(),
                    "start_time": start_time.isoformat(),
                    "end_time": end_time.isoformat(),
                    "conflicts": conflicts,
                }
            )

    def max_bookable_duration(
        self, resource_id: str, check_date: date, start_time: time, close_time: time
    ) -> int:
        return max_free_duration(
            start_time,
            self.existing_windows(resource_id, check_date),
            close_time,
            max_minutes=settings.max_probe_duration_minutes,
            step_minutes=settings.probe_step_minutes,
        )
