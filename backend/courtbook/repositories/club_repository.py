# backend/courtbook/repositories/club_repository.py
"""Club, operating-hours and resource lookups."""

import logging
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.club import Club, OperatingWindow
from ..models.resource import Resource
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ClubRepository(BaseRepository[Club]):
    """Read access to club configuration. Mutations belong to club settings."""

    def __init__(self, db: Session):
        super().__init__(db, Club)

    def get_operating_window(self, club_id: str, weekday: int) -> Optional[OperatingWindow]:
        """Window for a weekday, or None when the club is closed that day."""
        try:
            return (
                self.db.query(OperatingWindow)
                .filter(OperatingWindow.club_id == club_id, OperatingWindow.weekday == weekday)
                .first()
            )
        except SQLAlchemyError as e:
            self._raise_repository_error("getting operating window for", e)

    def get_resource(self, resource_id: str) -> Optional[Resource]:
        try:
            return self.db.get(Resource, resource_id)
        except SQLAlchemyError as e:
            self._raise_repository_error("getting resource for", e)

    def get_resources(self, resource_ids: Sequence[str]) -> List[Resource]:
        """Resources by id, in the order requested; unknown ids are skipped."""
        if not resource_ids:
            return []
        try:
            rows = self.db.query(Resource).filter(Resource.id.in_(list(resource_ids))).all()
        except SQLAlchemyError as e:
            self._raise_repository_error("getting resources for", e)
        by_id = {row.id: row for row in rows}
        return [by_id[rid] for rid in resource_ids if rid in by_id]
