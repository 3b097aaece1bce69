# backend/courtbook/repositories/event_outbox_repository.py
"""Persistence helpers for the transactional event outbox."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.event_outbox import EventOutbox, EventOutboxStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class EventOutboxRepository(BaseRepository[EventOutbox]):
    """Outbox rows are written inside the caller's transaction."""

    def __init__(self, db: Session):
        super().__init__(db, EventOutbox)

    def enqueue(
        self,
        event_type: str,
        aggregate_id: str,
        idempotency_key: str,
        payload: Dict[str, Any],
    ) -> EventOutbox:
        """Insert an event unless its idempotency key is already queued."""
        existing = self.get_by_idempotency_key(idempotency_key)
        if existing is not None:
            return existing
        return self.create(
            event_type=event_type,
            aggregate_id=aggregate_id,
            idempotency_key=idempotency_key,
            payload=payload,
            status=EventOutboxStatus.PENDING.value,
        )

    def get_by_idempotency_key(self, key: str) -> Optional[EventOutbox]:
        return self.find_one_by(idempotency_key=key)

    def fetch_pending(self, limit: int = 100) -> List[EventOutbox]:
        try:
            return (
                self.db.query(EventOutbox)
                .filter(EventOutbox.status == EventOutboxStatus.PENDING.value)
                .order_by(EventOutbox.created_at, EventOutbox.id)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self._raise_repository_error("fetching pending", e)

    def mark_sent(self, event_id: str, attempt_count: int) -> None:
        event = self.get_by_id(event_id)
        if event is not None:
            event.mark_sent(attempt_count)
            self.db.flush()

    def mark_failed(self, event_id: str, attempt_count: int, error: Optional[str] = None) -> None:
        event = self.get_by_id(event_id)
        if event is not None:
            event.mark_failed(attempt_count, error)
            self.db.flush()
