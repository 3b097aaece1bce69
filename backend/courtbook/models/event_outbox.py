# backend/courtbook/models/event_outbox.py
"""
Event outbox persistence model.

Reservation, payment and token pool events are written here in the same
transaction as the state change they describe; a relay outside this
package delivers them and reports back through mark_sent/mark_failed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.types import JSON

from ..core.ulid_helper import generate_ulid
from ..database import Base

MAX_ERROR_LENGTH = 1000


class EventOutboxStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class EventOutbox(Base):
    """One queued domain event, keyed for at-most-once enqueueing."""

    __tablename__ = "event_outbox"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    event_type = Column(String(100), nullable=False, index=True)
    # Reservation or token pool id the event is about
    aggregate_id = Column(String(64), nullable=False, index=True)
    idempotency_key = Column(String(255), nullable=False)
    payload = Column(
        JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"),
        nullable=False,
        default=dict,
    )
    status = Column(String(20), nullable=False, default=EventOutboxStatus.PENDING.value, index=True)
    attempt_count = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (UniqueConstraint("idempotency_key", name="uq_event_outbox_idempotency_key"),)

    @property
    def is_pending(self) -> bool:
        return self.status == EventOutboxStatus.PENDING.value

    def mark_sent(self, attempt_count: int) -> None:
        now = datetime.now(timezone.utc)
        self.status = EventOutboxStatus.SENT.value
        self.attempt_count = attempt_count
        self.sent_at = now
        self.updated_at = now

    def mark_failed(self, attempt_count: int, error: str | None = None) -> None:
        """Give up on delivery; the error text is truncated to fit."""
        self.status = EventOutboxStatus.FAILED.value
        self.attempt_count = attempt_count
        if error:
            self.last_error = error[:MAX_ERROR_LENGTH]
        self.updated_at = datetime.now(timezone.utc)
