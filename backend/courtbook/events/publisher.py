"""Event publisher - writes domain events to the transactional outbox."""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Protocol

from courtbook.models.event_outbox import EventOutbox
from courtbook.repositories.event_outbox_repository import EventOutboxRepository


class Event(Protocol):
    """Protocol for event types."""

    @property
    def aggregate_id(self) -> str:
        ...

    def to_dict(self) -> Dict[str, Any]:
        ...


def _json_safe(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, list):
        return [_json_safe(item) for item in value]
    return value


class EventPublisher:
    """
    Publishes domain events to the outbox.

    The row joins whatever transaction the caller has open, so an event is
    stored if and only if the state change it describes commits.
    """

    def __init__(self, outbox_repository: EventOutboxRepository):
        self.outbox_repo = outbox_repository

    def publish(self, event: Event, idempotency_key: Optional[str] = None) -> EventOutbox:
        event_type = type(event).__name__
        payload = {key: _json_safe(value) for key, value in event.to_dict().items()}
        key = idempotency_key or f"{event_type}:{event.aggregate_id}"

        return self.outbox_repo.enqueue(
            event_type=event_type,
            aggregate_id=event.aggregate_id,
            idempotency_key=key,
            payload=payload,
        )
