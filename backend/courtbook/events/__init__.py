"""Domain events and the outbox publisher."""

from .booking_events import (
    ReservationCancelled,
    ReservationConfirmed,
    ReservationCreated,
)
from .publisher import EventPublisher
from .token_events import RedemptionExecuted, TokensPurchased

__all__ = [
    "EventPublisher",
    "RedemptionExecuted",
    "ReservationCancelled",
    "ReservationConfirmed",
    "ReservationCreated",
    "TokensPurchased",
]
