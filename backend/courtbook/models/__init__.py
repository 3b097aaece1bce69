# backend/courtbook/models/__init__.py
"""
SQLAlchemy models for the club booking core.

Importing this package registers every table on ``Base.metadata``.
"""

from .club import Club, OperatingWindow
from .event_outbox import EventOutbox, EventOutboxStatus
from .redemption import Redemption
from .reservation import Reservation, ReservationResource, ResourceClaim
from .resource import Resource
from .token_pool import TokenPool

__all__ = [
    "Club",
    "EventOutbox",
    "EventOutboxStatus",
    "OperatingWindow",
    "Redemption",
    "Reservation",
    "ReservationResource",
    "Resource",
    "ResourceClaim",
    "TokenPool",
]
