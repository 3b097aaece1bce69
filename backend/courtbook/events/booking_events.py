"""Reservation domain events."""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class ReservationCreated:
    """Fired after a reservation is created pending."""

    reservation_id: str
    club_id: str
    owner_id: str
    kind: str
    resource_ids: List[str]
    booking_date: str
    start_time: str
    end_time: str
    created_at: datetime

    @property
    def aggregate_id(self) -> str:
        return self.reservation_id

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ReservationConfirmed:
    """Fired after payment is captured and the reservation confirmed."""

    reservation_id: str
    club_id: str
    tokens_debited: int
    cash_amount: str
    token_pool_id: Optional[str]
    confirmed_at: datetime

    @property
    def aggregate_id(self) -> str:
        return self.reservation_id

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ReservationCancelled:
    """Fired after a reservation is cancelled and its refund applied."""

    reservation_id: str
    club_id: str
    cancelled_by: str
    cancelled_at: datetime
    refund_percentage: int
    refund_tokens: int
    refund_cash: str
    released_resource_ids: List[str] = field(default_factory=list)
    refund_token_pool_id: Optional[str] = None

    @property
    def aggregate_id(self) -> str:
        return self.reservation_id

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
