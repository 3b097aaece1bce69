"""Token pool domain events."""
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class RedemptionExecuted:
    """Fired after tokens are exchanged for a service."""

    redemption_id: str
    club_id: str
    player_id: str
    service_category: str
    tokens_used: int
    cash_paid: str
    executed_at: datetime

    @property
    def aggregate_id(self) -> str:
        return self.redemption_id

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TokensPurchased:
    """Fired after a top-up is added to a club pool."""

    token_pool_id: str
    club_id: str
    tokens: int
    purchased_at: datetime
    reference: Optional[str] = None

    @property
    def aggregate_id(self) -> str:
        return self.token_pool_id

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
