"""Default subscription tier data for club token pools."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class SubscriptionTier:
    tier_id: str
    monthly_allocation: int
    rollover_cap: int = 0
    overdraft_limit: int = 0

    @property
    def allows_rollover(self) -> bool:
        return self.rollover_cap > 0


# Rollover is capped at one month's allocation on tiers that allow it.
SUBSCRIPTION_TIERS: Dict[str, SubscriptionTier] = {
    "community": SubscriptionTier("community", 5_000),
    "core": SubscriptionTier("core", 50_000),
    "plus": SubscriptionTier("plus", 150_000, rollover_cap=150_000),
    "pro": SubscriptionTier("pro", 300_000, rollover_cap=300_000, overdraft_limit=30_000),
}

DEFAULT_TIER_ID = "community"


def get_default_tier(tier_id: Optional[str]) -> SubscriptionTier:
    """Tier by id, falling back to the free community tier."""
    if tier_id and tier_id in SUBSCRIPTION_TIERS:
        return SUBSCRIPTION_TIERS[tier_id]
    return SUBSCRIPTION_TIERS[DEFAULT_TIER_ID]
