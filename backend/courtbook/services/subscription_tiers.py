"""Subscription tier lookup used when a month's token pool is opened."""

from typing import Dict, Optional, Protocol

from ..constants.subscription_tiers import SUBSCRIPTION_TIERS, SubscriptionTier, get_default_tier


class SubscriptionTierProvider(Protocol):
    def get_tier(self, tier_id: Optional[str]) -> SubscriptionTier:
        ...


class StaticTierProvider:
    """Serves tiers from an in-memory table, the bundled defaults unless given."""

    def __init__(self, tiers: Optional[Dict[str, SubscriptionTier]] = None):
        self._tiers = dict(tiers) if tiers is not None else dict(SUBSCRIPTION_TIERS)

    def get_tier(self, tier_id: Optional[str]) -> SubscriptionTier:
        if tier_id and tier_id in self._tiers:
            return self._tiers[tier_id]
        return get_default_tier(tier_id)
