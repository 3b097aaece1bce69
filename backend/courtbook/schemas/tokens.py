"""Token pool, payment quote and redemption models."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import Field

from ..core.enums import ServiceCategory
from .base import Money, StandardizedModel, StrictModel


class TokenPoolResponse(StandardizedModel):
    id: str
    club_id: str
    month_year: str
    subscription_tier_id: str
    allocated: int
    used: int
    purchased: int
    rollover_in: int
    refunded_in: int
    overdraft_used: int
    overdraft_limit: int
    available: int
    expires_at: datetime
    usage_breakdown: Optional[Dict[str, int]] = None


class TokenPurchaseRequest(StrictModel):
    tokens: int = Field(..., gt=0)
    reference: Optional[str] = Field(default=None, max_length=255)


class PaymentQuoteRequest(StrictModel):
    item_cost_tokens: int = Field(..., ge=0)
    available_tokens: int = Field(..., ge=0)
    cash_price: Optional[Decimal] = Field(default=None, ge=0)
    token_usd_rate: Optional[Decimal] = Field(default=None, gt=0)


class PaymentOptionResponse(StandardizedModel):
    method: str
    tokens: int
    cash: Money
    can_afford: bool
    savings: Money
    summary: str


class PaymentQuoteResponse(StandardizedModel):
    item_cost_tokens: int
    cash_price: Money
    available_tokens: int
    options: List[PaymentOptionResponse]
    best_option: PaymentOptionResponse


class ServicePolicyResponse(StandardizedModel):
    category: str
    name: str
    max_redemption_percentage: int
    allowed_weekdays: Optional[List[int]] = None
    allowed_hours: Optional[List[int]] = None


class RedemptionCalculateRequest(StrictModel):
    category: ServiceCategory
    total_value: Decimal = Field(..., gt=0)
    requested_tokens: Optional[int] = Field(default=None, ge=0)


class RedemptionCalculationResponse(StandardizedModel):
    category: str
    total_value: Money
    max_tokens_allowed: int
    tokens_to_use: int
    token_value: Money
    cash_amount: Money
    redemption_percentage: Decimal
    savings: Money


class RedemptionRequest(StrictModel):
    player_id: str = Field(..., min_length=1)
    category: ServiceCategory
    total_value: Decimal = Field(..., gt=0)
    tokens: int = Field(..., gt=0)
    scheduled_at: Optional[datetime] = None
    idempotency_key: Optional[str] = Field(default=None, max_length=255)
    reservation_id: Optional[str] = None


class RedemptionResponse(StandardizedModel):
    id: str
    club_id: str
    token_pool_id: str
    player_id: str
    service_category: str
    total_value: Money
    tokens_used: int
    token_value: Money
    cash_paid: Money
    redemption_percentage: Decimal
    scheduled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
