"""Request and response models for bookings and sessions."""

from datetime import date, datetime, time
from typing import List, Optional

from pydantic import Field

from ..core.enums import PaymentMethod
from .base import Money, StandardizedModel, StrictModel


class BookingCreate(StrictModel):
    court_id: str
    booking_date: date
    start_time: time
    duration_minutes: int = Field(..., description="Multiple of the booking unit")
    owner_id: str = Field(..., min_length=1)
    payment_method: PaymentMethod = PaymentMethod.TOKENS
    idempotency_key: Optional[str] = Field(default=None, max_length=255)


class SessionCreate(StrictModel):
    resource_ids: List[str] = Field(..., min_length=1, max_length=2)
    booking_date: date
    start_time: time
    duration_minutes: int
    owner_id: str = Field(..., min_length=1)
    payment_method: PaymentMethod = PaymentMethod.TOKENS
    idempotency_key: Optional[str] = Field(default=None, max_length=255)


class CancelRequest(StrictModel):
    actor_id: str = Field(..., min_length=1)
    reason: Optional[str] = Field(default=None, max_length=1000)


class ReservationResponse(StandardizedModel):
    id: str
    club_id: str
    owner_id: str
    kind: str
    resource_ids: List[str]
    booking_date: date
    start_time: time
    end_time: time
    duration_minutes: int
    status: str
    payment_method: str
    total_cost_tokens: int
    total_cost_cash: Money
    tokens_used: int
    cash_amount: Money
    token_pool_id: Optional[str] = None
    refund_tokens: Optional[int] = None
    refund_cash: Optional[Money] = None
    refund_percentage: Optional[int] = None
    refund_pool_id: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class AvailableSlotsResponse(StandardizedModel):
    resource_id: str
    booking_date: date
    granularity_minutes: int
    slots: List[time]


class MaxDurationResponse(StandardizedModel):
    resource_id: str
    booking_date: date
    start_time: time
    max_duration_minutes: int
