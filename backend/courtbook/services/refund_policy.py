"""Cancellation refund policy banded by notice given before start."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

from ..constants.refund_bands import MINIMUM_CANCELLATION_HOURS, REFUND_BANDS
from ..core.timezone_utils import hours_between

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class RefundBand:
    percentage: int
    can_cancel: bool
    policy: str
    hours_until_start: float

    def to_payload(self) -> dict[str, object]:
        return {
            "percentage": self.percentage,
            "can_cancel": self.can_cancel,
            "policy": self.policy,
            "hours_until_start": round(self.hours_until_start, 2),
        }


@dataclass(frozen=True)
class RefundAmounts:
    tokens: int
    cash: Decimal
    percentage: int


def refund_band(now: datetime, session_start: datetime) -> RefundBand:
    """
    Band for the notice between now and session_start.

    Both datetimes must be timezone-aware.
    """
    hours = hours_between(now, session_start)
    if hours < 0:
        return RefundBand(0, False, "Session already started", hours)

    for min_hours, percentage, label in REFUND_BANDS:
        if hours >= min_hours:
            return RefundBand(percentage, True, label, hours)

    return RefundBand(
        0,
        False,
        f"No cancellation within {MINIMUM_CANCELLATION_HOURS} hours of start",
        hours,
    )


def compute_refund(band: RefundBand, tokens_paid: int, cash_paid: Decimal) -> RefundAmounts:
    """Tokens round down to whole tokens; cash rounds half-up to cents."""
    if not band.can_cancel or band.percentage <= 0:
        return RefundAmounts(0, Decimal("0.00"), band.percentage if band.can_cancel else 0)

    pct = Decimal(band.percentage) / Decimal(100)
    tokens = int((Decimal(tokens_paid) * pct).to_integral_value(rounding=ROUND_DOWN))
    cash = (Decimal(cash_paid) * pct).quantize(CENTS, rounding=ROUND_HALF_UP)
    return RefundAmounts(tokens, cash, band.percentage)
