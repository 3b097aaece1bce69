"""Cancellation refund bands, evaluated from the most generous down."""

from __future__ import annotations

from typing import Tuple

# (minimum hours before start, refund percentage, policy label)
REFUND_BANDS: Tuple[Tuple[int, int, str], ...] = (
    (24, 100, "Full refund (24+ hours notice)"),
    (12, 80, "80% refund (12-24 hours notice)"),
    (4, 50, "50% refund (4-12 hours notice)"),
    (2, 0, "No refund (2-4 hours notice)"),
)

# Inside this many hours a reservation cannot be cancelled at all.
MINIMUM_CANCELLATION_HOURS = 2
