"""V1 payment quote endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...schemas.tokens import PaymentOptionResponse, PaymentQuoteRequest, PaymentQuoteResponse
from ...services.hybrid_payment_calculator import HybridPaymentCalculator

logger = logging.getLogger(__name__)

# Mounted at /api/v1/payments
router = APIRouter(tags=["payments"])


@router.post("/quote", response_model=PaymentQuoteResponse)
def quote_payment(payload: PaymentQuoteRequest) -> PaymentQuoteResponse:
    """Token, cash and hybrid options for an item priced in tokens."""
    calculator = HybridPaymentCalculator(token_usd_rate=payload.token_usd_rate)
    try:
        quote = calculator.quote(
            payload.item_cost_tokens,
            payload.available_tokens,
            cash_price=payload.cash_price,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    best = HybridPaymentCalculator.get_best_option(quote)
    return PaymentQuoteResponse(
        item_cost_tokens=quote.item_cost_tokens,
        cash_price=quote.cash_price,
        available_tokens=quote.available_tokens,
        options=[PaymentOptionResponse(**option.to_payload()) for option in quote.options],
        best_option=PaymentOptionResponse(**best.to_payload()),
    )
