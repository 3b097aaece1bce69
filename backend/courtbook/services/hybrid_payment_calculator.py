# backend/courtbook/services/hybrid_payment_calculator.py
"""
Hybrid payment calculator.

Quotes token-only, cash-only and mixed payment options for an item priced
in tokens. Stateless: balances are only read, never changed, and every
choice is re-validated when the pool is actually debited.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import List, Optional

from ..core.config import settings
from ..core.enums import PaymentMethod

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def to_cents(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PaymentOption:
    method: PaymentMethod
    tokens: int
    cash: Decimal
    can_afford: bool
    savings: Decimal

    def summary(self) -> str:
        if self.method == PaymentMethod.TOKENS:
            return f"{self.tokens:,} tokens"
        if self.method == PaymentMethod.CASH:
            return f"${self.cash:.2f}"
        return f"{self.tokens:,} tokens + ${self.cash:.2f}"

    def to_payload(self) -> dict[str, object]:
        return {
            "method": self.method.value,
            "tokens": self.tokens,
            "cash": str(self.cash),
            "can_afford": self.can_afford,
            "savings": str(self.savings),
            "summary": self.summary(),
        }


@dataclass(frozen=True)
class PaymentQuote:
    item_cost_tokens: int
    cash_price: Decimal
    available_tokens: int
    token_usd_rate: Decimal
    options: List[PaymentOption] = field(default_factory=list)

    def option(self, method: PaymentMethod) -> Optional[PaymentOption]:
        for candidate in self.options:
            if candidate.method == method:
                return candidate
        return None


class HybridPaymentCalculator:
    """Pure calculator over (cost, cash price, available tokens, rate)."""

    def __init__(self, token_usd_rate: Optional[Decimal] = None):
        self.token_usd_rate = Decimal(token_usd_rate or settings.token_usd_rate)

    def quote(
        self,
        item_cost_tokens: int,
        available_tokens: int,
        cash_price: Optional[Decimal] = None,
    ) -> PaymentQuote:
        """
        Build payment options.

        Tokens-only and cash-only are always listed; hybrid only when
        0 < available < cost, applying every available token.
        """
        if item_cost_tokens < 0:
            raise ValueError("item_cost_tokens must be non-negative")

        rate = self.token_usd_rate
        price = to_cents(cash_price if cash_price is not None else item_cost_tokens * rate)
        available = max(0, int(available_tokens))

        options = [
            PaymentOption(
                method=PaymentMethod.TOKENS,
                tokens=item_cost_tokens,
                cash=Decimal("0.00"),
                can_afford=available >= item_cost_tokens,
                savings=to_cents(item_cost_tokens * rate),
            ),
            PaymentOption(
                method=PaymentMethod.CASH,
                tokens=0,
                cash=price,
                can_afford=True,
                savings=Decimal("0.00"),
            ),
        ]
        if 0 < available < item_cost_tokens:
            applied_value = available * rate
            options.append(
                PaymentOption(
                    method=PaymentMethod.HYBRID,
                    tokens=available,
                    cash=to_cents(max(Decimal("0"), price - applied_value)),
                    can_afford=True,
                    savings=to_cents(applied_value),
                )
            )

        return PaymentQuote(
            item_cost_tokens=item_cost_tokens,
            cash_price=price,
            available_tokens=available,
            token_usd_rate=rate,
            options=options,
        )

    @staticmethod
    def get_best_option(quote: PaymentQuote) -> PaymentOption:
        """Affordable tokens-only first, then hybrid, then cash."""
        tokens_only = quote.option(PaymentMethod.TOKENS)
        if tokens_only is not None and tokens_only.can_afford:
            return tokens_only
        hybrid = quote.option(PaymentMethod.HYBRID)
        if hybrid is not None:
            return hybrid
        cash = quote.option(PaymentMethod.CASH)
        assert cash is not None
        return cash
