# backend/courtbook/services/redemption_policy_engine.py
"""
Redemption Policy Engine

Caps how much of a service's price may be paid in tokens, per service
category, and enforces optional weekday/hour restrictions. Executed
redemptions debit the club pool and append to the redemption ledger in
one transaction.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
import logging
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..constants.service_policies import SERVICE_POLICIES, ServicePolicy
from ..core.clock import Clock
from ..core.config import settings
from ..core.enums import ServiceCategory
from ..core.exceptions import (
    InsufficientTokensException,
    NotFoundException,
    RedemptionLimitExceededException,
    RepositoryException,
    TimeRestrictedException,
    UnknownServiceException,
    ValidationException,
)
from ..core.timezone_utils import club_now
from ..events.publisher import EventPublisher
from ..events.token_events import RedemptionExecuted
from ..models.redemption import Redemption
from ..repositories import RepositoryFactory
from ..repositories.club_repository import ClubRepository
from ..repositories.redemption_repository import RedemptionRepository
from .base import BaseService
from .token_pool_ledger import TokenPoolLedger

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


@dataclass(frozen=True)
class RedemptionCalculation:
    category: ServiceCategory
    total_value: Decimal
    max_tokens_allowed: int
    tokens_to_use: int
    token_value: Decimal
    cash_amount: Decimal
    redemption_percentage: Decimal
    savings: Decimal

    def to_payload(self) -> dict[str, object]:
        return {
            "category": self.category.value,
            "total_value": str(self.total_value),
            "max_tokens_allowed": self.max_tokens_allowed,
            "tokens_to_use": self.tokens_to_use,
            "token_value": str(self.token_value),
            "cash_amount": str(self.cash_amount),
            "redemption_percentage": str(self.redemption_percentage),
            "savings": str(self.savings),
        }


class RedemptionPolicyEngine(BaseService):
    """Service applying per-category redemption limits."""

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        token_ledger: Optional[TokenPoolLedger] = None,
        repository: Optional[RedemptionRepository] = None,
        club_repository: Optional[ClubRepository] = None,
        event_publisher: Optional[EventPublisher] = None,
        policies: Optional[Dict[ServiceCategory, ServicePolicy]] = None,
        token_usd_rate: Optional[Decimal] = None,
    ):
        super().__init__(db, clock)
        self.repository = repository or RepositoryFactory.create_redemption_repository(db)
        self.club_repository = club_repository or RepositoryFactory.create_club_repository(db)
        self.event_publisher = event_publisher or EventPublisher(
            RepositoryFactory.create_event_outbox_repository(db)
        )
        self.token_ledger = token_ledger or TokenPoolLedger(
            db, clock=self.clock, event_publisher=self.event_publisher
        )
        self.policies = policies if policies is not None else SERVICE_POLICIES
        self.token_usd_rate = Decimal(token_usd_rate or settings.token_usd_rate)

    # Policies

    def get_service_policy(self, category: str) -> ServicePolicy:
        try:
            key = ServiceCategory(category)
        except ValueError:
            raise UnknownServiceException(str(category))
        policy = self.policies.get(key)
        if policy is None:
            raise UnknownServiceException(key.value)
        return policy

    def list_service_policies(self) -> List[ServicePolicy]:
        return list(self.policies.values())

    # Calculation

    def calculate(
        self,
        category: str,
        total_value: Decimal,
        requested_tokens: Optional[int] = None,
    ) -> RedemptionCalculation:
        """
        Split a price into tokens and cash under the category cap.

        Requested tokens above the cap are clipped, never rejected, here;
        validate() is the strict check.
        """
        policy = self.get_service_policy(category)
        total = Decimal(total_value)
        if total <= 0:
            raise ValidationException("Service value must be positive", code="INVALID_VALUE")
        if requested_tokens is not None and requested_tokens < 0:
            raise ValidationException("Requested tokens must be non-negative", code="INVALID_TOKENS")

        rate = self.token_usd_rate
        max_value = total * Decimal(policy.max_redemption_percentage) / Decimal(100)
        max_tokens = int((max_value / rate).to_integral_value(rounding=ROUND_DOWN))
        tokens = max_tokens if requested_tokens is None else min(requested_tokens, max_tokens)

        token_value = (Decimal(tokens) * rate).quantize(CENTS, rounding=ROUND_HALF_UP)
        cash = (total - token_value).quantize(CENTS, rounding=ROUND_HALF_UP)
        percentage = (token_value / total * Decimal(100)).quantize(CENTS, rounding=ROUND_HALF_UP)

        return RedemptionCalculation(
            category=policy.category,
            total_value=total.quantize(CENTS, rounding=ROUND_HALF_UP),
            max_tokens_allowed=max_tokens,
            tokens_to_use=tokens,
            token_value=token_value,
            cash_amount=cash,
            redemption_percentage=percentage,
            savings=token_value,
        )

    def _check_time_restriction(
        self, policy: ServicePolicy, club_id: str, scheduled_at: datetime
    ) -> None:
        club = self.club_repository.get_by_id(club_id)
        if club is None:
            raise NotFoundException(f"Club {club_id} not found", code="CLUB_NOT_FOUND")
        local = club_now(club, scheduled_at)

        if policy.allowed_weekdays is not None and local.weekday() not in policy.allowed_weekdays:
            raise TimeRestrictedException(
                policy.category.value, f"not redeemable on {WEEKDAY_NAMES[local.weekday()]}"
            )
        if policy.allowed_hours is not None:
            start_hour, end_hour = policy.allowed_hours
            if local.hour < start_hour or local.hour >= end_hour:
                raise TimeRestrictedException(
                    policy.category.value,
                    f"only redeemable between {start_hour:02d}:00 and {end_hour:02d}:00",
                )

    def validate(
        self,
        club_id: str,
        category: str,
        total_value: Decimal,
        tokens: int,
        scheduled_at: Optional[datetime] = None,
    ) -> RedemptionCalculation:
        """
        Strictly validate a requested redemption.

        Checks run in a fixed order: unknown category, pool balance, the
        category's percentage cap, then day/hour restrictions.
        """
        policy = self.get_service_policy(category)
        if tokens <= 0:
            raise ValidationException("Tokens to redeem must be positive", code="INVALID_TOKENS")

        if not self.token_ledger.check_availability(club_id, tokens):
            pool = self.token_ledger.ensure_pool(club_id)
            raise InsufficientTokensException(tokens, pool.available(), pool.overdraft_limit)

        total = Decimal(total_value)
        if total <= 0:
            raise ValidationException("Service value must be positive", code="INVALID_VALUE")
        requested_pct = Decimal(tokens) * self.token_usd_rate / total * Decimal(100)
        if requested_pct > Decimal(policy.max_redemption_percentage):
            raise RedemptionLimitExceededException(
                policy.category.value, float(requested_pct), policy.max_redemption_percentage
            )

        if scheduled_at is not None:
            self._check_time_restriction(policy, club_id, scheduled_at)

        return self.calculate(category, total, tokens)

    # Execution

    @BaseService.measure_operation("execute_redemption")
    def execute(
        self,
        club_id: str,
        player_id: str,
        category: str,
        total_value: Decimal,
        tokens: int,
        scheduled_at: Optional[datetime] = None,
        idempotency_key: Optional[str] = None,
        reservation_id: Optional[str] = None,
    ) -> Redemption:
        """
        Re-validate, debit the pool and append the redemption atomically.

        A repeated idempotency key returns the recorded redemption without
        debiting again.
        """
        if idempotency_key:
            existing = self.repository.get_by_idempotency_key(idempotency_key)
            if existing is not None:
                return existing

        calculation = self.validate(club_id, category, total_value, tokens, scheduled_at)

        def _attempt() -> Redemption:
            with self.repository.transaction():
                pool = self.token_ledger.debit(club_id, calculation.tokens_to_use)
                redemption = self.repository.create(
                    club_id=club_id,
                    token_pool_id=pool.id,
                    player_id=player_id,
                    service_category=calculation.category.value,
                    reservation_id=reservation_id,
                    total_value=calculation.total_value,
                    tokens_used=calculation.tokens_to_use,
                    token_value=calculation.token_value,
                    cash_paid=calculation.cash_amount,
                    redemption_percentage=calculation.redemption_percentage,
                    scheduled_at=scheduled_at,
                    idempotency_key=idempotency_key,
                )
                self.event_publisher.publish(
                    RedemptionExecuted(
                        redemption_id=redemption.id,
                        club_id=club_id,
                        player_id=player_id,
                        service_category=calculation.category.value,
                        tokens_used=calculation.tokens_to_use,
                        cash_paid=str(calculation.cash_amount),
                        executed_at=self.now(),
                    )
                )
            return redemption

        try:
            redemption = self.run_with_retry("execute_redemption", _attempt)
        except (IntegrityError, RepositoryException):
            if idempotency_key:
                existing = self.repository.get_by_idempotency_key(idempotency_key)
                if existing is not None:
                    return existing
            raise

        self.log_operation(
            "execute_redemption",
            club_id=club_id,
            player_id=player_id,
            category=calculation.category.value,
            tokens=calculation.tokens_to_use,
            cash_paid=str(calculation.cash_amount),
        )
        return redemption
