# backend/courtbook/services/token_pool_ledger.py
"""
Token Pool Ledger

Owns the monthly token pool of each club:
- Lazily opens the current month's pool, carrying forward unused balance
  from the previous month up to the tier's rollover cap
- Availability checks, debits, credits, cancellation refunds and
  purchased top-ups
- Usage reporting

Debits and credits only ever touch the current month's pool. Pools of
elapsed months are historical and read-only. Allocation and overdraft
limit are copied from the tier when a pool opens and never change after.
"""

from datetime import datetime
import logging
from typing import Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.exceptions import (
    InsufficientTokensException,
    NotFoundException,
    ValidationException,
)
from ..core.timezone_utils import club_now, get_club_timezone
from ..core.ulid_helper import generate_ulid
from ..events.publisher import EventPublisher
from ..events.token_events import TokensPurchased
from ..models.club import Club
from ..models.token_pool import TokenPool
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.club_repository import ClubRepository
from ..repositories.token_pool_repository import TokenPoolRepository
from .base import BaseService
from .subscription_tiers import StaticTierProvider, SubscriptionTierProvider

logger = logging.getLogger(__name__)


def month_key(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def previous_month_key(month_year: str) -> str:
    year, month = (int(part) for part in month_year.split("-"))
    if month == 1:
        return f"{year - 1:04d}-12"
    return f"{year:04d}-{month - 1:02d}"


def parse_month_key(month_year: str) -> tuple[int, int]:
    try:
        year_text, month_text = month_year.split("-")
        year, month = int(year_text), int(month_text)
    except ValueError:
        raise ValidationException(
            f"Invalid month {month_year!r}, expected YYYY-MM", code="INVALID_MONTH"
        )
    if len(year_text) != 4 or not 1 <= month <= 12:
        raise ValidationException(
            f"Invalid month {month_year!r}, expected YYYY-MM", code="INVALID_MONTH"
        )
    return year, month


class TokenPoolLedger(BaseService):
    """Service for per-club, per-month token pools."""

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        tier_provider: Optional[SubscriptionTierProvider] = None,
        repository: Optional[TokenPoolRepository] = None,
        club_repository: Optional[ClubRepository] = None,
        event_publisher: Optional[EventPublisher] = None,
    ):
        super().__init__(db, clock)
        self.tier_provider = tier_provider or StaticTierProvider()
        self.repository = repository or RepositoryFactory.create_token_pool_repository(db)
        self.club_repository = club_repository or RepositoryFactory.create_club_repository(db)
        self.event_publisher = event_publisher or EventPublisher(
            RepositoryFactory.create_event_outbox_repository(db)
        )

    # Month helpers

    def _get_club(self, club_id: str) -> Club:
        club = self.club_repository.get_by_id(club_id)
        if club is None:
            raise NotFoundException(f"Club {club_id} not found", code="CLUB_NOT_FOUND")
        return club

    def current_month(self, club: Club) -> str:
        """Month key as seen from the club's timezone."""
        return month_key(club_now(club, self.now()))

    def _month_expiry(self, club: Club, month_year: str) -> datetime:
        year, month = parse_month_key(month_year)
        next_year, next_month = (year + 1, 1) if month == 12 else (year, month + 1)
        tz = get_club_timezone(club)
        return tz.localize(datetime(next_year, next_month, 1))

    # Pool lifecycle

    @BaseService.measure_operation("ensure_pool")
    def ensure_pool(self, club_id: str) -> TokenPool:
        """
        Return the current month's pool, opening it if needed.

        Opening commits on its own so it can be called before a caller's
        unit of work. Two concurrent openers race on the unique
        (club, month) constraint; the loser re-reads the winner's row.
        """
        club = self._get_club(club_id)
        month_year = self.current_month(club)
        pool = self.repository.get_pool(club.id, month_year)
        if pool is not None:
            return pool

        tier = self.tier_provider.get_tier(club.subscription_tier_id)
        rollover = 0
        if tier.allows_rollover:
            previous = self.repository.get_pool(club.id, previous_month_key(month_year))
            if previous is not None:
                rollover = min(max(previous.available(), 0), tier.rollover_cap)

        try:
            with self.repository.transaction():
                pool = TokenPool(
                    club_id=club.id,
                    month_year=month_year,
                    subscription_tier_id=tier.tier_id,
                    allocated=tier.monthly_allocation,
                    rollover_in=rollover,
                    overdraft_limit=tier.overdraft_limit,
                    used=0,
                    purchased=0,
                    refunded_in=0,
                    overdraft_used=0,
                    expires_at=self._month_expiry(club, month_year),
                )
                self.db.add(pool)
                self.db.flush()
        except IntegrityError:
            existing = self.repository.get_pool(club.id, month_year)
            if existing is None:
                raise
            self.logger.info(
                "Token pool opened concurrently, using existing row",
                extra={"club_id": club.id, "month_year": month_year},
            )
            return existing

        self.log_operation(
            "open_token_pool",
            club_id=club.id,
            month_year=month_year,
            tier=tier.tier_id,
            allocated=tier.monthly_allocation,
            rollover_in=rollover,
        )
        return pool

    @BaseService.measure_operation("get_token_pool")
    def get_token_pool(self, club_id: str, month_year: Optional[str] = None) -> TokenPool:
        """
        Pool for a month; the current month is opened on demand.

        Raises:
            NotFoundException: for another month with no pool
        """
        club = self._get_club(club_id)
        current = self.current_month(club)
        if month_year is None or month_year == current:
            return self.ensure_pool(club.id)

        parse_month_key(month_year)
        pool = self.repository.get_pool(club.id, month_year)
        if pool is None:
            raise NotFoundException(
                f"No token pool for club {club_id} in {month_year}",
                code="TOKEN_POOL_NOT_FOUND",
                details={"club_id": club_id, "month_year": month_year},
            )
        return pool

    # Balance operations

    def check_availability(self, club_id: str, tokens: int) -> bool:
        """available - tokens >= -overdraft_limit on the current pool."""
        return self.ensure_pool(club_id).can_debit(tokens)

    def debit(self, club_id: str, tokens: int, *, use_transaction: bool = False) -> TokenPool:
        """
        Debit the current pool.

        Joins the caller's transaction unless use_transaction is set.

        Raises:
            InsufficientTokensException: if the overdraft limit would be breached
        """
        if tokens < 0:
            raise ValidationException("Token amount must be non-negative", code="INVALID_TOKENS")
        pool = self.ensure_pool(club_id)
        if tokens == 0:
            return pool

        def _apply() -> TokenPool:
            if not self.repository.try_debit(pool.id, tokens):
                self.repository.reload(pool)
                raise InsufficientTokensException(tokens, pool.available(), pool.overdraft_limit)
            return self.repository.reload(pool)

        if use_transaction:
            with self.transaction():
                updated = _apply()
        else:
            updated = _apply()

        prometheus_metrics.inc_token_movement("debit", tokens)
        self.logger.info(
            "Token pool debited",
            extra={
                "club_id": club_id,
                "token_pool_id": updated.id,
                "tokens": tokens,
                "available": updated.available(),
                "overdraft_used": updated.overdraft_used,
            },
        )
        return updated

    def credit(self, club_id: str, tokens: int, *, use_transaction: bool = False) -> TokenPool:
        """Return tokens to the current pool; used never drops below zero."""
        if tokens < 0:
            raise ValidationException("Token amount must be non-negative", code="INVALID_TOKENS")
        pool = self.ensure_pool(club_id)
        if tokens == 0:
            return pool

        if use_transaction:
            with self.transaction():
                self.repository.credit(pool.id, tokens)
        else:
            self.repository.credit(pool.id, tokens)

        updated = self.repository.reload(pool)
        prometheus_metrics.inc_token_movement("credit", tokens)
        self.logger.info(
            "Token pool credited",
            extra={"club_id": club_id, "token_pool_id": updated.id, "tokens": tokens},
        )
        return updated

    def refund(self, club_id: str, tokens: int, source_pool_id: Optional[str]) -> TokenPool:
        """
        Return cancelled reservation tokens to the current pool in full.

        When the tokens came out of the current pool its usage is reversed.
        A debit from an earlier month, whose pool is now read-only, is
        refunded as fresh credit on the current month instead. Joins the
        caller's transaction.
        """
        if tokens < 0:
            raise ValidationException("Token amount must be non-negative", code="INVALID_TOKENS")
        pool = self.ensure_pool(club_id)
        if tokens == 0:
            return pool

        from_this_pool = source_pool_id == pool.id
        self.repository.refund(pool.id, tokens, from_this_pool=from_this_pool)
        updated = self.repository.reload(pool)
        prometheus_metrics.inc_token_movement("refund", tokens)
        self.logger.info(
            "Token pool refunded",
            extra={
                "club_id": club_id,
                "token_pool_id": updated.id,
                "source_pool_id": source_pool_id,
                "tokens": tokens,
                "same_month": from_this_pool,
            },
        )
        return updated

    @BaseService.measure_operation("purchase_tokens")
    def purchase(self, club_id: str, tokens: int, reference: Optional[str] = None) -> TokenPool:
        """
        Add a purchased top-up to the current pool.

        A purchase reference already recorded for this pool is not applied
        twice.
        """
        if tokens <= 0:
            raise ValidationException("Purchased tokens must be positive", code="INVALID_TOKENS")
        pool = self.ensure_pool(club_id)

        event_key = f"TokensPurchased:{pool.id}:{reference or generate_ulid()}"
        if reference and self.event_publisher.outbox_repo.get_by_idempotency_key(event_key):
            self.logger.info(
                "Duplicate token purchase ignored",
                extra={"club_id": club_id, "reference": reference},
            )
            return pool

        with self.transaction():
            self.repository.add_purchased(pool.id, tokens)
            self.event_publisher.publish(
                TokensPurchased(
                    token_pool_id=pool.id,
                    club_id=club_id,
                    tokens=tokens,
                    purchased_at=self.now(),
                    reference=reference,
                ),
                idempotency_key=event_key,
            )

        updated = self.repository.reload(pool)
        prometheus_metrics.inc_token_movement("purchase", tokens)
        self.log_operation("purchase_tokens", club_id=club_id, tokens=tokens, reference=reference)
        return updated

    def get_usage_breakdown(self, club_id: str, month_year: Optional[str] = None) -> Dict[str, int]:
        pool = self.get_token_pool(club_id, month_year)
        return self.repository.usage_breakdown(pool)
