# backend/courtbook/repositories/token_pool_repository.py
"""
Token Pool Repository

Every balance change is a single conditional UPDATE evaluated by the
database, so concurrent debits against one pool serialize on the row and
cannot lose updates or overspend. SET expressions read the pre-update
row values.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import case, func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import ReservationKind, ReservationStatus, UsageSource
from ..models.redemption import Redemption
from ..models.reservation import Reservation
from ..models.token_pool import TokenPool
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

_TOTAL_CREDIT = (
    TokenPool.allocated + TokenPool.rollover_in + TokenPool.purchased + TokenPool.refunded_in
)


def _overdraft_for(used_expr: Any, credit_expr: Any) -> Any:
    return case((used_expr > credit_expr, used_expr - credit_expr), else_=0)


class TokenPoolRepository(BaseRepository[TokenPool]):
    """Pool rows keyed by (club_id, month_year)."""

    def __init__(self, db: Session):
        super().__init__(db, TokenPool)

    def get_pool(self, club_id: str, month_year: str) -> Optional[TokenPool]:
        return self.find_one_by(club_id=club_id, month_year=month_year)

    def reload(self, pool: TokenPool) -> TokenPool:
        """Re-read a pool after a bulk UPDATE bypassed the identity map."""
        self.db.refresh(pool)
        return pool

    def _execute_guarded(self, action: str, stmt: Any) -> bool:
        try:
            result = self.db.execute(stmt.execution_options(synchronize_session=False))
        except SQLAlchemyError as e:
            self._raise_repository_error(action, e)
        return bool(result.rowcount)

    def try_debit(self, pool_id: str, tokens: int) -> bool:
        """
        Increment used unless it would breach the overdraft limit.

        Returns False when the guard rejected the debit.
        """
        new_used = TokenPool.used + tokens
        stmt = (
            update(TokenPool)
            .where(
                TokenPool.id == pool_id,
                _TOTAL_CREDIT - new_used >= -TokenPool.overdraft_limit,
            )
            .values(used=new_used, overdraft_used=_overdraft_for(new_used, _TOTAL_CREDIT))
        )
        return self._execute_guarded("debiting", stmt)

    def credit(self, pool_id: str, tokens: int) -> bool:
        """Decrement used, floored at zero; overdraft is repaid first."""
        new_used = case((TokenPool.used - tokens > 0, TokenPool.used - tokens), else_=0)
        stmt = (
            update(TokenPool)
            .where(TokenPool.id == pool_id)
            .values(used=new_used, overdraft_used=_overdraft_for(new_used, _TOTAL_CREDIT))
        )
        return self._execute_guarded("crediting", stmt)

    def refund(self, pool_id: str, tokens: int, *, from_this_pool: bool) -> bool:
        """
        Give cancelled tokens back without flooring any of them away.

        Tokens debited from this pool first reduce used; whatever used cannot
        absorb, and every refund for an earlier month's debit, is added to
        refunded_in.
        """
        if from_this_pool:
            new_used = case((TokenPool.used > tokens, TokenPool.used - tokens), else_=0)
            carried = case((TokenPool.used < tokens, tokens - TokenPool.used), else_=0)
        else:
            new_used = TokenPool.used
            carried = tokens
        stmt = (
            update(TokenPool)
            .where(TokenPool.id == pool_id)
            .values(
                used=new_used,
                refunded_in=TokenPool.refunded_in + carried,
                overdraft_used=_overdraft_for(new_used, _TOTAL_CREDIT + carried),
            )
        )
        return self._execute_guarded("refunding to", stmt)

    def add_purchased(self, pool_id: str, tokens: int) -> bool:
        new_credit = _TOTAL_CREDIT + tokens
        stmt = (
            update(TokenPool)
            .where(TokenPool.id == pool_id)
            .values(
                purchased=TokenPool.purchased + tokens,
                overdraft_used=_overdraft_for(TokenPool.used, new_credit),
            )
        )
        return self._execute_guarded("purchasing for", stmt)

    def usage_breakdown(self, pool: TokenPool) -> Dict[str, int]:
        """
        Tokens consumed from a pool per source.

        Reservation usage is net of refunds paid back into the same pool;
        whatever cannot be attributed lands in the "other" bucket.
        """
        try:
            refunded_here = case(
                (
                    Reservation.refund_pool_id == Reservation.token_pool_id,
                    func.coalesce(Reservation.refund_tokens, 0),
                ),
                else_=0,
            )
            net_tokens = Reservation.tokens_used - refunded_here
            rows = (
                self.db.query(Reservation.kind, func.coalesce(func.sum(net_tokens), 0))
                .filter(
                    Reservation.token_pool_id == pool.id,
                    Reservation.status != ReservationStatus.PENDING.value,
                )
                .group_by(Reservation.kind)
                .all()
            )
            redeemed = (
                self.db.query(func.coalesce(func.sum(Redemption.tokens_used), 0))
                .filter(Redemption.token_pool_id == pool.id)
                .scalar()
            )
        except SQLAlchemyError as e:
            self._raise_repository_error("summarizing usage for", e)

        by_kind = {kind: int(total or 0) for kind, total in rows}
        breakdown = {
            UsageSource.COURT_BOOKINGS.value: by_kind.get(ReservationKind.COURT_BOOKING.value, 0),
            UsageSource.COACHING_SESSIONS.value: by_kind.get(ReservationKind.SESSION.value, 0),
            UsageSource.SERVICE_REDEMPTIONS.value: int(redeemed or 0),
        }
        attributed = sum(breakdown.values())
        breakdown[UsageSource.OTHER.value] = max(0, int(pool.used or 0) - attributed)
        return breakdown
