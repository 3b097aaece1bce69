# backend/courtbook/models/token_pool.py
"""
Monthly token pool shared by every member of a club.

Balance arithmetic lives here so the service layer and the API report the
same numbers. The guarded debit itself is a conditional UPDATE in
TokenPoolRepository; these methods only read.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.sql import func
import ulid

from ..database import Base


class TokenPool(Base):
    """One pool per (club, YYYY-MM). Pools of elapsed months are read-only."""

    __tablename__ = "token_pools"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    club_id = Column(String(26), ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False, index=True)
    month_year = Column(String(7), nullable=False)
    subscription_tier_id = Column(String(32), nullable=False)

    allocated = Column(Integer, nullable=False, default=0)
    used = Column(Integer, nullable=False, default=0)
    purchased = Column(Integer, nullable=False, default=0)
    rollover_in = Column(Integer, nullable=False, default=0)
    # Cancellation refunds for tokens that were debited from an earlier month
    refunded_in = Column(Integer, nullable=False, default=0)
    overdraft_used = Column(Integer, nullable=False, default=0)
    overdraft_limit = Column(Integer, nullable=False, default=0)

    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("club_id", "month_year", name="uq_token_pool_club_month"),
        CheckConstraint("used >= 0", name="check_pool_used_non_negative"),
        CheckConstraint("purchased >= 0", name="check_pool_purchased_non_negative"),
        CheckConstraint("rollover_in >= 0", name="check_pool_rollover_non_negative"),
        CheckConstraint("refunded_in >= 0", name="check_pool_refunded_non_negative"),
        CheckConstraint(
            "used <= allocated + rollover_in + purchased + refunded_in + overdraft_limit",
            name="check_pool_within_overdraft",
        ),
    )

    @property
    def total_credit(self) -> int:
        return (
            int(self.allocated or 0)
            + int(self.rollover_in or 0)
            + int(self.purchased or 0)
            + int(self.refunded_in or 0)
        )

    def available(self) -> int:
        """Balance; negative only down to -overdraft_limit."""
        return self.total_credit - int(self.used or 0)

    def spendable(self) -> int:
        """Tokens that can still be debited, overdraft included."""
        return self.available() + int(self.overdraft_limit or 0)

    def can_debit(self, tokens: int) -> bool:
        return self.available() - tokens >= -int(self.overdraft_limit or 0)

    def __repr__(self) -> str:
        return (
            f"<TokenPool {self.club_id} {self.month_year} "
            f"available={self.available()} overdraft={self.overdraft_used}/{self.overdraft_limit}>"
        )
