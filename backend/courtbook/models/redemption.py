# backend/courtbook/models/redemption.py
"""Append-only ledger of token-for-service exchanges."""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.sql import func
import ulid

from ..database import Base


class Redemption(Base):
    """
    Immutable record written in the same transaction as the pool debit.

    Rows are never updated or deleted.
    """

    __tablename__ = "redemptions"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    club_id = Column(String(26), ForeignKey("clubs.id"), nullable=False, index=True)
    token_pool_id = Column(String(26), ForeignKey("token_pools.id"), nullable=False, index=True)
    player_id = Column(String(64), nullable=False, index=True)
    service_category = Column(String(40), nullable=False)
    reservation_id = Column(String(26), ForeignKey("reservations.id"), nullable=True)

    total_value = Column(Numeric(10, 2), nullable=False)
    tokens_used = Column(Integer, nullable=False)
    token_value = Column(Numeric(10, 2), nullable=False)
    cash_paid = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    redemption_percentage = Column(Numeric(5, 2), nullable=False)

    scheduled_at = Column(DateTime(timezone=True), nullable=True)
    idempotency_key = Column(String(255), nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("tokens_used > 0", name="check_redemption_tokens_positive"),
        CheckConstraint("cash_paid >= 0", name="check_redemption_cash_non_negative"),
    )
