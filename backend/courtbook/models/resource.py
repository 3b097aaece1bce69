# backend/courtbook/models/resource.py
"""Bookable club resources: courts and coaches."""

from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import ResourceCategory
from ..database import Base


class Resource(Base):
    """
    A court or a coach.

    Rates are per hour; a reservation's price is hours times the sum of
    the rates of every resource it holds.
    """

    __tablename__ = "resources"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    club_id = Column(String(26), ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(20), nullable=False, default=ResourceCategory.COURT.value)
    name = Column(String(200), nullable=False)
    hourly_token_rate = Column(Integer, nullable=False, default=0)
    hourly_cash_rate = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    club = relationship("Club", back_populates="resources")

    __table_args__ = (
        CheckConstraint("category IN ('court', 'coach')", name="check_resource_category"),
        CheckConstraint("hourly_token_rate >= 0", name="check_token_rate_non_negative"),
        CheckConstraint("hourly_cash_rate >= 0", name="check_cash_rate_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Resource {self.id} {self.category}:{self.name!r}>"
