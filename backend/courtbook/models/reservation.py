# backend/courtbook/models/reservation.py
"""
Reservation models.

A Reservation holds one or more resources for a half-open window
[start_time, end_time) on a club-local date. Double booking is prevented
at the storage level by ResourceClaim: every active reservation inserts
one claim per booking unit per resource, and a unique constraint on
(resource_id, booking_date, unit_start) rejects any second claim. Claims
are deleted when a reservation is cancelled.
"""

from datetime import time
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import PaymentMethod, ReservationKind, ReservationStatus
from ..database import Base


class Reservation(Base):
    """
    A court booking or a multi-resource session.

    Lifecycle: pending -> confirmed -> cancelled. Once the start time has
    passed without cancellation the row is never changed again.
    """

    __tablename__ = "reservations"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    club_id = Column(String(26), ForeignKey("clubs.id"), nullable=False, index=True)
    owner_id = Column(String(64), nullable=False, index=True)
    kind = Column(String(20), nullable=False, default=ReservationKind.COURT_BOOKING.value)

    booking_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False)

    status = Column(String(20), nullable=False, default=ReservationStatus.PENDING.value, index=True)

    # Payment split agreed at creation, charged at confirmation
    payment_method = Column(String(20), nullable=False, default=PaymentMethod.TOKENS.value)
    total_cost_tokens = Column(Integer, nullable=False, default=0)
    total_cost_cash = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    tokens_used = Column(Integer, nullable=False, default=0)
    cash_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    token_pool_id = Column(String(26), ForeignKey("token_pools.id"), nullable=True)

    # Refund applied at cancellation
    refund_tokens = Column(Integer, nullable=True)
    refund_cash = Column(Numeric(10, 2), nullable=True)
    refund_percentage = Column(Integer, nullable=True)
    refund_pool_id = Column(String(26), ForeignKey("token_pools.id"), nullable=True)

    idempotency_key = Column(String(255), nullable=True, unique=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String(64), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    resource_links = relationship(
        "ReservationResource",
        back_populates="reservation",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    claims = relationship("ResourceClaim", back_populates="reservation", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="check_reservation_duration_positive"),
        CheckConstraint("start_time < end_time", name="check_reservation_time_order"),
        CheckConstraint("tokens_used >= 0", name="check_reservation_tokens_non_negative"),
        CheckConstraint("cash_amount >= 0", name="check_reservation_cash_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled')",
            name="check_reservation_status",
        ),
        Index("ix_reservations_club_date", "club_id", "booking_date"),
    )

    @property
    def resource_ids(self) -> list[str]:
        return [link.resource_id for link in self.resource_links]

    def __repr__(self) -> str:
        return (
            f"<Reservation {self.id} {self.booking_date} "
            f"{self.start_time}-{self.end_time} {self.status}>"
        )


class ReservationResource(Base):
    """Association between a reservation and each resource it holds."""

    __tablename__ = "reservation_resources"

    reservation_id = Column(
        String(26), ForeignKey("reservations.id", ondelete="CASCADE"), primary_key=True
    )
    resource_id = Column(String(26), ForeignKey("resources.id"), primary_key=True)
    resource_category = Column(String(20), nullable=False)

    reservation = relationship("Reservation", back_populates="resource_links")
    resource = relationship("Resource")


class ResourceClaim(Base):
    """
    One occupied booking unit of one resource.

    The unique constraint is the conditional write that makes concurrent
    creates for overlapping windows mutually exclusive.
    """

    __tablename__ = "resource_claims"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    resource_id = Column(String(26), ForeignKey("resources.id"), nullable=False)
    booking_date = Column(Date, nullable=False)
    unit_start = Column(Integer, nullable=False)  # minutes since midnight
    reservation_id = Column(
        String(26), ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False, index=True
    )

    reservation = relationship("Reservation", back_populates="claims")

    __table_args__ = (
        UniqueConstraint(
            "resource_id", "booking_date", "unit_start", name="uq_resource_claim_unit"
        ),
    )


def minutes_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def time_from_minutes(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def claim_units(start: time, end: time, unit_minutes: int) -> list[int]:
    """Unit start minutes covered by [start, end)."""
    return list(range(minutes_of_day(start), minutes_of_day(end), unit_minutes))


__all__ = [
    "Reservation",
    "ReservationResource",
    "ResourceClaim",
    "claim_units",
    "minutes_of_day",
    "time_from_minutes",
]
