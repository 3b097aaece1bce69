# backend/courtbook/models/club.py
"""
Club and operating-hours models.

A club owns its resources, its weekly operating windows and one token
pool per month. A weekday with no OperatingWindow row is a closed day.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base


class Club(Base):
    """A club whose members book courts and coaches."""

    __tablename__ = "clubs"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    name = Column(String(200), nullable=False)
    timezone = Column(String(64), nullable=False, default="UTC")
    subscription_tier_id = Column(String(32), nullable=False, default="community")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    operating_windows = relationship(
        "OperatingWindow",
        back_populates="club",
        cascade="all, delete-orphan",
        order_by="OperatingWindow.weekday",
    )
    resources = relationship("Resource", back_populates="club", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Club {self.id} {self.name!r} tier={self.subscription_tier_id}>"


class OperatingWindow(Base):
    """Open/close wall times for one weekday (0=Monday .. 6=Sunday)."""

    __tablename__ = "operating_windows"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    club_id = Column(String(26), ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False)
    weekday = Column(Integer, nullable=False)
    open_time = Column(Time, nullable=False)
    close_time = Column(Time, nullable=False)

    club = relationship("Club", back_populates="operating_windows")

    __table_args__ = (
        UniqueConstraint("club_id", "weekday", name="uq_operating_window_club_weekday"),
        CheckConstraint("weekday >= 0 AND weekday <= 6", name="check_weekday_range"),
        CheckConstraint("open_time < close_time", name="check_window_order"),
    )

    def __repr__(self) -> str:
        return f"<OperatingWindow club={self.club_id} day={self.weekday} {self.open_time}-{self.close_time}>"
