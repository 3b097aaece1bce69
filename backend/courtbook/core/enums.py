# backend/courtbook/core/enums.py
"""
Core enums for the club booking core.

Statuses and categories are stored as their string values so rows stay
readable and portable across SQLite and PostgreSQL.
"""

from enum import Enum


class ResourceCategory(str, Enum):
    """Kinds of bookable club resources."""

    COURT = "court"
    COACH = "coach"


class ReservationKind(str, Enum):
    """Which booking path created a reservation."""

    COURT_BOOKING = "court_booking"
    SESSION = "session"


class ReservationStatus(str, Enum):
    """Reservation lifecycle statuses."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    @classmethod
    def active(cls) -> tuple["ReservationStatus", ...]:
        """Statuses that occupy a resource window."""
        return (cls.PENDING, cls.CONFIRMED)


class PaymentMethod(str, Enum):
    """How a reservation or redemption is paid."""

    TOKENS = "tokens"
    CASH = "cash"
    HYBRID = "hybrid"


class ServiceCategory(str, Enum):
    """Service categories that accept token redemption."""

    COURT_BOOKING = "court_booking"
    COACHING_LESSON = "coaching_lesson"
    GROUP_CLINIC = "group_clinic"
    EQUIPMENT_RENTAL = "equipment_rental"
    CLUB_MERCHANDISE = "club_merchandise"


class UsageSource(str, Enum):
    """Buckets for token pool usage breakdowns."""

    COURT_BOOKINGS = "court_bookings"
    COACHING_SESSIONS = "coaching_sessions"
    SERVICE_REDEMPTIONS = "service_redemptions"
    OTHER = "other"
