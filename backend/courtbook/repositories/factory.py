# backend/courtbook/repositories/factory.py
"""
Repository Factory for the club booking core.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .club_repository import ClubRepository
    from .conflict_repository import ConflictRepository
    from .event_outbox_repository import EventOutboxRepository
    from .redemption_repository import RedemptionRepository
    from .reservation_repository import ReservationRepository
    from .token_pool_repository import TokenPoolRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_club_repository(db: Session) -> "ClubRepository":
        """Create repository for club, hours and resource lookups."""
        from .club_repository import ClubRepository

        return ClubRepository(db)

    @staticmethod
    def create_conflict_repository(db: Session) -> "ConflictRepository":
        """Create repository for conflict checking reads."""
        from .conflict_repository import ConflictRepository

        return ConflictRepository(db)

    @staticmethod
    def create_reservation_repository(db: Session) -> "ReservationRepository":
        """Create repository for reservations and their claims."""
        from .reservation_repository import ReservationRepository

        return ReservationRepository(db)

    @staticmethod
    def create_token_pool_repository(db: Session) -> "TokenPoolRepository":
        """Create repository for monthly token pools."""
        from .token_pool_repository import TokenPoolRepository

        return TokenPoolRepository(db)

    @staticmethod
    def create_redemption_repository(db: Session) -> "RedemptionRepository":
        """Create repository for the redemption ledger."""
        from .redemption_repository import RedemptionRepository

        return RedemptionRepository(db)

    @staticmethod
    def create_event_outbox_repository(db: Session) -> "EventOutboxRepository":
        """Create repository for outbox events."""
        from .event_outbox_repository import EventOutboxRepository

        return EventOutboxRepository(db)
