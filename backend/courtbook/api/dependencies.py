# backend/courtbook/api/dependencies.py
"""
Service layer dependencies for dependency injection.

Factory functions that create service instances with their required
dependencies. Tests override get_db and get_clock.
"""

from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from ..core.clock import Clock, system_clock
from ..database import get_db as original_get_db
from ..services.booking_ledger import BookingLedger
from ..services.redemption_policy_engine import RedemptionPolicyEngine
from ..services.session_scheduler import SessionScheduler
from ..services.token_pool_ledger import TokenPoolLedger


def get_db() -> Generator[Session, None, None]:
    """
    Get database session dependency.

    Yields:
        Database session that will be closed after use
    """
    yield from original_get_db()


def get_clock() -> Clock:
    return system_clock


def get_booking_ledger(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> BookingLedger:
    """Provide booking ledger instance for dependency injection."""
    return BookingLedger(db, clock=clock)


def get_session_scheduler(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> SessionScheduler:
    """Provide session scheduler instance for dependency injection."""
    return SessionScheduler(db, clock=clock)


def get_token_pool_ledger(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> TokenPoolLedger:
    """Provide token pool ledger instance for dependency injection."""
    return TokenPoolLedger(db, clock=clock)


def get_redemption_engine(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> RedemptionPolicyEngine:
    """Provide redemption policy engine instance for dependency injection."""
    return RedemptionPolicyEngine(db, clock=clock)
