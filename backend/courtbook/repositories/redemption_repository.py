# backend/courtbook/repositories/redemption_repository.py
"""Append-only access to the redemption ledger."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models.redemption import Redemption
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class RedemptionRepository(BaseRepository[Redemption]):
    """Redemptions are inserted, never updated or deleted."""

    def __init__(self, db: Session):
        super().__init__(db, Redemption)

    def get_by_idempotency_key(self, key: str) -> Optional[Redemption]:
        return self.find_one_by(idempotency_key=key)

    def update(self, id: str, **kwargs) -> Optional[Redemption]:
        raise NotImplementedError("Redemptions are immutable")
