"""V1 service redemption endpoints."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, status

from ...api.dependencies import get_redemption_engine
from ...core.exceptions import DomainException
from ...schemas.tokens import (
    RedemptionCalculateRequest,
    RedemptionCalculationResponse,
    RedemptionRequest,
    RedemptionResponse,
    ServicePolicyResponse,
)
from ...services.redemption_policy_engine import RedemptionPolicyEngine

logger = logging.getLogger(__name__)

# Mounted at /api/v1/redemptions
router = APIRouter(tags=["redemptions"])

# Mounted at /api/v1/clubs
club_router = APIRouter(tags=["redemptions"])


@router.get("/policies", response_model=List[ServicePolicyResponse])
def list_policies(
    engine: RedemptionPolicyEngine = Depends(get_redemption_engine),
) -> List[ServicePolicyResponse]:
    return [ServicePolicyResponse(**p.to_payload()) for p in engine.list_service_policies()]


@router.post("/calculate", response_model=RedemptionCalculationResponse)
def calculate_redemption(
    payload: RedemptionCalculateRequest,
    engine: RedemptionPolicyEngine = Depends(get_redemption_engine),
) -> RedemptionCalculationResponse:
    """Preview the token/cash split for a service price. Never rejects on the cap."""
    try:
        calculation = engine.calculate(
            payload.category, payload.total_value, payload.requested_tokens
        )
    except DomainException as exc:
        raise exc.to_http_exception() from exc
    return RedemptionCalculationResponse(**calculation.to_payload())


@club_router.post(
    "/{club_id}/redemptions",
    response_model=RedemptionResponse,
    status_code=status.HTTP_201_CREATED,
)
def execute_redemption(
    club_id: str,
    payload: RedemptionRequest,
    engine: RedemptionPolicyEngine = Depends(get_redemption_engine),
) -> RedemptionResponse:
    try:
        redemption = engine.execute(
            club_id,
            payload.player_id,
            payload.category,
            payload.total_value,
            payload.tokens,
            scheduled_at=payload.scheduled_at,
            idempotency_key=payload.idempotency_key,
            reservation_id=payload.reservation_id,
        )
    except DomainException as exc:
        logger.info(
            "Redemption rejected",
            extra={"club_id": club_id, "category": str(payload.category), "code": exc.code},
        )
        raise exc.to_http_exception() from exc
    return RedemptionResponse.model_validate(redemption)
