"""V1 club token pool endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_token_pool_ledger
from ...core.exceptions import DomainException
from ...models.token_pool import TokenPool
from ...schemas.tokens import TokenPoolResponse, TokenPurchaseRequest
from ...services.token_pool_ledger import TokenPoolLedger

logger = logging.getLogger(__name__)

# Mounted at /api/v1/clubs
router = APIRouter(tags=["token-pools"])


def _pool_response(pool: TokenPool, usage_breakdown=None) -> TokenPoolResponse:
    return TokenPoolResponse(
        id=pool.id,
        club_id=pool.club_id,
        month_year=pool.month_year,
        subscription_tier_id=pool.subscription_tier_id,
        allocated=pool.allocated,
        used=pool.used,
        purchased=pool.purchased,
        rollover_in=pool.rollover_in,
        refunded_in=pool.refunded_in,
        overdraft_used=pool.overdraft_used,
        overdraft_limit=pool.overdraft_limit,
        available=pool.available(),
        expires_at=pool.expires_at,
        usage_breakdown=usage_breakdown,
    )


@router.get("/{club_id}/token-pools/current", response_model=TokenPoolResponse)
def get_current_pool(
    club_id: str,
    include_usage: bool = Query(default=False),
    ledger: TokenPoolLedger = Depends(get_token_pool_ledger),
) -> TokenPoolResponse:
    """Current month's pool, opened on first access."""
    try:
        pool = ledger.get_token_pool(club_id)
        usage = ledger.get_usage_breakdown(club_id) if include_usage else None
    except DomainException as exc:
        raise exc.to_http_exception() from exc
    return _pool_response(pool, usage)


@router.get("/{club_id}/token-pools/{month_year}", response_model=TokenPoolResponse)
def get_pool_for_month(
    club_id: str,
    month_year: str,
    include_usage: bool = Query(default=False),
    ledger: TokenPoolLedger = Depends(get_token_pool_ledger),
) -> TokenPoolResponse:
    try:
        pool = ledger.get_token_pool(club_id, month_year)
        usage = ledger.get_usage_breakdown(club_id, month_year) if include_usage else None
    except DomainException as exc:
        raise exc.to_http_exception() from exc
    return _pool_response(pool, usage)


@router.post("/{club_id}/token-pools/purchase", response_model=TokenPoolResponse)
def purchase_tokens(
    club_id: str,
    payload: TokenPurchaseRequest,
    ledger: TokenPoolLedger = Depends(get_token_pool_ledger),
) -> TokenPoolResponse:
    """Top up the current month's pool with purchased tokens."""
    try:
        pool = ledger.purchase(club_id, payload.tokens, payload.reference)
    except DomainException as exc:
        raise exc.to_http_exception() from exc
    return _pool_response(pool)
