"""Liveness and metrics endpoints."""

from fastapi import APIRouter, Response

from ...core.config import settings
from ...monitoring.prometheus_metrics import prometheus_metrics

router = APIRouter(tags=["monitoring"])


@router.get("/health")
def health_check() -> dict:
    return {"status": "healthy", "service": "courtbook", "environment": settings.environment}


@router.get("/metrics")
def metrics() -> Response:
    """Prometheus exposition of the service counters and histograms."""
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
