"""
Prometheus metrics for the club booking core.

Service timings come from the @measure_operation decorator; domain
counters are recorded by the services that own the events.
"""

from threading import Lock
from time import monotonic
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry to avoid conflicts with default process metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "courtbook_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "courtbook_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "courtbook_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

resource_lock_total = Counter(
    "courtbook_resource_lock_total",
    "Resource mutex outcomes",
    ["action", "outcome"],  # acquire|release, success|blocked|error|redis_unavailable
    registry=REGISTRY,
)

booking_conflicts_total = Counter(
    "courtbook_booking_conflicts_total",
    "Reservation attempts rejected for overlapping an active reservation",
    ["source"],  # precheck | constraint
    registry=REGISTRY,
)

token_pool_movements_total = Counter(
    "courtbook_token_pool_movements_total",
    "Tokens moved through club pools",
    ["movement"],  # debit | credit | refund | purchase
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    _cache_lock: Lock = Lock()
    _cache_payload: Optional[bytes] = None
    _cache_ts: Optional[float] = None
    _cache_ttl_seconds: float = 1.0

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingLedger')
            operation: Operation/method name (e.g., 'create_booking')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()

        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_resource_lock(action: str, outcome: str) -> None:
        resource_lock_total.labels(action=action, outcome=outcome).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def inc_booking_conflict(source: str) -> None:
        booking_conflicts_total.labels(source=source).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def inc_token_movement(movement: str, tokens: int) -> None:
        if tokens > 0:
            token_pool_movements_total.labels(movement=movement).inc(tokens)
            PrometheusMetrics._invalidate_cache()

    @staticmethod
    def get_metrics() -> bytes:
        """
        Generate Prometheus metrics in exposition format.

        Returns:
            Metrics data in Prometheus text format
        """
        now = monotonic()
        payload = PrometheusMetrics._cache_payload
        ts = PrometheusMetrics._cache_ts

        if payload is not None and ts is not None and (now - ts) <= PrometheusMetrics._cache_ttl_seconds:
            return payload

        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_payload = cast(bytes, generate_latest(REGISTRY))
            PrometheusMetrics._cache_ts = monotonic()
            return PrometheusMetrics._cache_payload

    @staticmethod
    def get_content_type() -> str:
        """Get the content type for Prometheus metrics."""
        return cast(str, CONTENT_TYPE_LATEST)

    @staticmethod
    def _invalidate_cache() -> None:
        """Invalidate cached metrics so next scrape refreshes."""
        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_ts = None
            PrometheusMetrics._cache_payload = None


# Singleton instance
prometheus_metrics = PrometheusMetrics()
