"""
Best-effort per-resource-date mutex backed by Redis.

The ResourceClaim unique constraint is the authoritative guard against
double booking, so the lock fails open when Redis is missing or errors:
it only narrows the window in which concurrent creates race to the
database.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
import logging
import threading
import time
from typing import Iterable, Iterator, Optional

from redis import Redis

from courtbook.core.config import settings
from courtbook.monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()


def _lock_key(resource_id: str, booking_date: date) -> str:
    return f"{settings.redis_namespace}:lock:resource:{resource_id}:{booking_date.isoformat()}"


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if not settings.redis_url:
        return None
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            client.ping()
        except Exception as exc:
            logger.warning("resource_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def acquire_resource_lock(resource_id: str, booking_date: date, ttl_s: int) -> bool:
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_resource_lock("acquire", "redis_unavailable")
        return True
    try:
        acquired = bool(
            client.set(_lock_key(resource_id, booking_date), str(time.time()), nx=True, ex=ttl_s)
        )
    except Exception as exc:
        prometheus_metrics.record_resource_lock("acquire", "error")
        logger.warning(
            "resource_lock_acquire_failed",
            extra={
                "resource_id": resource_id,
                "booking_date": booking_date.isoformat(),
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )
        return True
    prometheus_metrics.record_resource_lock("acquire", "success" if acquired else "blocked")
    return acquired


def release_resource_lock(resource_id: str, booking_date: date) -> None:
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_resource_lock("release", "redis_unavailable")
        return
    try:
        deleted = client.delete(_lock_key(resource_id, booking_date))
        prometheus_metrics.record_resource_lock("release", "success" if deleted else "not_found")
    except Exception as exc:
        prometheus_metrics.record_resource_lock("release", "error")
        logger.warning(
            "resource_lock_release_failed",
            extra={
                "resource_id": resource_id,
                "booking_date": booking_date.isoformat(),
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )


@contextmanager
def resource_locks(
    resource_ids: Iterable[str], booking_date: date, ttl_s: Optional[int] = None
) -> Iterator[bool]:
    """
    Hold the mutex for every resource on a date.

    Keys are taken in sorted order so two sessions sharing resources cannot
    deadlock. Yields False when another holder was seen; callers then fall
    back on the claims constraint alone.
    """
    ttl = ttl_s or settings.resource_lock_ttl_seconds
    held: list[str] = []
    all_acquired = True
    try:
        for resource_id in sorted(set(resource_ids)):
            if acquire_resource_lock(resource_id, booking_date, ttl):
                held.append(resource_id)
            else:
                all_acquired = False
        yield all_acquired
    finally:
        for resource_id in held:
            release_resource_lock(resource_id, booking_date)
