"""
Engine, session factory and declarative base for the booking store.

SQLite is used for development and tests and PostgreSQL in production.
Both go through create_db_engine so the same listeners and retry
classification apply.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, Generator, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker

from courtbook.core.config import settings

logger = logging.getLogger(__name__)


def _is_sqlite(db_url: str) -> bool:
    return db_url.startswith("sqlite")


def build_engine_kwargs(db_url: str) -> dict[str, Any]:
    """Engine options for the configured dialect."""
    if _is_sqlite(db_url):
        # One file shared by worker threads; busy timeout lets writers queue
        return {
            "connect_args": {
                "check_same_thread": False,
                "timeout": settings.sqlite_busy_timeout_seconds,
            },
            "future": True,
        }
    return {
        "future": True,
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": 5,
    }


def create_db_engine(db_url: str, *, echo: bool = False) -> Engine:
    db_engine = create_engine(db_url, echo=echo, **build_engine_kwargs(db_url))

    if _is_sqlite(db_url):
        # Claims and reservation rows rely on cascades and FK checks
        @event.listens_for(db_engine, "connect")
        def _enable_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    logger.debug("Database engine created", extra={"dialect": db_engine.dialect.name})
    return db_engine


engine: Engine = create_db_engine(settings.database_url, echo=settings.database_echo)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


T = TypeVar("T")
# Transient failures worth another attempt: pooled disconnects, lock
# timeouts and serialization failures.
_RETRYABLE_ERROR_SNIPPETS = (
    "server closed the connection",
    "ssl connection has been closed unexpectedly",
    "database is locked",
    "could not serialize access",
    "lock timeout",
    "deadlock detected",
)


def is_retryable_db_error(exc: OperationalError) -> bool:
    message = str(exc).lower()
    return any(snippet in message for snippet in _RETRYABLE_ERROR_SNIPPETS)


def _retry_delay(attempt: int) -> float:
    base = 0.1 * (2 ** (attempt - 1))
    return base + random.uniform(0, 0.05 * attempt)


def with_db_retry(op_name: str, func: Callable[[], T], *, max_attempts: int = 3) -> T:
    """
    Execute a DB operation with bounded retries for transient failures.

    The callable must be safe to re-run: it is expected to open and commit
    its own transaction.
    """

    attempt = 1
    while True:
        try:
            return func()
        except OperationalError as exc:
            if attempt >= max_attempts or not is_retryable_db_error(exc):
                raise

            delay = _retry_delay(attempt)
            logger.warning(
                "Transient DB failure detected, retrying",
                extra={
                    "event": "db_retry",
                    "op": op_name,
                    "attempt": attempt,
                    "delay": delay,
                    "error": str(exc),
                },
            )
            time.sleep(delay)
            attempt += 1


__all__ = [
    "Base",
    "SessionLocal",
    "create_db_engine",
    "engine",
    "get_db",
    "is_retryable_db_error",
    "with_db_retry",
]
