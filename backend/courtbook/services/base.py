# backend/courtbook/services/base.py
"""
Base service for the club booking core.

Services share one session per request, an injectable clock, commit
handling, bounded retries for transient store failures and Prometheus
timings through @measure_operation.
"""

from contextlib import contextmanager
from datetime import datetime
from functools import wraps
import logging
import time
from typing import Any, Callable, Optional, TypeVar, cast

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.clock import Clock, system_clock
from ..core.config import settings
from ..core.exceptions import ServiceException, UnavailableException
from ..database import is_retryable_db_error, with_db_retry
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")

SLOW_OPERATION_SECONDS = 1.0


class BaseService:
    """Holds the session, clock and logger every domain service needs."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        """
        Initialize base service.

        Args:
            db: Database session
            clock: Time source; defaults to the system clock
        """
        self.db = db
        self.clock = clock or system_clock
        self.logger = logging.getLogger(self.__class__.__name__)

    def now(self) -> datetime:
        return self.clock.now()

    @contextmanager
    def transaction(self):
        """
        Context manager for database transactions.

        Usage:
            with self.transaction():
                self.db.add(entity)
                # commit is handled automatically
        """
        try:
            yield self.db
            self.db.commit()
            self.logger.debug("Transaction committed successfully")
        except SQLAlchemyError as e:
            self.logger.error(f"Transaction failed: {str(e)}")
            self.db.rollback()
            raise ServiceException(f"Database operation failed: {str(e)}")
        except Exception as e:
            self.logger.error(f"Unexpected error in transaction: {str(e)}")
            self.db.rollback()
            raise

    def run_with_retry(self, op_name: str, func: Callable[[], T]) -> T:
        """
        Run a self-contained unit of work, retrying transient store failures.

        func must open and commit its own transaction with a raw-raising
        context (BaseRepository.transaction). Once retries are exhausted the
        failure surfaces as UnavailableException.
        """
        try:
            return with_db_retry(op_name, func, max_attempts=settings.db_retry_attempts)
        except OperationalError as exc:
            if is_retryable_db_error(exc):
                self.logger.error(f"{op_name} unavailable after retries: {str(exc)}")
                raise UnavailableException(op_name) from exc
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable:
        """
        Decorator to measure operation performance.

        Usage:
            @BaseService.measure_operation("create_booking")
            def create_booking(self, data):
                ...

        Args:
            operation_name: Name of the operation for metrics

        Returns:
            Decorator function
        """

        F = TypeVar("F", bound=Callable[..., Any])

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self, *args, **kwargs):
                start_time = time.time()
                success = False
                error_type = None

                try:
                    result = func(self, *args, **kwargs)
                    success = True
                    return result
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    elapsed = time.time() - start_time

                    if elapsed > SLOW_OPERATION_SECONDS and hasattr(self, "logger"):
                        self.logger.warning(
                            f"Slow operation detected: {operation_name} took {elapsed:.2f}s"
                        )

                    prometheus_metrics.record_service_operation(
                        service=self.__class__.__name__,
                        operation=operation_name,
                        duration=elapsed,
                        status="success" if success else "error",
                        error_type=error_type,
                    )

            wrapper._operation_name = operation_name  # type: ignore[attr-defined]
            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context):
        """
        Log an operation with context.

        Args:
            operation: Operation name
            **context: Additional context to log
        """
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})
