# backend/courtbook/core/exceptions.py
"""
Domain-specific exceptions for the club booking core.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException using the class status code."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


class UnavailableException(DomainException):
    """Raised when the store stays unavailable after bounded retries."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, operation: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="Service temporarily unavailable. Please retry.",
            code="UNAVAILABLE",
            details={"operation": operation, **(details or {})},
        )

    def to_http_exception(self) -> HTTPException:
        exc = super().to_http_exception()
        exc.headers = {"Retry-After": "2"}
        return exc


# Scheduling


class BookingConflictException(ConflictException):
    """Raised when a reservation window overlaps an active reservation."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot conflicts with an existing booking",
            code="BOOKING_CONFLICT",
            details=details or {},
        )


class OutOfHoursException(BusinessRuleException):
    """Raised when a window falls outside the club's operating hours."""

    def __init__(
        self,
        booking_date: str,
        start: str,
        end: str,
        *,
        closed: bool = False,
        reason: Optional[str] = None,
    ):
        message = reason or (
            f"The club is closed on {booking_date}"
            if closed
            else f"{start}-{end} on {booking_date} is outside operating hours"
        )
        super().__init__(
            message=message,
            code="OUT_OF_HOURS",
            details={"date": booking_date, "start_time": start, "end_time": end, "closed": closed},
        )


class InvalidDurationException(ValidationException):
    """Raised for non-positive or misaligned durations."""

    def __init__(self, duration_minutes: int, unit_minutes: int, reason: Optional[str] = None):
        super().__init__(
            message=reason
            or f"Duration must be a positive multiple of {unit_minutes} minutes",
            code="INVALID_DURATION",
            details={"duration_minutes": duration_minutes, "unit_minutes": unit_minutes},
        )


class NotCancellableException(ConflictException):
    """Raised when a reservation is already cancelled or has started."""

    def __init__(self, reservation_id: str, reason: str):
        super().__init__(
            message=f"Reservation cannot be cancelled: {reason}",
            code="NOT_CANCELLABLE",
            details={"reservation_id": reservation_id, "reason": reason},
        )


class TooLateToCancelException(BusinessRuleException):
    """Raised when cancellation is requested inside the no-cancel window."""

    def __init__(self, reservation_id: str, hours_until_start: float, minimum_hours: int):
        super().__init__(
            message=(
                f"Cancellations must be made at least {minimum_hours} hours before start"
            ),
            code="TOO_LATE_TO_CANCEL",
            details={
                "reservation_id": reservation_id,
                "hours_until_start": round(hours_until_start, 2),
                "minimum_hours": minimum_hours,
            },
        )


# Tokens


class InsufficientTokensException(BusinessRuleException):
    """Raised when a debit would push the pool past its overdraft limit."""

    def __init__(self, requested: int, available: int, overdraft_limit: int = 0):
        super().__init__(
            message=f"Insufficient tokens: requested {requested}, available {available}",
            code="INSUFFICIENT_TOKENS",
            details={
                "requested": requested,
                "available": available,
                "overdraft_limit": overdraft_limit,
            },
        )


class RedemptionLimitExceededException(BusinessRuleException):
    """Raised when a redemption exceeds the category's maximum percentage."""

    def __init__(self, category: str, requested_percentage: float, max_percentage: int):
        super().__init__(
            message=(
                f"Redemption of {requested_percentage:.1f}% exceeds the "
                f"{max_percentage}% limit for {category}"
            ),
            code="REDEMPTION_LIMIT_EXCEEDED",
            details={
                "category": category,
                "requested_percentage": round(requested_percentage, 2),
                "max_percentage": max_percentage,
            },
        )


class TimeRestrictedException(BusinessRuleException):
    """Raised when a redemption is scheduled outside its allowed days or hours."""

    def __init__(self, category: str, reason: str):
        super().__init__(
            message=f"Tokens cannot be redeemed for {category} at this time: {reason}",
            code="TIME_RESTRICTED",
            details={"category": category, "reason": reason},
        )


class UnknownServiceException(NotFoundException):
    """Raised for a service category with no redemption policy."""

    def __init__(self, category: str):
        super().__init__(
            message=f"Unknown service category: {category}",
            code="UNKNOWN_SERVICE",
            details={"category": category},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    Used when data access operations fail, such as connection issues,
    query failures, or constraint violations.
    """
