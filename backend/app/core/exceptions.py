# backend/app/core/exceptions.py
"""
Domain-specific exceptions for the booking core.

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


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class InvalidBookingStatusException(ConflictException):
    """Raised when a transition is requested from a status that does not allow it."""

    def __init__(self, action: str, current_status: str):
        super().__init__(
            message=f"Cannot {action} booking with status: {current_status}",
            code="INVALID_BOOKING_STATUS",
            details={"action": action, "current_status": current_status},
        )
        self.action = action
        self.current_status = current_status


class MissingScheduledStartException(ValidationException):
    """Raised when an operation needs the scheduled start and the booking has none."""

    def __init__(self, booking_id: str):
        super().__init__(
            message="Booking has no scheduled start time",
            code="SCHEDULED_START_REQUIRED",
            details={"booking_id": booking_id},
        )


class CancellationNotAllowedException(BusinessRuleException):
    """Raised when the cancellation policy forbids cancelling."""

    def __init__(self, reason: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=reason,
            code="CANCELLATION_NOT_ALLOWED",
            details=details or {},
        )


class PaymentGatewayException(ServiceException):
    """Raised when the payment gateway rejects or fails a request."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, *, operation: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            code="PAYMENT_GATEWAY_ERROR",
            details={"operation": operation, **(details or {})},
        )
        self.operation = operation


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """


def is_db_pool_exhaustion(exc: Exception) -> bool:
    """
    Check if an exception indicates DB connection pool exhaustion.

    This is a common failure mode under high load when all database
    connections are in use and new requests time out waiting.
    """
    error_str = str(exc).lower()
    return "queuepool" in error_str or (
        "timeout" in error_str and ("connection" in error_str or "pool" in error_str)
    )


def raise_503_if_pool_exhaustion(exc: Exception) -> None:
    """
    Convert DB pool exhaustion errors to HTTP 503 (Service Unavailable).

    Raises:
        HTTPException: 503 if pool exhaustion detected
        Does not raise if not pool exhaustion (caller should re-raise original)
    """
    if is_db_pool_exhaustion(exc):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service temporarily overloaded. Please retry.",
            headers={"Retry-After": "2"},
        )
