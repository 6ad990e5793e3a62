"""
Base exception classes for application-wide error handling.

Every domain error carries a human-readable message, a stable
machine-readable error_code and optional details, and renders itself as the
JSON error body the API returns.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input or operation validation failures (400)
    ├── NotFoundError - Resource not found (404)
    ├── PermissionDeniedError - Authorization failures (403)
    ├── ConflictError - State conflicts, write contention (409 / 500)
    └── ExternalServiceError - Third-party service failures (502)

Usage:
    from core.exceptions import NotFoundError, ValidationError

    # Raise with message only
    raise ValidationError("limit must be positive")

    # Raise with error code for client handling
    raise NotFoundError("Package not found", error_code="PACKAGE_NOT_FOUND")

    # Raise with additional details
    raise ValidationError(
        "Invalid cursor",
        error_code="INVALID_CURSOR",
        details={"cursor": cursor},
    )

    # Convert to dict for API response
    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=400)

Note:
    These exceptions are for domain/business logic errors.
    DRF handles API-layer exceptions (serialization, authentication, etc.).
    Credits-specific subclasses live in credits.exceptions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (amounts, ids, field errors)
        is_retryable: Whether repeating the same call may succeed

    Example:
        try:
            ledger.debit_usage(user.pk, amount=5, feature_ref="face_swap")
        except BaseApplicationError as e:
            logger.warning(f"Debit refused: {e.error_code}")
            return Response(e.to_dict(), status=402)
    """

    default_error_code: str = "APPLICATION_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (defaults to class default)
            details: Additional error context
        """
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Returns:
            Dict with error, error_code, and (when present) details keys

        Example:
            {
                "error": "Insufficient credits: required 5, available 2",
                "error_code": "INSUFFICIENT_CREDITS",
                "details": {"required": 5, "available": 2}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input or an operation fails validation.

    Use for:
    - Impossible ledger operations (zero delta, mismatched metadata)
    - Packages that exist but cannot be bought
    - Malformed or foreign pagination cursors

    Note:
        For request-body validation, use DRF serializers. Use this for
        service-layer rules.
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Example:
        package = CreditPackage.objects.filter(package_id=package_id).first()
        if package is None:
            raise NotFoundError(
                f"Package '{package_id}' does not exist",
                error_code="PACKAGE_NOT_FOUND",
                details={"package_id": package_id},
            )
    """

    default_error_code: str = "NOT_FOUND"


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when an authenticated user may not act on a resource.

    Example:
        if session.user_id != user.pk:
            raise PermissionDeniedError("You do not have access to this checkout session")

    Note:
        For authentication failures (missing/invalid token), DRF answers
        401 itself. Use this for authorization failures.
    """

    default_error_code: str = "PERMISSION_DENIED"


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for:
    - Invalid state transitions
    - Write contention that outlasted every retry

    Note:
        HTTP 409 Conflict fits state conflicts; contention is reported as
        a retryable 500.
    """

    default_error_code: str = "CONFLICT"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for:
    - Payment provider failures (Stripe)
    - Network timeouts and provider unavailability

    Example:
        try:
            stripe.Customer.create(email=email)
        except stripe.APIError as e:
            raise ExternalServiceError(
                "Payment service unavailable",
                error_code="STRIPE_ERROR",
            ) from e

    Note:
        Log the original error for debugging but don't expose internal
        details to clients. HTTP 502 Bad Gateway is the appropriate status.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
