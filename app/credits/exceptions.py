"""
Credits-specific exceptions.

Every exception inherits from the core hierarchy so views can return
`exc.to_dict()` with a stable error_code.

Exception Hierarchy:
    CreditsError (base for credits domain)
    ├── InsufficientCreditsError - Usage debit would make the balance negative
    ├── SignatureVerificationError - Webhook signature cannot be verified
    └── WebhookNotConfiguredError - No webhook signing secret configured

    ValidationError subclasses
    ├── InvalidLedgerOperationError - Delta/type/metadata do not agree
    ├── PackageUnavailableError - Package exists but is not purchasable
    └── InvalidCursorError - History cursor does not belong to the caller

    NotFoundError subclasses
    ├── CreditAccountNotFoundError - Ledger target account missing
    ├── PackageNotFoundError - Unknown package id
    └── CheckoutSessionNotFoundError - Unknown checkout session

    AuthorizationError - Caller is not the resource owner (PermissionDeniedError)

    PersistenceConflictError - Write contention survived every retry (ConflictError)

    PaymentProviderError - Stripe call failed (ExternalServiceError)
    └── PaymentProviderUnavailableError - Transient, safe to retry

Usage:
    from credits.exceptions import InsufficientCreditsError

    try:
        ledger.debit_usage(user_id, 1, feature_ref="face_swap")
    except InsufficientCreditsError as e:
        return Response(e.to_dict(), status=402)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

if TYPE_CHECKING:
    from typing import Any


__all__ = [
    "AuthorizationError",
    "CheckoutSessionNotFoundError",
    "CreditAccountNotFoundError",
    "CreditsError",
    "InsufficientCreditsError",
    "InvalidCursorError",
    "InvalidLedgerOperationError",
    "PackageNotFoundError",
    "PackageUnavailableError",
    "PaymentProviderError",
    "PaymentProviderUnavailableError",
    "PersistenceConflictError",
    "SignatureVerificationError",
    "WebhookNotConfiguredError",
]


# =============================================================================
# Credits Domain Exceptions
# =============================================================================


class CreditsError(BaseApplicationError):
    """Base exception for credits domain errors."""

    default_error_code: str = "CREDITS_ERROR"


class InsufficientCreditsError(CreditsError):
    """
    Raised when a usage debit would take the balance below zero.

    Raised inside the ledger transaction before anything is written, so the
    account and the transaction log are untouched.

    Attributes:
        user_id: Owner of the account
        required: Credits the debit needed
        available: Credits the account held
    """

    default_error_code: str = "INSUFFICIENT_CREDITS"

    def __init__(
        self,
        user_id: int,
        required: int,
        available: int,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.user_id = user_id
        self.required = required
        self.available = available

        message = f"Insufficient credits: required {required}, available {available}"
        all_details = {
            "required": required,
            "available": available,
            **(details or {}),
        }
        super().__init__(message, error_code=error_code, details=all_details)


class SignatureVerificationError(CreditsError):
    """
    Raised when a webhook signature cannot be verified.

    Non-retryable: the same payload and header will never verify. The
    message stays generic so the response leaks nothing about the secret.
    """

    default_error_code: str = "INVALID_SIGNATURE"
    is_retryable: bool = False


class WebhookNotConfiguredError(CreditsError):
    """Raised when STRIPE_WEBHOOK_SECRET is empty."""

    default_error_code: str = "WEBHOOK_NOT_CONFIGURED"


# =============================================================================
# Validation / Lookup Exceptions
# =============================================================================


class InvalidLedgerOperationError(ValidationError):
    """Raised when a ledger call has an impossible delta, type or metadata."""

    default_error_code: str = "INVALID_LEDGER_OPERATION"


class PackageUnavailableError(ValidationError):
    """Raised when a package exists but is inactive or has no Stripe price."""

    default_error_code: str = "PACKAGE_UNAVAILABLE"


class InvalidCursorError(ValidationError):
    """Raised when a history cursor is malformed or not the caller's."""

    default_error_code: str = "INVALID_CURSOR"


class PackageNotFoundError(NotFoundError):
    """Raised when the requested package id does not exist."""

    default_error_code: str = "PACKAGE_NOT_FOUND"


class CheckoutSessionNotFoundError(NotFoundError):
    """Raised when a checkout session id is unknown."""

    default_error_code: str = "CHECKOUT_SESSION_NOT_FOUND"


class CreditAccountNotFoundError(NotFoundError):
    """Raised when the ledger is asked to move credits on a missing account."""

    default_error_code: str = "CREDIT_ACCOUNT_NOT_FOUND"


class AuthorizationError(PermissionDeniedError):
    """Raised when the caller is authenticated but does not own the resource."""

    default_error_code: str = "FORBIDDEN"


# =============================================================================
# Concurrency Exceptions
# =============================================================================


class PersistenceConflictError(ConflictError):
    """
    Raised when an atomic ledger/settlement write kept failing on contention.

    The transaction was rolled back on every attempt, so nothing is
    persisted. Retryable: the webhook answers 500 and Stripe redelivers,
    which is safe because settlement is idempotent on the session status.
    """

    default_error_code: str = "PERSISTENCE_CONFLICT"
    is_retryable: bool = True


# =============================================================================
# Payment Provider Exceptions
# =============================================================================


class PaymentProviderError(ExternalServiceError):
    """
    Raised when a Stripe API call fails.

    Attributes:
        stripe_code: Stripe's error code, when available
        is_retryable: Whether the same call may succeed later
    """

    default_error_code: str = "PAYMENT_PROVIDER_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code


class PaymentProviderUnavailableError(PaymentProviderError):
    """Stripe rate limit, connection failure or 5xx. Safe to retry."""

    default_error_code: str = "PAYMENT_PROVIDER_UNAVAILABLE"
    is_retryable: bool = True
