"""
Stripe API adapter for credit purchases.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions of the credits app. Nothing else imports the
Stripe SDK, so error translation, timeouts, idempotency keys and logging
live in one place.

Features:
- Configurable timeout and network retries on all API calls
- Automatic error translation to credits exceptions
- Structured logging with timing metrics
- Idempotency keys for safe retries of create calls
- Webhook signature verification before any payload parsing

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: Network retries inside the SDK (default: 3)

Usage:
    from credits.adapters import StripeAdapter, CreateCheckoutSessionParams

    result = StripeAdapter.create_checkout_session(
        CreateCheckoutSessionParams(
            price_id="price_123",
            customer_id="cus_123",
            success_url="https://app.example.com/credits/success?session_id={CHECKOUT_SESSION_ID}",
            cancel_url="https://app.example.com/credits/cancel",
            metadata={"user_id": "42", "package_id": "pro", "credits": "30"},
        )
    )
    result.url  # hosted Checkout page
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import stripe
from django.conf import settings

from core.exceptions import ValidationError
from credits.exceptions import (
    PaymentProviderError,
    PaymentProviderUnavailableError,
    SignatureVerificationError,
    WebhookNotConfiguredError,
)

# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreateCustomerParams:
    """
    Parameters for creating a Stripe Customer.

    Attributes:
        email: Customer email
        idempotency_key: Unique key for idempotent creation
        metadata: Key-value pairs to attach (always includes user_id)
    """

    email: str
    idempotency_key: str
    metadata: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")


@dataclass
class CustomerResult:
    """Result from Stripe Customer creation."""

    id: str
    email: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class CreateCheckoutSessionParams:
    """
    Parameters for creating a one-off Stripe Checkout Session.

    Attributes:
        price_id: Stripe Price of the package
        customer_id: Stripe Customer paying
        success_url: Redirect after payment; may contain {CHECKOUT_SESSION_ID}
        cancel_url: Redirect when the customer abandons checkout
        metadata: Key-value pairs echoed back in webhook events
        quantity: Line item quantity (always 1 for credit packages)
        idempotency_key: Optional key for idempotent creation
    """

    price_id: str
    customer_id: str
    success_url: str
    cancel_url: str
    metadata: dict[str, str] = field(default_factory=dict)
    quantity: int = 1
    idempotency_key: str | None = None

    def __post_init__(self) -> None:
        if not self.price_id:
            raise ValueError("price_id is required")
        if self.quantity <= 0:
            raise ValueError("quantity must be positive")


@dataclass
class CheckoutSessionResult:
    """
    Result from Stripe Checkout Session creation.

    Attributes:
        id: Checkout Session ID (cs_xxx)
        url: Hosted payment page to redirect the customer to
        amount_total: Total in cents as computed by Stripe
        currency: Currency code
        status: Stripe session status (open, complete, expired)
        payment_status: paid, unpaid or no_payment_required
    """

    id: str
    url: str
    amount_total: int | None = None
    currency: str | None = None
    status: str | None = None
    payment_status: str | None = None


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    Example:
        key = IdempotencyKeyGenerator.generate("create_customer", user.pk)
        # "create_customer:42:1:a1b2c3d4"
    """

    @staticmethod
    def generate(operation: str, entity_id: Any, attempt: int = 1) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]
        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are class methods - no instance state is maintained.
    Thread-safe for use from Celery workers.

    Usage:
        customer = StripeAdapter.create_customer(params)
        session = StripeAdapter.create_checkout_session(params)
        event = StripeAdapter.verify_webhook_signature(body, header)
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key, timeout and retries."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        stripe.max_network_retries = getattr(settings, "STRIPE_MAX_RETRIES", 3)
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    # =========================================================================
    # Customers
    # =========================================================================

    @classmethod
    def create_customer(cls, params: CreateCustomerParams) -> CustomerResult:
        """
        Create a Stripe Customer.

        Raises:
            PaymentProviderError: Stripe rejected the request
            PaymentProviderUnavailableError: Stripe unreachable or rate limited
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "create_customer",
            "idempotency_key": params.idempotency_key,
            "user_id": params.metadata.get("user_id"),
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            customer = stripe.Customer.create(
                email=params.email,
                metadata=params.metadata,
                idempotency_key=params.idempotency_key,
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={**log_context, "customer_id": customer.id, "duration_ms": duration_ms},
        )

        return CustomerResult(
            id=customer.id,
            email=customer.email,
            metadata=dict(customer.metadata or {}),
        )

    # =========================================================================
    # Checkout
    # =========================================================================

    @classmethod
    def create_checkout_session(
        cls,
        params: CreateCheckoutSessionParams,
    ) -> CheckoutSessionResult:
        """
        Create a payment-mode Stripe Checkout Session.

        Returns:
            CheckoutSessionResult with the session id and hosted page URL

        Raises:
            PaymentProviderError: Stripe rejected the request
            PaymentProviderUnavailableError: Stripe unreachable or rate limited
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {
            "operation": "create_checkout_session",
            "price_id": params.price_id,
            "customer_id": params.customer_id,
            "user_id": params.metadata.get("user_id"),
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        create_kwargs: dict[str, Any] = {
            "mode": "payment",
            "customer": params.customer_id,
            "line_items": [{"price": params.price_id, "quantity": params.quantity}],
            "success_url": params.success_url,
            "cancel_url": params.cancel_url,
            "metadata": params.metadata,
        }
        if params.idempotency_key:
            create_kwargs["idempotency_key"] = params.idempotency_key

        try:
            session = stripe.checkout.Session.create(**create_kwargs)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={**log_context, "session_id": session.id, "duration_ms": duration_ms},
        )

        return CheckoutSessionResult(
            id=session.id,
            url=session.url,
            amount_total=session.amount_total,
            currency=session.currency,
            status=session.status,
            payment_status=session.payment_status,
        )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes,
        signature: str,
    ) -> dict[str, Any]:
        """
        Verify a Stripe webhook delivery and parse its body.

        The body is parsed only after the signature checks out.

        Args:
            payload: Raw webhook payload bytes
            signature: Stripe-Signature header value

        Returns:
            Parsed event dict

        Raises:
            WebhookNotConfiguredError: STRIPE_WEBHOOK_SECRET is empty
            SignatureVerificationError: Signature missing, stale or wrong
            ValidationError: Verified body is not a JSON object
        """
        secret = settings.STRIPE_WEBHOOK_SECRET
        if not secret:
            raise WebhookNotConfiguredError("Webhook signing secret is not configured")

        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body,
                signature,
                secret,
                tolerance=stripe.Webhook.DEFAULT_TOLERANCE,
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            cls.get_logger().warning(
                "Webhook signature verification failed",
                extra={"error_type": type(e).__name__},
            )
            raise SignatureVerificationError("Invalid signature")

        try:
            event = json.loads(body)
        except ValueError:
            raise ValidationError("Invalid payload", error_code="INVALID_PAYLOAD")
        if not isinstance(event, dict):
            raise ValidationError("Invalid payload", error_code="INVALID_PAYLOAD")
        return event

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to credits exceptions.

        Raises:
            PaymentProviderError: Permanent failure (bad request, bad key)
            PaymentProviderUnavailableError: Transient failure (rate limit,
                connection, Stripe 5xx, unknown)
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise PaymentProviderError(
                "Payment provider rejected the request",
                stripe_code=error.code,
            ) from error

        elif isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise PaymentProviderUnavailableError(
                "Payment provider is busy. Please retry.",
                stripe_code="rate_limit",
            ) from error

        elif isinstance(error, stripe.APIConnectionError):
            logger.error("Connection error to Stripe", extra=log_context, exc_info=True)
            raise PaymentProviderUnavailableError(
                "Could not reach the payment provider. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise PaymentProviderError(
                "Payment provider is misconfigured",
                stripe_code="authentication_error",
            ) from error

        elif isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise PaymentProviderUnavailableError(
                "Payment provider error. Please retry.",
                stripe_code="api_error",
            ) from error

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise PaymentProviderUnavailableError(
                "Unexpected payment provider error",
                stripe_code="unknown_error",
            ) from error
