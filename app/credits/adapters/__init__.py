"""
Payment adapters for external services.

All Stripe calls of the credits app go through StripeAdapter.

Usage:
    from credits.adapters import StripeAdapter, CreateCustomerParams

    customer = StripeAdapter.create_customer(
        CreateCustomerParams(email=user.email, idempotency_key=key)
    )
"""

from credits.adapters.stripe_adapter import (
    CheckoutSessionResult,
    CreateCheckoutSessionParams,
    CreateCustomerParams,
    CustomerResult,
    IdempotencyKeyGenerator,
    StripeAdapter,
)

__all__ = [
    "CheckoutSessionResult",
    "CreateCheckoutSessionParams",
    "CreateCustomerParams",
    "CustomerResult",
    "IdempotencyKeyGenerator",
    "StripeAdapter",
]
