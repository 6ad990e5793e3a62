"""
Stripe webhook processing for the credits app.

- views.stripe_webhook: Signature-verified endpoint
- handlers: Registry mapping event types to settlement handlers
"""

from credits.webhooks.handlers import (
    WEBHOOK_HANDLERS,
    dispatch_webhook,
    register_handler,
)

__all__ = [
    "WEBHOOK_HANDLERS",
    "dispatch_webhook",
    "register_handler",
]
