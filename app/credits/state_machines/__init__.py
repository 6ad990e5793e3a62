"""
State machine enums for credits models.
"""

from credits.state_machines.states import (
    CheckoutSessionStatus,
    TransactionType,
    WebhookEventStatus,
)

__all__ = [
    "CheckoutSessionStatus",
    "TransactionType",
    "WebhookEventStatus",
]
