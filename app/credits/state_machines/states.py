"""
State enums for credits models.

These are Django TextChoices for database storage and admin integration.

State Machines Overview:

CheckoutSession Status:
    pending → completed   (checkout.session.completed, credits applied)
    pending → expired     (checkout.session.expired, no balance effect)
    completed and expired are terminal

WebhookEvent Status (audit trail only):
    pending → processed | ignored | failed
"""

from django.db import models


class CheckoutSessionStatus(models.TextChoices):
    """
    Lifecycle of one purchase attempt.

    Terminal states: COMPLETED, EXPIRED
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    EXPIRED = "expired", "Expired"


class TransactionType(models.TextChoices):
    """
    Kind of balance change recorded in the ledger.

    PURCHASE and BONUS are positive deltas; USAGE is negative and is the
    only type checked against the current balance.
    """

    PURCHASE = "purchase", "Purchase"
    USAGE = "usage", "Usage"
    BONUS = "bonus", "Bonus"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for a received Stripe event.

    State Flow:
        PENDING → PROCESSED (handler applied or acknowledged it)
        PENDING → IGNORED (no handler for the event type)
        PENDING → FAILED (handler raised; Stripe will redeliver)
    """

    PENDING = "pending", "Pending"
    PROCESSED = "processed", "Processed"
    IGNORED = "ignored", "Ignored"
    FAILED = "failed", "Failed"
