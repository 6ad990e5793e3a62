"""
CheckoutSession model: one purchase attempt.

The session row is the idempotency guard for settlement. Its `status` is
read under a row lock and written in the same transaction as the ledger
credit, so a duplicated or reordered Stripe event can never settle twice.

Usage:
    from credits.models import CheckoutSession

    session = CheckoutSession.objects.select_for_update().get(session_id="cs_xxx")
    session.complete()  # pending -> completed
    session.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from credits.state_machines import CheckoutSessionStatus


class CheckoutSession(UUIDPrimaryKeyMixin, BaseModel):
    """
    Lifecycle of a single Stripe Checkout purchase.

    State Flow:
        PENDING -> COMPLETED (payment confirmed, credits applied)
        PENDING -> EXPIRED (Stripe expired the session, nothing applied)

    Both targets are terminal. `status` is a protected FSMField, so it can
    only change through complete() / expire(), which only settlement calls.

    Fields:
        session_id: Stripe Checkout Session ID (cs_xxx), unique
        user: Buyer
        package: Catalog entry the purchase was started from
        package_code: Snapshot of package.package_id
        credits: Snapshot of package.credits at creation
        amount_due: Snapshot of package.price_cents at creation
        currency: Always "usd"
        redirect_url: Stripe-hosted checkout URL
        completed_at / expired_at: Transition timestamps
    """

    # ==========================================================================
    # Identification
    # ==========================================================================

    session_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Checkout Session ID (cs_xxx)",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="checkout_sessions",
        help_text="User making the purchase",
    )

    package = models.ForeignKey(
        "credits.CreditPackage",
        on_delete=models.PROTECT,
        related_name="checkout_sessions",
        help_text="Package the purchase was created from",
    )

    # ==========================================================================
    # Snapshot of package terms
    # ==========================================================================

    package_code = models.CharField(
        max_length=50,
        help_text="Package identifier at creation time",
    )

    credits = models.PositiveIntegerField(
        help_text="Credits to grant on settlement (snapshot)",
    )

    amount_due = models.PositiveIntegerField(
        help_text="Amount charged in cents (snapshot)",
    )

    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    redirect_url = models.URLField(
        max_length=2048,
        blank=True,
        default="",
        help_text="Stripe-hosted checkout page",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=CheckoutSessionStatus.PENDING,
        choices=CheckoutSessionStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the session (managed by FSM)",
    )

    completed_at = models.DateTimeField(null=True, blank=True)
    expired_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Checkout Session"
        verbose_name_plural = "Checkout Sessions"
        indexes = [
            models.Index(fields=["user", "status"], name="checkout_user_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(credits__gt=0),
                name="checkout_session_credits_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"CheckoutSession({self.session_id}, {self.status}, {self.credits} credits)"

    @property
    def is_pending(self) -> bool:
        return self.status == CheckoutSessionStatus.PENDING

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=CheckoutSessionStatus.PENDING,
        target=CheckoutSessionStatus.COMPLETED,
    )
    def complete(self):
        """
        Mark the purchase as settled.

        Transition: PENDING -> COMPLETED

        Only called by settlement, inside the transaction that records the
        purchase in the ledger.
        """
        self.completed_at = timezone.now()

    @transition(
        field=status,
        source=CheckoutSessionStatus.PENDING,
        target=CheckoutSessionStatus.EXPIRED,
    )
    def expire(self):
        """
        Mark the session as abandoned.

        Transition: PENDING -> EXPIRED
        """
        self.expired_at = timezone.now()
