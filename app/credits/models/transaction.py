"""
CreditTransaction model: the append-only credit ledger.

Every change of a CreditAccount balance is explained by exactly one row
here. Rows are written once by credits.ledger and never updated or deleted.

Metadata is a tagged union keyed by `type` (see credits.ledger.types):
    purchase → {"package_id": ..., "session_id": ...}
    usage    → {"feature_ref": ...}
    bonus    → {"reason": ...}
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from credits.state_machines import TransactionType


class ImmutableTransactionError(Exception):
    """Raised on any attempt to modify or delete a recorded transaction."""


class CreditTransactionQuerySet(models.QuerySet):
    """QuerySet that refuses bulk mutation of the ledger."""

    def update(self, **kwargs):
        raise ImmutableTransactionError("Credit transactions are append-only")

    def delete(self):
        raise ImmutableTransactionError("Credit transactions are append-only")


class CreditTransaction(UUIDPrimaryKeyMixin, BaseModel):
    """
    One immutable balance change.

    Fields:
        user: Account owner
        type: purchase, usage or bonus
        credits: Signed delta (positive for purchase/bonus, negative for usage)
        balance_before / balance_after: Account balance around this change
        description: Human-readable summary shown in the history
        metadata: Typed payload, shape depends on `type`
        idempotency_key: Optional natural key (e.g. "purchase:cs_xxx");
            unique, so a given purchase can be recorded at most once

    Invariant:
        balance_after == balance_before + credits (enforced by a check
        constraint as well as by the ledger).
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="credit_transactions",
        help_text="Owner of the account this change applies to",
    )

    type = models.CharField(
        max_length=20,
        choices=TransactionType.choices,
        db_index=True,
        help_text="Kind of balance change",
    )

    credits = models.IntegerField(
        help_text="Signed credit delta",
    )

    balance_before = models.IntegerField(
        help_text="Balance before this change",
    )

    balance_after = models.IntegerField(
        help_text="Balance after this change",
    )

    description = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Human-readable description",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Typed payload keyed by transaction type",
    )

    idempotency_key = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Natural key guarding against duplicate recording",
    )

    objects = CreditTransactionQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name = "Credit Transaction"
        verbose_name_plural = "Credit Transactions"
        indexes = [
            models.Index(
                fields=["user", "-created_at", "-id"],
                name="credit_tx_user_history_idx",
            ),
            models.Index(fields=["user", "type"], name="credit_tx_user_type_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(balance_after=models.F("balance_before") + models.F("credits")),
                name="credit_tx_balance_arithmetic",
            ),
            models.CheckConstraint(
                condition=~models.Q(credits=0),
                name="credit_tx_non_zero_delta",
            ),
            models.CheckConstraint(
                condition=models.Q(balance_after__gte=0),
                name="credit_tx_balance_after_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"CreditTransaction({self.type}, {self.credits:+d}, user={self.user_id})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableTransactionError("Credit transactions are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableTransactionError("Credit transactions are append-only")
