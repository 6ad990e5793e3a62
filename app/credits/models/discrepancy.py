"""
BalanceDiscrepancy model: accounts whose cached balance drifted from the log.

Written by BalanceReconciliationService. Discrepancies are flagged for manual
review; nothing rewrites a balance automatically.
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin


class BalanceDiscrepancy(UUIDPrimaryKeyMixin, BaseModel):
    """
    A mismatch between CreditAccount.credits and the sum of its transactions.

    Fields:
        account: Account that drifted
        cached_credits: CreditAccount.credits when detected
        ledger_credits: Sum of CreditTransaction.credits when detected
        resolved: Set by an operator after investigation
        resolved_at: When it was resolved
        notes: Operator notes

    At most one unresolved discrepancy exists per account; later runs update
    it instead of piling up duplicates.
    """

    account = models.ForeignKey(
        "credits.CreditAccount",
        on_delete=models.PROTECT,
        related_name="discrepancies",
    )

    cached_credits = models.IntegerField()
    ledger_credits = models.IntegerField()

    resolved = models.BooleanField(default=False, db_index=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Balance Discrepancy"
        verbose_name_plural = "Balance Discrepancies"
        constraints = [
            models.UniqueConstraint(
                fields=["account"],
                condition=models.Q(resolved=False),
                name="one_open_discrepancy_per_account",
            ),
        ]

    def __str__(self) -> str:
        return (
            f"BalanceDiscrepancy(user={self.account_id}, "
            f"cached={self.cached_credits}, ledger={self.ledger_credits})"
        )

    @property
    def difference(self) -> int:
        return self.cached_credits - self.ledger_credits
