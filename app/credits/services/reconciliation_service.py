"""
Balance reconciliation: detects drift between cached balances and the log.

For every account the cached `credits` must equal the sum of the user's
transaction deltas. The scan reads both sides in a single statement, so a
write committing mid-run cannot pair a new balance with an old sum. Each
mismatch is then re-checked with the account row locked before a
BalanceDiscrepancy is recorded. The service never rewrites a balance: drift
means a bug or a manual write, and a person decides how to correct it.

Usage:
    from credits.services import BalanceReconciliationService

    summary = BalanceReconciliationService.run()
    summary.discrepancies  # number of mismatching accounts
"""

from __future__ import annotations

from dataclasses import dataclass, field

from django.db import transaction
from django.db.models import IntegerField, OuterRef, Subquery, Sum, Value
from django.db.models.functions import Coalesce

from core.services import BaseService
from credits.models import BalanceDiscrepancy, CreditAccount, CreditTransaction


@dataclass
class ReconciliationSummary:
    """
    Result of one reconciliation pass.

    Attributes:
        accounts_checked: Accounts compared
        discrepancies: Accounts whose cached balance differs from the log
        flagged_user_ids: Owners of those accounts
    """

    accounts_checked: int = 0
    discrepancies: int = 0
    flagged_user_ids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "accounts_checked": self.accounts_checked,
            "discrepancies": self.discrepancies,
            "flagged_user_ids": self.flagged_user_ids,
        }


def _ledger_sum(user_ref) -> Coalesce:
    """Σ CreditTransaction.credits for `user_ref`, 0 when there are none."""
    total = (
        CreditTransaction.objects.filter(user_id=user_ref)
        .order_by()
        .values("user_id")
        .annotate(total=Sum("credits"))
        .values("total")
    )
    return Coalesce(Subquery(total, output_field=IntegerField()), Value(0))


class BalanceReconciliationService(BaseService):
    """Compares CreditAccount.credits with Σ CreditTransaction.credits."""

    @classmethod
    def run(cls) -> ReconciliationSummary:
        logger = cls.get_logger()
        summary = ReconciliationSummary()

        for user_id, cached, ledger_credits in cls._scan():
            summary.accounts_checked += 1
            if cached == ledger_credits:
                continue

            confirmed = cls._confirm_and_record(user_id)
            if confirmed is None:
                logger.info(
                    "Balance mismatch cleared on re-check",
                    extra={"user_id": user_id},
                )
                continue

            summary.discrepancies += 1
            summary.flagged_user_ids.append(user_id)
            logger.error(
                "Cached balance does not match the transaction log",
                extra={
                    "user_id": user_id,
                    "cached_credits": confirmed.cached_credits,
                    "ledger_credits": confirmed.ledger_credits,
                    "difference": confirmed.difference,
                },
            )

        logger.info("Balance reconciliation finished", extra=summary.to_dict())
        return summary

    @staticmethod
    def _scan():
        """Yield (user_id, cached, ledger) rows from one SELECT."""
        return (
            CreditAccount.objects.order_by("user_id")
            .annotate(ledger_credits=_ledger_sum(OuterRef("user_id")))
            .values_list("user_id", "credits", "ledger_credits")
            .iterator()
        )

    @classmethod
    def _confirm_and_record(cls, user_id: int) -> BalanceDiscrepancy | None:
        """
        Re-read the account under its row lock and record the mismatch.

        Ledger writes hold the same lock, so the pair read here is a
        consistent one. Returns None when the account turns out to agree.
        """
        with transaction.atomic():
            cached = (
                CreditAccount.objects.select_for_update()
                .values_list("credits", flat=True)
                .get(pk=user_id)
            )
            ledger_credits = CreditTransaction.objects.filter(user_id=user_id).aggregate(
                total=Coalesce(Sum("credits"), Value(0))
            )["total"]
            if cached == ledger_credits:
                return None
            return cls._record(user_id, cached, ledger_credits)

    @classmethod
    def _record(cls, user_id: int, cached: int, ledger_credits: int) -> BalanceDiscrepancy:
        """Open a discrepancy for the account, or refresh the open one."""
        discrepancy, _ = BalanceDiscrepancy.objects.update_or_create(
            account_id=user_id,
            resolved=False,
            defaults={"cached_credits": cached, "ledger_credits": ledger_credits},
        )
        return discrepancy
