"""
Feature-usage debits.

Features call UsageService.debit_for_usage() before doing paid work. The
account is provisioned if needed, then the ledger debits it under lock;
an insufficient balance raises before anything is written.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.services import BaseService
from credits.ledger import ledger
from credits.services.account_service import AccountStore

if TYPE_CHECKING:
    from credits.models import CreditTransaction


class UsageService(BaseService):
    """Consumption of credits by product features."""

    @classmethod
    def debit_for_usage(
        cls,
        user_id: int,
        amount: int,
        feature_ref: str,
        description: str | None = None,
    ) -> CreditTransaction:
        """
        Debit `amount` credits from the user for `feature_ref`.

        Raises:
            InsufficientCreditsError: Balance lower than `amount`
            InvalidLedgerOperationError: `amount` is not a positive integer
        """
        AccountStore.get_or_create(user_id)
        entry = ledger.debit_usage(
            user_id=user_id,
            amount=amount,
            feature_ref=feature_ref,
            description=description,
        )
        cls.get_logger().info(
            "Feature usage debited",
            extra={
                "user_id": user_id,
                "feature_ref": feature_ref,
                "amount": amount,
                "balance_after": entry.balance_after,
            },
        )
        return entry
