"""
Celery tasks for the credits app.

This module provides:
- reconcile_credit_balances: Periodic check that every cached balance
  equals the sum of its transaction log (scheduled hourly by celery-beat)

Usage:
    from credits.tasks import reconcile_credit_balances

    reconcile_credit_balances.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task
from django.db import OperationalError

from credits.services import BalanceReconciliationService

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(OperationalError,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": 3},
)
def reconcile_credit_balances(self) -> dict:
    """
    Compare cached balances with the transaction log.

    Read-only apart from BalanceDiscrepancy rows; balances are never
    rewritten.

    Returns:
        Dict with accounts_checked, discrepancies and flagged_user_ids
    """
    summary = BalanceReconciliationService.run()

    if summary.discrepancies:
        logger.warning(
            f"Balance reconciliation flagged {summary.discrepancies} accounts",
            extra={"task_id": self.request.id, **summary.to_dict()},
        )

    return summary.to_dict()
