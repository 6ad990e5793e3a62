"""
Credits services.

This module provides:
- AccountStore: Lazy account provisioning, balances, Stripe customer link
- CheckoutService: Opens checkout sessions for packages
- SettlementService: Applies completion/expiry of checkout sessions once
- QueryService: Transaction history and package catalog reads
- UsageService: Feature-usage debits
- BalanceReconciliationService: Detects cached-balance drift

Usage:
    from credits.services import CheckoutService, SettlementService

    handle = CheckoutService.create_session(user, "pro")
    SettlementService.settle_completed(handle.session_id)
"""

from credits.services.account_service import AccountStore
from credits.services.checkout_service import CheckoutHandle, CheckoutService
from credits.services.query_service import QueryService, TransactionPage
from credits.services.reconciliation_service import (
    BalanceReconciliationService,
    ReconciliationSummary,
)
from credits.services.settlement_service import (
    SettlementOutcome,
    SettlementResult,
    SettlementService,
)
from credits.services.usage_service import UsageService

__all__ = [
    "AccountStore",
    "BalanceReconciliationService",
    "CheckoutHandle",
    "CheckoutService",
    "QueryService",
    "ReconciliationSummary",
    "SettlementOutcome",
    "SettlementResult",
    "SettlementService",
    "TransactionPage",
    "UsageService",
]
