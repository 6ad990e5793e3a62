"""
Ledger - Single-writer credit balance changes.

Every change to a CreditAccount balance goes through this package. A change
is one signed delta, applied under a row lock, recorded as an immutable
CreditTransaction in the same database transaction.

Public API:
    Service:
        ledger - Singleton instance of LedgerService
        LedgerService - Class with all ledger operations

    Types:
        PurchaseMetadata, UsageMetadata, BonusMetadata - Typed metadata

    Retry:
        run_atomic_with_retry - Atomic block with bounded contention retry

Usage:
    from credits.ledger import ledger

    ledger.grant_bonus(user.pk, 10, reason="welcome", description="Welcome credits")
    ledger.debit_usage(user.pk, amount=1, feature_ref="face_swap")
"""

from .retry import backoff_delay, run_atomic_with_retry
from .services import LedgerService, ledger
from .types import (
    BonusMetadata,
    PurchaseMetadata,
    UsageMetadata,
)

__all__ = [
    # Service
    "ledger",
    "LedgerService",
    # Types
    "PurchaseMetadata",
    "UsageMetadata",
    "BonusMetadata",
    # Retry
    "backoff_delay",
    "run_atomic_with_retry",
]
