"""
Credits domain models.

- CreditAccount: Cached per-user balance (written only by credits.ledger)
- CreditTransaction: Append-only ledger of balance changes
- CreditPackage: Purchasable catalog
- CheckoutSession: One purchase attempt, the settlement idempotency guard
- WebhookEvent: Audit trail of verified Stripe deliveries
- BalanceDiscrepancy: Reconciliation findings
"""

from credits.models.account import BalanceWriteError, CreditAccount
from credits.models.checkout_session import CheckoutSession
from credits.models.discrepancy import BalanceDiscrepancy
from credits.models.package import CreditPackage
from credits.models.transaction import CreditTransaction, ImmutableTransactionError
from credits.models.webhook_event import WebhookEvent

__all__ = [
    "BalanceDiscrepancy",
    "BalanceWriteError",
    "CheckoutSession",
    "CreditAccount",
    "CreditPackage",
    "CreditTransaction",
    "ImmutableTransactionError",
    "WebhookEvent",
]
