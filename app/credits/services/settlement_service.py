"""
Settlement service: applies Stripe checkout outcomes exactly once.

The idempotency guard is CheckoutSession.status, read under a row lock and
written in the same transaction as the ledger credit. A redelivered
`checkout.session.completed` finds the session completed and does nothing;
a crash before commit leaves the session pending and the next delivery
settles it.

Outcomes for completion:
    pending   -> credit the account, mark completed   (CREDITED)
    completed -> nothing                              (ALREADY_COMPLETED)
    expired   -> nothing, logged for manual review    (EXPIRED_SESSION)
    missing   -> nothing                              (UNKNOWN_SESSION)
    unpaid    -> nothing until async payment succeeds (AWAITING_PAYMENT)

Usage:
    from credits.services import SettlementService

    result = SettlementService.settle_completed("cs_test_123", payment_status="paid")
    result.outcome  # SettlementOutcome.CREDITED
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from core.services import BaseService
from credits.ledger import ledger, run_atomic_with_retry
from credits.models import CheckoutSession
from credits.services.account_service import AccountStore
from credits.state_machines import CheckoutSessionStatus

if TYPE_CHECKING:
    from credits.models import CreditTransaction


# Stripe payment_status values that mean the money has not arrived yet
UNPAID_STATUSES = frozenset({"unpaid"})


class SettlementOutcome(str, Enum):
    """What a settlement call did."""

    CREDITED = "credited"
    ALREADY_COMPLETED = "already_completed"
    EXPIRED_SESSION = "expired_session"
    UNKNOWN_SESSION = "unknown_session"
    AWAITING_PAYMENT = "awaiting_payment"
    EXPIRED = "expired"
    ALREADY_TERMINAL = "already_terminal"


@dataclass
class SettlementResult:
    """
    Result of a settlement call.

    Attributes:
        session_id: Stripe checkout session id
        outcome: What happened
        transaction: The purchase transaction when credits were granted
        balance_after: Account balance after crediting, when credited
    """

    session_id: str
    outcome: SettlementOutcome
    transaction: CreditTransaction | None = None
    balance_after: int | None = None

    @property
    def credited(self) -> bool:
        return self.outcome == SettlementOutcome.CREDITED


class SettlementService(BaseService):
    """Completion and expiry of checkout sessions."""

    @classmethod
    def settle_completed(
        cls,
        session_id: str,
        payment_status: str | None = None,
    ) -> SettlementResult:
        """
        Settle a paid checkout session.

        Args:
            session_id: Stripe checkout session id
            payment_status: Stripe's payment_status; "unpaid" defers crediting

        Returns:
            SettlementResult describing the outcome

        Raises:
            PersistenceConflictError: Contention outlasted every retry;
                nothing was written
        """
        if payment_status in UNPAID_STATUSES:
            cls.get_logger().info(
                "Checkout completed without payment yet, waiting for async payment",
                extra={"session_id": session_id, "payment_status": payment_status},
            )
            return SettlementResult(session_id, SettlementOutcome.AWAITING_PAYMENT)

        return run_atomic_with_retry(
            lambda: cls._settle_locked(session_id),
            operation="settlement.complete",
            log_context={"session_id": session_id},
        )

    @classmethod
    def _settle_locked(cls, session_id: str) -> SettlementResult:
        logger = cls.get_logger()

        session = CheckoutSession.objects.select_for_update().filter(session_id=session_id).first()

        if session is None:
            logger.warning(
                "Completion for unknown checkout session, acknowledging",
                extra={"session_id": session_id},
            )
            return SettlementResult(session_id, SettlementOutcome.UNKNOWN_SESSION)

        if session.status == CheckoutSessionStatus.COMPLETED:
            logger.info(
                "Checkout session already settled",
                extra={"session_id": session_id, "user_id": session.user_id},
            )
            return SettlementResult(session_id, SettlementOutcome.ALREADY_COMPLETED)

        if session.status == CheckoutSessionStatus.EXPIRED:
            logger.error(
                "Payment completed for an expired checkout session, manual review required",
                extra={
                    "session_id": session_id,
                    "user_id": session.user_id,
                    "credits": session.credits,
                    "amount_due": session.amount_due,
                },
            )
            return SettlementResult(session_id, SettlementOutcome.EXPIRED_SESSION)

        AccountStore.get_or_create(session.user_id)
        entry = ledger.credit_purchase(
            user_id=session.user_id,
            credits=session.credits,
            package_id=session.package_code,
            session_id=session.session_id,
        )

        session.complete()
        session.save(update_fields=["status", "completed_at", "updated_at"])

        logger.info(
            "Checkout session settled",
            extra={
                "session_id": session_id,
                "user_id": session.user_id,
                "credits": session.credits,
                "transaction_id": str(entry.id),
                "balance_after": entry.balance_after,
            },
        )
        return SettlementResult(
            session_id,
            SettlementOutcome.CREDITED,
            transaction=entry,
            balance_after=entry.balance_after,
        )

    @classmethod
    def expire(cls, session_id: str) -> SettlementResult:
        """
        Mark a pending session expired. Never changes a balance.

        Completed or already expired sessions are left untouched.
        """
        return run_atomic_with_retry(
            lambda: cls._expire_locked(session_id),
            operation="settlement.expire",
            log_context={"session_id": session_id},
        )

    @classmethod
    def _expire_locked(cls, session_id: str) -> SettlementResult:
        logger = cls.get_logger()

        session = CheckoutSession.objects.select_for_update().filter(session_id=session_id).first()
        if session is None:
            logger.info("Expiry for unknown checkout session", extra={"session_id": session_id})
            return SettlementResult(session_id, SettlementOutcome.UNKNOWN_SESSION)

        if not session.is_pending:
            logger.info(
                "Expiry ignored for terminal checkout session",
                extra={"session_id": session_id, "status": session.status},
            )
            return SettlementResult(session_id, SettlementOutcome.ALREADY_TERMINAL)

        session.expire()
        session.save(update_fields=["status", "expired_at", "updated_at"])

        logger.info(
            "Checkout session expired",
            extra={"session_id": session_id, "user_id": session.user_id},
        )
        return SettlementResult(session_id, SettlementOutcome.EXPIRED)
