"""
Ledger service: the single writer of credit balances.

LedgerService.apply_delta() is the only code path that changes
CreditAccount.credits. It locks the account row, checks the balance for
usage debits, writes the new balance and appends the CreditTransaction in
one atomic unit, so the cached balance always equals the sum of the log.

Usage:
    from credits.ledger import ledger
    from credits.ledger.types import UsageMetadata

    tx = ledger.debit_usage(user.pk, amount=1, feature_ref="face_swap")
    tx.balance_after  # new balance

    # Generic form
    tx = ledger.apply_delta(
        user_id=user.pk,
        delta=100,
        tx_type=TransactionType.BONUS,
        description="Support goodwill",
        metadata=BonusMetadata(reason="support"),
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from credits.exceptions import (
    CreditAccountNotFoundError,
    InsufficientCreditsError,
    InvalidLedgerOperationError,
)
from credits.ledger.retry import run_atomic_with_retry
from credits.ledger.types import (
    METADATA_TYPES,
    BonusMetadata,
    PurchaseMetadata,
    UsageMetadata,
)
from credits.models import CreditAccount, CreditTransaction
from credits.state_machines import TransactionType

if TYPE_CHECKING:
    from credits.ledger.types import TransactionMetadata


logger = logging.getLogger(__name__)


class LedgerService:
    """
    Service class for ledger operations.

    Key features:
    - Row lock on the account (select_for_update) serializes writers of the
      same account; different accounts never wait on each other
    - Usage debits are rejected before any write when the balance would go
      negative
    - Optional idempotency key: a repeated call returns the recorded
      transaction instead of applying the delta twice
    - Bounded retry on write contention when not nested in a caller's
      transaction

    All methods are class methods - no instance state is maintained.
    """

    @classmethod
    def apply_delta(
        cls,
        user_id: int,
        delta: int,
        tx_type: TransactionType | str,
        description: str,
        metadata: TransactionMetadata,
        idempotency_key: str | None = None,
    ) -> CreditTransaction:
        """
        Apply a signed credit delta to an account and record it.

        Args:
            user_id: Account owner
            delta: Signed credits (negative for usage, positive otherwise)
            tx_type: purchase, usage or bonus
            description: Human-readable summary for the history
            metadata: Typed metadata whose tag matches tx_type
            idempotency_key: Natural key; defaults to the metadata's own
                key (purchases are keyed by session)

        Returns:
            The recorded CreditTransaction (or the one already recorded
            under the same idempotency key)

        Raises:
            InvalidLedgerOperationError: Delta, type and metadata disagree
            CreditAccountNotFoundError: The user has no account
            InsufficientCreditsError: Usage debit exceeds the balance
            PersistenceConflictError: Contention outlasted every retry
        """
        cls._validate(delta, tx_type, metadata)
        key = idempotency_key or metadata.idempotency_key

        return run_atomic_with_retry(
            lambda: cls._apply_locked(user_id, delta, tx_type, description, metadata, key),
            operation="ledger.apply_delta",
            log_context={"user_id": user_id, "delta": delta, "tx_type": str(tx_type)},
        )

    # =========================================================================
    # Named entry points
    # =========================================================================

    @classmethod
    def credit_purchase(
        cls,
        user_id: int,
        credits: int,
        package_id: str,
        session_id: str,
    ) -> CreditTransaction:
        """Record credits bought through checkout session `session_id`."""
        return cls.apply_delta(
            user_id=user_id,
            delta=credits,
            tx_type=TransactionType.PURCHASE,
            description=f"Package purchase: {package_id}",
            metadata=PurchaseMetadata(package_id=package_id, session_id=session_id),
        )

    @classmethod
    def debit_usage(
        cls,
        user_id: int,
        amount: int,
        feature_ref: str,
        description: str | None = None,
    ) -> CreditTransaction:
        """
        Consume `amount` credits for a feature.

        Raises:
            InsufficientCreditsError: Balance is lower than `amount`
        """
        return cls.apply_delta(
            user_id=user_id,
            delta=-amount,
            tx_type=TransactionType.USAGE,
            description=description or f"{feature_ref} usage",
            metadata=UsageMetadata(feature_ref=feature_ref),
        )

    @classmethod
    def grant_bonus(
        cls,
        user_id: int,
        credits: int,
        reason: str,
        description: str,
        idempotency_key: str | None = None,
    ) -> CreditTransaction:
        """Grant free credits (welcome bonus, goodwill)."""
        return cls.apply_delta(
            user_id=user_id,
            delta=credits,
            tx_type=TransactionType.BONUS,
            description=description,
            metadata=BonusMetadata(reason=reason),
            idempotency_key=idempotency_key,
        )

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _validate(delta: int, tx_type: str, metadata: TransactionMetadata) -> None:
        """
        Check that delta, type and metadata describe a legal change.

        Raises:
            InvalidLedgerOperationError: On any mismatch
        """
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise InvalidLedgerOperationError(
                "delta must be a non-zero integer",
                details={"delta": repr(delta)},
            )

        expected_metadata = METADATA_TYPES.get(tx_type)
        if expected_metadata is None:
            raise InvalidLedgerOperationError(
                f"Unknown transaction type: {tx_type}",
                details={"tx_type": str(tx_type)},
            )
        if not isinstance(metadata, expected_metadata):
            raise InvalidLedgerOperationError(
                f"{type(metadata).__name__} cannot describe a {tx_type} transaction",
                details={"tx_type": str(tx_type), "metadata": type(metadata).__name__},
            )

        if tx_type == TransactionType.USAGE and delta > 0:
            raise InvalidLedgerOperationError(
                "Usage transactions must debit credits",
                details={"delta": delta},
            )
        if tx_type != TransactionType.USAGE and delta < 0:
            raise InvalidLedgerOperationError(
                f"{tx_type} transactions must credit the account",
                details={"delta": delta},
            )

    @staticmethod
    def _apply_locked(
        user_id: int,
        delta: int,
        tx_type: str,
        description: str,
        metadata: TransactionMetadata,
        idempotency_key: str | None,
    ) -> CreditTransaction:
        """
        Read-modify-write of one account. Runs inside an atomic block.
        """
        if idempotency_key:
            existing = CreditTransaction.objects.filter(
                idempotency_key=idempotency_key
            ).first()
            if existing is not None:
                logger.info(
                    "Ledger delta already recorded, returning existing transaction",
                    extra={
                        "user_id": user_id,
                        "idempotency_key": idempotency_key,
                        "transaction_id": str(existing.id),
                    },
                )
                return existing

        account = CreditAccount.objects.select_for_update().filter(pk=user_id).first()
        if account is None:
            raise CreditAccountNotFoundError(
                f"No credit account for user {user_id}",
                details={"user_id": user_id},
            )

        balance_before = account.credits
        balance_after = balance_before + delta

        if tx_type == TransactionType.USAGE and balance_after < 0:
            logger.info(
                "Usage debit rejected, insufficient credits",
                extra={"user_id": user_id, "required": -delta, "available": balance_before},
            )
            raise InsufficientCreditsError(
                user_id=user_id,
                required=-delta,
                available=balance_before,
            )

        total_earned = account.total_credits_earned + delta if delta > 0 else None
        CreditAccount.objects.filter(pk=user_id)._write_balance(
            credits=balance_after,
            total_credits_earned=total_earned,
        )

        entry = CreditTransaction.objects.create(
            user_id=user_id,
            type=tx_type,
            credits=delta,
            balance_before=balance_before,
            balance_after=balance_after,
            description=description[:255],
            metadata=metadata.to_dict(),
            idempotency_key=idempotency_key,
        )

        logger.info(
            "Ledger delta applied",
            extra={
                "user_id": user_id,
                "transaction_id": str(entry.id),
                "tx_type": str(tx_type),
                "delta": delta,
                "balance_before": balance_before,
                "balance_after": balance_after,
            },
        )
        return entry


# Singleton instance for convenient access
ledger = LedgerService()
