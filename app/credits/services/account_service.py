"""
Account store: lazy provisioning and balance reads.

Every user gets a CreditAccount the first time any caller touches it. The
account is created at zero and funded with the welcome bonus through the
ledger in the same transaction, so a new balance is never observable
without its bonus transaction.

Usage:
    from credits.services import AccountStore

    balance = AccountStore.get_balance(user.pk)   # 10 for a brand-new user
    customer_id = AccountStore.ensure_payment_customer(user)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings

from core.services import BaseService
from credits.adapters import CreateCustomerParams, IdempotencyKeyGenerator, StripeAdapter
from credits.ledger import BonusMetadata, ledger, run_atomic_with_retry
from credits.models import CreditAccount

if TYPE_CHECKING:
    from authentication.models import User


class AccountStore(BaseService):
    """
    Owner of CreditAccount rows.

    Balance fields are never written here; the welcome bonus goes through
    ledger.grant_bonus() like any other credit.
    """

    @classmethod
    def get_or_create(cls, user_id: int) -> CreditAccount:
        """
        Return the user's account, creating and funding it on first access.

        Concurrent first calls for the same user end with exactly one
        account and one welcome transaction: the loser of the insert race
        reads the winner's row and grants nothing.
        """
        account = CreditAccount.objects.filter(pk=user_id).first()
        if account is not None:
            return account

        return run_atomic_with_retry(
            lambda: cls._provision(user_id),
            operation="account.provision",
            log_context={"user_id": user_id},
        )

    @classmethod
    def _provision(cls, user_id: int) -> CreditAccount:
        account, created = CreditAccount.objects.get_or_create(user_id=user_id)
        if not created:
            return account

        welcome_credits = settings.CREDITS_WELCOME_BONUS
        if welcome_credits > 0:
            ledger.grant_bonus(
                user_id=user_id,
                credits=welcome_credits,
                reason=BonusMetadata.WELCOME,
                description="Welcome credits",
                idempotency_key=f"welcome:{user_id}",
            )
            account = CreditAccount.objects.get(pk=user_id)

        cls.get_logger().info(
            "Credit account provisioned",
            extra={"user_id": user_id, "welcome_credits": welcome_credits},
        )
        return account

    @classmethod
    def get_balance(cls, user_id: int) -> int:
        """Cached balance; provisions the account first when missing."""
        return cls.get_or_create(user_id).credits

    @classmethod
    def ensure_payment_customer(cls, user: User) -> str:
        """
        Return the user's Stripe customer id, creating the customer if needed.

        Runs outside any transaction so no lock is held across the Stripe
        call. The id is stored with a conditional update that only fills an
        empty column; when two requests race, the stored id wins and the
        Stripe idempotency key makes both calls resolve to the same customer.

        Raises:
            PaymentProviderError: Stripe rejected the customer
            PaymentProviderUnavailableError: Stripe unreachable
        """
        account = cls.get_or_create(user.pk)
        if account.payment_customer_ref:
            return account.payment_customer_ref

        customer = StripeAdapter.create_customer(
            CreateCustomerParams(
                email=user.email,
                idempotency_key=IdempotencyKeyGenerator.generate("create_customer", user.pk),
                metadata={"user_id": str(user.pk)},
            )
        )

        updated = CreditAccount.objects.filter(
            pk=user.pk,
            payment_customer_ref__isnull=True,
        ).update(payment_customer_ref=customer.id)

        if updated:
            cls.get_logger().info(
                "Stripe customer linked to credit account",
                extra={"user_id": user.pk, "customer_id": customer.id},
            )
            return customer.id

        stored = CreditAccount.objects.values_list("payment_customer_ref", flat=True).get(
            pk=user.pk
        )
        cls.get_logger().warning(
            "Stripe customer already linked by a concurrent request",
            extra={"user_id": user.pk, "customer_id": customer.id, "stored_customer_id": stored},
        )
        return stored
