"""
CreditAccount model: one cached balance per user.

The balance is a denormalized aggregate of the transaction log. The ledger
(credits.ledger) is the only code allowed to change it, and this module
enforces that at the model boundary:

- CreditAccount.save() never writes `credits` or `total_credits_earned`
  on an existing row, and refuses to create a row with a non-zero balance.
- CreditAccountQuerySet.update() / bulk_update() reject those fields.
- The ledger writes them through CreditAccountQuerySet._write_balance().

Usage:
    from credits.services.account_service import AccountStore

    account = AccountStore.get_or_create(user.pk)
    account.credits  # cached balance, O(1)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

BALANCE_FIELDS = frozenset({"credits", "total_credits_earned"})


class BalanceWriteError(Exception):
    """Raised when code outside the ledger tries to write a balance field."""


class CreditAccountQuerySet(models.QuerySet):
    """QuerySet that keeps balance fields out of generic bulk writes."""

    def update(self, **kwargs):
        blocked = BALANCE_FIELDS.intersection(kwargs)
        if blocked:
            raise BalanceWriteError(
                f"{sorted(blocked)} can only be changed through the credits ledger"
            )
        return super().update(**kwargs)

    def bulk_update(self, objs, fields, batch_size=None):
        blocked = BALANCE_FIELDS.intersection(fields)
        if blocked:
            raise BalanceWriteError(
                f"{sorted(blocked)} can only be changed through the credits ledger"
            )
        return super().bulk_update(objs, fields, batch_size=batch_size)

    def _write_balance(self, *, credits: int, total_credits_earned: int | None = None) -> int:
        """
        Write the cached balance. Reserved for credits.ledger.

        Must run inside the ledger's atomic block, after the row was locked
        and the matching CreditTransaction computed.
        """
        values = {"credits": credits, "updated_at": timezone.now()}
        if total_credits_earned is not None:
            values["total_credits_earned"] = total_credits_earned
        return super().update(**values)


class CreditAccount(models.Model):
    """
    Per-user credit balance.

    Fields:
        user: Owner, also the primary key (account key == user id)
        credits: Cached current balance, equal to the sum of the user's
            transaction deltas
        total_credits_earned: Lifetime granted credits (purchases and
            bonuses), monotonic
        payment_customer_ref: Stripe Customer id (cus_xxx), set lazily at
            first checkout
        created_at / updated_at: Timestamps

    Note:
        Accounts are never deleted; the user FK is PROTECT so the financial
        history cannot disappear with a user row.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        primary_key=True,
        related_name="credit_account",
        help_text="Owner of this balance (also the account key)",
    )

    credits = models.IntegerField(
        default=0,
        help_text="Cached current balance; written only by the ledger",
    )

    total_credits_earned = models.IntegerField(
        default=0,
        help_text="Lifetime granted credits; written only by the ledger",
    )

    payment_customer_ref = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Stripe Customer ID (cus_xxx)",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CreditAccountQuerySet.as_manager()

    class Meta:
        verbose_name = "Credit Account"
        verbose_name_plural = "Credit Accounts"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(credits__gte=0),
                name="credit_account_balance_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(total_credits_earned__gte=0),
                name="credit_account_earned_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"CreditAccount(user={self.user_id}, credits={self.credits})"

    def save(self, *args, **kwargs):
        """
        Save everything except the balance fields.

        A new account must start at zero; the welcome bonus and every later
        change arrive as ledger transactions.
        """
        if self._state.adding:
            if self.credits or self.total_credits_earned:
                raise BalanceWriteError(
                    "New accounts start at zero; fund them through the credits ledger"
                )
            return super().save(*args, **kwargs)

        update_fields = kwargs.get("update_fields")
        if update_fields is None:
            kwargs["update_fields"] = [
                f.name
                for f in self._meta.concrete_fields
                if not f.primary_key and f.name not in BALANCE_FIELDS
            ]
        elif BALANCE_FIELDS.intersection(update_fields):
            raise BalanceWriteError(
                "credits and total_credits_earned can only be changed through the credits ledger"
            )
        return super().save(*args, **kwargs)
