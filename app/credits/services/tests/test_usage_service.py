"""
Tests for UsageService.
"""

import pytest

from credits.exceptions import InsufficientCreditsError
from credits.models import CreditAccount
from credits.services import UsageService
from credits.tests.factories import funded_account


class TestDebitForUsage:
    """Tests for UsageService.debit_for_usage()."""

    def test_debits_existing_account(self, db, user):
        funded_account(user, 10)

        tx = UsageService.debit_for_usage(user.pk, amount=3, feature_ref="face_swap")

        assert tx.balance_after == 7
        assert CreditAccount.objects.get(pk=user.pk).credits == 7

    def test_provisions_account_first(self, db, user, settings):
        """A user's first spend draws from the welcome bonus."""
        settings.CREDITS_WELCOME_BONUS = 10

        tx = UsageService.debit_for_usage(user.pk, amount=1, feature_ref="face_swap")

        assert tx.balance_before == 10
        assert tx.balance_after == 9

    def test_insufficient_credits(self, db, user):
        funded_account(user, 2)

        with pytest.raises(InsufficientCreditsError):
            UsageService.debit_for_usage(user.pk, amount=3, feature_ref="face_swap")

        assert CreditAccount.objects.get(pk=user.pk).credits == 2
