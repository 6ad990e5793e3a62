"""
Tests for BalanceReconciliationService.

Drift is simulated with raw SQL, the only way around the model's balance
write guards.
"""

from unittest.mock import patch

from django.db import connection
from django.test.utils import CaptureQueriesContext

from credits.models import BalanceDiscrepancy, CreditAccount
from credits.services import BalanceReconciliationService
from credits.ledger import ledger
from credits.tests.factories import funded_account


def tamper_balance(user_id: int, credits: int) -> None:
    with connection.cursor() as cursor:
        cursor.execute(
            "UPDATE credits_creditaccount SET credits = %s WHERE user_id = %s",
            [credits, user_id],
        )


class TestReconciliation:
    """Tests for BalanceReconciliationService.run()."""

    def test_consistent_accounts(self, db, user, other_user):
        funded_account(user, 10)
        funded_account(other_user, 0)

        summary = BalanceReconciliationService.run()

        assert summary.accounts_checked == 2
        assert summary.discrepancies == 0
        assert not BalanceDiscrepancy.objects.exists()

    def test_flags_drifted_account(self, db, user, other_user):
        funded_account(user, 10)
        funded_account(other_user, 3)
        tamper_balance(user.pk, 50)

        summary = BalanceReconciliationService.run()

        assert summary.to_dict() == {
            "accounts_checked": 2,
            "discrepancies": 1,
            "flagged_user_ids": [user.pk],
        }
        discrepancy = BalanceDiscrepancy.objects.get()
        assert discrepancy.account_id == user.pk
        assert discrepancy.cached_credits == 50
        assert discrepancy.ledger_credits == 10
        assert discrepancy.difference == 40

    def test_never_rewrites_balance(self, db, user):
        funded_account(user, 10)
        tamper_balance(user.pk, 7)

        BalanceReconciliationService.run()

        assert CreditAccount.objects.get(pk=user.pk).credits == 7

    def test_repeated_runs_keep_one_open_discrepancy(self, db, user):
        funded_account(user, 10)
        tamper_balance(user.pk, 7)
        BalanceReconciliationService.run()
        tamper_balance(user.pk, 6)

        BalanceReconciliationService.run()

        discrepancy = BalanceDiscrepancy.objects.get(resolved=False)
        assert discrepancy.cached_credits == 6

    def test_account_without_transactions_is_zero(self, db, user):
        funded_account(user, 0)
        tamper_balance(user.pk, 5)

        summary = BalanceReconciliationService.run()

        assert summary.flagged_user_ids == [user.pk]
        assert BalanceDiscrepancy.objects.get().ledger_credits == 0


class TestReconciliationUnderConcurrentWrites:
    """A ledger write landing mid-run must not raise a false alarm."""

    def test_scan_reads_balance_and_ledger_in_one_query(self, db, user, other_user):
        funded_account(user, 10)
        funded_account(other_user, 3)

        with CaptureQueriesContext(connection) as ctx:
            rows = list(BalanceReconciliationService._scan())

        assert len(ctx.captured_queries) == 1
        assert sorted(rows) == sorted([(user.pk, 10, 10), (other_user.pk, 3, 3)])

    def test_debit_between_reads_is_not_flagged(self, db, user):
        funded_account(user, 5)
        cached_before = CreditAccount.objects.get(pk=user.pk).credits
        ledger.debit_usage(user.pk, amount=1, feature_ref="face_swap")
        # Balance read before the debit, ledger sum read after it.
        torn_rows = [(user.pk, cached_before, 4)]

        with patch.object(BalanceReconciliationService, "_scan", return_value=iter(torn_rows)):
            summary = BalanceReconciliationService.run()

        assert summary.accounts_checked == 1
        assert summary.discrepancies == 0
        assert summary.flagged_user_ids == []
        assert not BalanceDiscrepancy.objects.exists()

    def test_confirmed_drift_is_still_recorded_after_recheck(self, db, user):
        funded_account(user, 5)
        tamper_balance(user.pk, 9)

        with patch.object(
            BalanceReconciliationService, "_scan", return_value=iter([(user.pk, 9, 5)])
        ):
            summary = BalanceReconciliationService.run()

        assert summary.flagged_user_ids == [user.pk]
        discrepancy = BalanceDiscrepancy.objects.get()
        assert (discrepancy.cached_credits, discrepancy.ledger_credits) == (9, 5)
