"""
Concurrency tests for balance writes.

These run real threads against the test database, each with its own
connection, so the row lock and the atomic retry are exercised the way
concurrent requests and webhook deliveries hit them in production.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest
from django.db import connection

from credits.exceptions import InsufficientCreditsError
from credits.ledger import ledger
from credits.models import CreditAccount, CreditTransaction
from credits.services import AccountStore, SettlementService
from credits.state_machines import CheckoutSessionStatus, TransactionType
from credits.tests.factories import CheckoutSessionFactory, funded_account

WORKERS = 8


def run_concurrently(func, count: int = WORKERS) -> list:
    """Run `func` in `count` threads; return results or raised exceptions."""

    def worker(_):
        try:
            return func()
        except Exception as e:
            return e
        finally:
            connection.close()

    with ThreadPoolExecutor(max_workers=count) as executor:
        return list(executor.map(worker, range(count)))


@pytest.mark.django_db(transaction=True)
class TestConcurrentDebits:
    """Concurrent usage debits against one account."""

    def test_never_overdraws(self, user):
        """Balance 5 with 8 concurrent 1-credit debits: 5 succeed, 3 refused."""
        funded_account(user, 5)

        results = run_concurrently(
            lambda: ledger.debit_usage(user.pk, amount=1, feature_ref="face_swap")
        )

        succeeded = [r for r in results if not isinstance(r, Exception)]
        refused = [r for r in results if isinstance(r, InsufficientCreditsError)]
        assert len(succeeded) == 5
        assert len(refused) == 3

        account = CreditAccount.objects.get(pk=user.pk)
        assert account.credits == 0
        usage = CreditTransaction.objects.filter(user=user, type=TransactionType.USAGE)
        assert usage.count() == 5
        assert sorted(usage.values_list("balance_after", flat=True)) == [0, 1, 2, 3, 4]


@pytest.mark.django_db(transaction=True)
class TestConcurrentProvisioning:
    """Concurrent first access to an account."""

    def test_single_account_and_welcome_bonus(self, user, settings):
        settings.CREDITS_WELCOME_BONUS = 10

        results = run_concurrently(lambda: AccountStore.get_or_create(user.pk))

        assert not [r for r in results if isinstance(r, Exception)]
        assert CreditAccount.objects.filter(pk=user.pk).count() == 1
        assert CreditAccount.objects.get(pk=user.pk).credits == 10
        assert CreditTransaction.objects.filter(user=user, type=TransactionType.BONUS).count() == 1


@pytest.mark.django_db(transaction=True)
class TestConcurrentSettlement:
    """Duplicate webhook deliveries racing on one checkout session."""

    def test_credits_once(self, user, package):
        funded_account(user, 10)
        session = CheckoutSessionFactory(user=user, package=package)

        results = run_concurrently(lambda: SettlementService.settle_completed(session.session_id))

        assert not [r for r in results if isinstance(r, Exception)]
        assert sum(1 for r in results if r.credited) == 1
        assert CreditAccount.objects.get(pk=user.pk).credits == 2210
        assert CreditTransaction.objects.filter(type=TransactionType.PURCHASE).count() == 1
        status = type(session).objects.values_list("status", flat=True).get(pk=session.pk)
        assert status == CheckoutSessionStatus.COMPLETED
