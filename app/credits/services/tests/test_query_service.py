"""
Tests for QueryService history paging and catalog listing.
"""

import uuid
from datetime import timedelta

import pytest
from django.utils import timezone
from freezegun import freeze_time

from credits.exceptions import InvalidCursorError
from credits.ledger import ledger
from credits.services import QueryService
from credits.tests.factories import CreditPackageFactory, funded_account


@pytest.fixture
def history(user):
    """Seven transactions a minute apart (funding bonus plus six debits)."""
    start = timezone.now() - timedelta(hours=1)
    with freeze_time(start):
        funded_account(user, 20)
    for minute in range(1, 7):
        with freeze_time(start + timedelta(minutes=minute)):
            ledger.debit_usage(user.pk, amount=1, feature_ref=f"feature_{minute}")
    return user


class TestListTransactions:
    """Tests for QueryService.list_transactions()."""

    def test_newest_first(self, db, history):
        page = QueryService.list_transactions(history.pk, limit=10)

        assert [tx.metadata.get("feature_ref") for tx in page.items[:3]] == [
            "feature_6",
            "feature_5",
            "feature_4",
        ]
        assert len(page.items) == 7
        assert page.has_more is False
        assert page.cursor is None

    def test_pages_cover_history_without_overlap(self, db, history):
        first = QueryService.list_transactions(history.pk, limit=3)
        second = QueryService.list_transactions(history.pk, limit=3, cursor=first.cursor)
        third = QueryService.list_transactions(history.pk, limit=3, cursor=second.cursor)

        assert first.has_more and second.has_more
        assert third.has_more is False
        assert third.cursor is None

        ids = [tx.id for page in (first, second, third) for tx in page.items]
        assert len(ids) == 7
        assert len(set(ids)) == 7
        assert first.cursor == str(first.items[-1].id)

    def test_limit_is_capped(self, db, history, settings):
        settings.CREDITS_HISTORY_MAX_PAGE_SIZE = 2

        page = QueryService.list_transactions(history.pk, limit=50)

        assert len(page.items) == 2
        assert page.has_more

    def test_default_limit(self, db, history, settings):
        settings.CREDITS_HISTORY_PAGE_SIZE = 4

        assert len(QueryService.list_transactions(history.pk).items) == 4

    def test_empty_history(self, db, user):
        page = QueryService.list_transactions(user.pk)

        assert page.items == []
        assert page.has_more is False

    def test_only_own_transactions(self, db, history, other_user):
        funded_account(other_user, 5)

        page = QueryService.list_transactions(history.pk, limit=100)

        assert {tx.user_id for tx in page.items} == {history.pk}

    @pytest.mark.parametrize("cursor", ["not-a-uuid", str(uuid.uuid4())])
    def test_invalid_cursor(self, db, history, cursor):
        with pytest.raises(InvalidCursorError):
            QueryService.list_transactions(history.pk, cursor=cursor)

    def test_cursor_of_another_user(self, db, history, other_user):
        """A cursor cannot be used to read another user's history."""
        funded_account(other_user, 5)
        other_tx = ledger.debit_usage(other_user.pk, amount=1, feature_ref="x")

        with pytest.raises(InvalidCursorError):
            QueryService.list_transactions(history.pk, cursor=str(other_tx.id))


class TestListPackages:
    """Tests for QueryService.list_packages()."""

    def test_active_packages_cheapest_first(self, db):
        CreditPackageFactory(package_id="ultimate", price_cents=4999)
        CreditPackageFactory(package_id="starter", price_cents=999)
        CreditPackageFactory(package_id="retired", price_cents=500, active=False)

        packages = list(QueryService.list_packages())

        assert [p.package_id for p in packages] == ["starter", "ultimate"]
