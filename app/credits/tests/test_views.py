"""
Tests for the credits API views.

Services run for real against the test database; Stripe is mocked at the
adapter boundary.
"""

from unittest.mock import patch

import pytest
from django.urls import reverse

from credits.adapters import CheckoutSessionResult, CustomerResult
from credits.exceptions import PaymentProviderUnavailableError
from credits.ledger import ledger
from credits.models import CreditAccount, CreditTransaction
from credits.services import SettlementService
from credits.state_machines import TransactionType
from credits.tests.factories import CheckoutSessionFactory, CreditPackageFactory, funded_account


@pytest.mark.django_db
class TestAuthenticationRequired:
    """Every endpoint except the catalog needs a token."""

    @pytest.mark.parametrize(
        "method,name,args",
        [
            ("get", "credits:balance", []),
            ("get", "credits:transactions", []),
            ("post", "credits:checkout", []),
            ("get", "credits:checkout-status", ["cs_1"]),
            ("post", "credits:usage", []),
        ],
    )
    def test_unauthenticated(self, api_client, method, name, args):
        response = getattr(api_client, method)(reverse(name, args=args))

        assert response.status_code == 401


@pytest.mark.django_db
class TestBalanceView:
    """Tests for GET balance/."""

    def test_first_call_provisions_welcome_bonus(self, auth_client, user, settings):
        settings.CREDITS_WELCOME_BONUS = 10

        response = auth_client.get(reverse("credits:balance"))

        assert response.status_code == 200
        assert response.data == {"credits": 10, "user_id": user.pk, "total_credits_earned": 10}

    def test_reflects_spending(self, auth_client, user):
        funded_account(user, 10)
        ledger.debit_usage(user.pk, amount=4, feature_ref="face_swap")

        response = auth_client.get(reverse("credits:balance"))

        assert response.data["credits"] == 6
        assert response.data["total_credits_earned"] == 10


@pytest.mark.django_db
class TestTransactionListView:
    """Tests for GET transactions/."""

    def test_lists_own_history(self, auth_client, user, other_user):
        funded_account(user, 10)
        ledger.debit_usage(user.pk, amount=1, feature_ref="face_swap")
        funded_account(other_user, 5)

        response = auth_client.get(reverse("credits:transactions"))

        assert response.status_code == 200
        assert len(response.data["items"]) == 2
        assert response.data["has_more"] is False
        assert response.data["cursor"] is None
        item = response.data["items"][0]
        assert set(item) == {
            "id",
            "type",
            "credits",
            "balance_before",
            "balance_after",
            "description",
            "metadata",
            "created_at",
        }

    def test_paginates_with_cursor(self, auth_client, user):
        funded_account(user, 10)
        for _ in range(4):
            ledger.debit_usage(user.pk, amount=1, feature_ref="face_swap")

        first = auth_client.get(reverse("credits:transactions"), {"limit": 3})
        second = auth_client.get(
            reverse("credits:transactions"), {"limit": 3, "cursor": first.data["cursor"]}
        )

        assert first.data["has_more"] is True
        assert second.data["has_more"] is False
        ids = [tx["id"] for tx in first.data["items"] + second.data["items"]]
        assert len(set(ids)) == 5

    @pytest.mark.parametrize("params", [{"limit": 0}, {"limit": "abc"}, {"cursor": "not-a-uuid"}])
    def test_invalid_query(self, auth_client, params):
        response = auth_client.get(reverse("credits:transactions"), params)

        assert response.status_code == 400

    def test_foreign_cursor(self, auth_client, user, other_user):
        funded_account(other_user, 5)
        foreign = CreditTransaction.objects.get(user=other_user)

        response = auth_client.get(reverse("credits:transactions"), {"cursor": str(foreign.id)})

        assert response.status_code == 400
        assert response.data["error_code"] == "INVALID_CURSOR"


@pytest.mark.django_db
class TestPackageListView:
    """Tests for GET packages/."""

    def test_public_catalog(self, api_client):
        CreditPackageFactory(package_id="pro", name="Pro", credits=30, price_cents=2499, popular=True)
        CreditPackageFactory(package_id="retired", active=False)

        response = api_client.get(reverse("credits:packages"))

        assert response.status_code == 200
        assert response.data == [
            {
                "package_id": "pro",
                "name": "Pro",
                "credits": 30,
                "price_cents": 2499,
                "price": "24.99",
                "description": "",
                "popular": True,
            }
        ]


@pytest.mark.django_db
class TestCreateCheckoutSessionView:
    """Tests for POST checkout/."""

    @pytest.fixture
    def mock_stripe(self):
        with (
            patch("credits.services.account_service.StripeAdapter.create_customer") as create_customer,
            patch(
                "credits.services.checkout_service.StripeAdapter.create_checkout_session"
            ) as create_session,
        ):
            create_customer.return_value = CustomerResult(id="cus_view")
            create_session.return_value = CheckoutSessionResult(
                id="cs_test_view",
                url="https://checkout.stripe.com/c/pay/cs_test_view",
            )
            yield create_session

    def test_creates_session(self, auth_client, package, mock_stripe):
        response = auth_client.post(reverse("credits:checkout"), {"package_id": "creator"}, format="json")

        assert response.status_code == 201
        assert response.data == {
            "session_id": "cs_test_view",
            "redirect_url": "https://checkout.stripe.com/c/pay/cs_test_view",
        }

    def test_unknown_package(self, auth_client, mock_stripe):
        response = auth_client.post(reverse("credits:checkout"), {"package_id": "nope"}, format="json")

        assert response.status_code == 404
        assert response.data["error_code"] == "PACKAGE_NOT_FOUND"

    def test_unavailable_package(self, auth_client, mock_stripe):
        CreditPackageFactory(package_id="legacy", active=False)

        response = auth_client.post(reverse("credits:checkout"), {"package_id": "legacy"}, format="json")

        assert response.status_code == 400
        assert response.data["error_code"] == "PACKAGE_UNAVAILABLE"

    def test_missing_package_id(self, auth_client, mock_stripe):
        response = auth_client.post(reverse("credits:checkout"), {}, format="json")

        assert response.status_code == 400

    def test_provider_unavailable(self, auth_client, package, mock_stripe):
        mock_stripe.side_effect = PaymentProviderUnavailableError("Stripe down", stripe_code="api_error")

        response = auth_client.post(reverse("credits:checkout"), {"package_id": "creator"}, format="json")

        assert response.status_code == 502
        assert response.data == {
            "error": "Payment provider unavailable",
            "error_code": "PAYMENT_PROVIDER_UNAVAILABLE",
        }


@pytest.mark.django_db
class TestCheckoutSessionStatusView:
    """Tests for GET checkout/<session_id>/."""

    def test_pending(self, auth_client, pending_session):
        response = auth_client.get(reverse("credits:checkout-status", args=[pending_session.session_id]))

        assert response.status_code == 200
        assert response.data["status"] == "pending"
        assert response.data["package_id"] == "creator"
        assert response.data["credits"] == 2200
        assert response.data["amount_due"] == 4999

    def test_completed(self, auth_client, user, pending_session):
        funded_account(user, 10)
        SettlementService.settle_completed(pending_session.session_id)

        response = auth_client.get(reverse("credits:checkout-status", args=[pending_session.session_id]))

        assert response.data["status"] == "completed"
        assert response.data["completed_at"] is not None

    def test_not_found(self, auth_client):
        response = auth_client.get(reverse("credits:checkout-status", args=["cs_missing"]))

        assert response.status_code == 404

    def test_other_users_session(self, auth_client, other_user):
        session = CheckoutSessionFactory(user=other_user)

        response = auth_client.get(reverse("credits:checkout-status", args=[session.session_id]))

        assert response.status_code == 403
        assert response.data["error_code"] == "FORBIDDEN"


@pytest.mark.django_db
class TestUsageDebitView:
    """Tests for POST usage/."""

    def test_debits_own_account(self, auth_client, user):
        funded_account(user, 10)

        response = auth_client.post(
            reverse("credits:usage"), {"amount": 3, "feature_ref": "face_swap"}, format="json"
        )

        assert response.status_code == 201
        assert response.data["credits"] == 7
        assert response.data["transaction"]["type"] == TransactionType.USAGE
        assert response.data["transaction"]["credits"] == -3
        assert CreditAccount.objects.get(pk=user.pk).credits == 7

    def test_insufficient_credits(self, auth_client, user):
        funded_account(user, 2)

        response = auth_client.post(
            reverse("credits:usage"), {"amount": 3, "feature_ref": "face_swap"}, format="json"
        )

        assert response.status_code == 402
        assert response.data["error_code"] == "INSUFFICIENT_CREDITS"
        assert response.data["details"] == {"required": 3, "available": 2}
        assert CreditAccount.objects.get(pk=user.pk).credits == 2

    @pytest.mark.parametrize("body", [{"amount": 0, "feature_ref": "x"}, {"amount": 1}])
    def test_invalid_body(self, auth_client, body):
        response = auth_client.post(reverse("credits:usage"), body, format="json")

        assert response.status_code == 400

    def test_cannot_debit_another_user(self, auth_client, other_user):
        funded_account(other_user, 10)

        response = auth_client.post(
            reverse("credits:usage"),
            {"amount": 1, "feature_ref": "face_swap", "user_id": other_user.pk},
            format="json",
        )

        assert response.status_code == 403
        assert CreditAccount.objects.get(pk=other_user.pk).credits == 10

    def test_staff_debits_another_user(self, api_client, staff_user, user):
        funded_account(user, 10)
        api_client.force_authenticate(user=staff_user)

        response = api_client.post(
            reverse("credits:usage"),
            {"amount": 2, "feature_ref": "face_swap", "user_id": user.pk},
            format="json",
        )

        assert response.status_code == 201
        assert CreditAccount.objects.get(pk=user.pk).credits == 8

    def test_staff_targeting_missing_user(self, api_client, staff_user):
        api_client.force_authenticate(user=staff_user)

        response = api_client.post(
            reverse("credits:usage"),
            {"amount": 1, "feature_ref": "face_swap", "user_id": 999999},
            format="json",
        )

        assert response.status_code == 404
        assert response.data["error_code"] == "USER_NOT_FOUND"
