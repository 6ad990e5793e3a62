"""
Pytest fixtures for credits tests.

Fixtures provide users, packages, accounts and checkout sessions in the
states the ledger, settlement and API tests start from, plus a helper to
build signed Stripe webhook deliveries.

Usage:
    def test_settle(pending_session, signed_webhook):
        body, header = signed_webhook("checkout.session.completed", pending_session.session_id)
"""

import json

import pytest
from rest_framework.test import APIClient

from authentication.tests.factories import UserFactory
from credits.tests.factories import (
    CheckoutSessionFactory,
    CreditPackageFactory,
    build_event,
    funded_account,
    sign_payload,
)

WEBHOOK_SECRET = "whsec_test_secret"


# =============================================================================
# Users and Clients
# =============================================================================


@pytest.fixture
def user(db):
    """Create a test user."""
    return UserFactory()


@pytest.fixture
def other_user(db):
    """A second user, for ownership checks."""
    return UserFactory()


@pytest.fixture
def staff_user(db):
    return UserFactory(is_staff=True)


@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def auth_client(user):
    """API client authenticated as `user`."""
    client = APIClient()
    client.force_authenticate(user=user)
    return client


# =============================================================================
# Catalog and Accounts
# =============================================================================


@pytest.fixture
def package(db):
    """The 'creator' package: 2200 credits for $49.99."""
    return CreditPackageFactory(package_id="creator", name="Creator", credits=2200, price_cents=4999)


@pytest.fixture
def account_with_10(user):
    """`user`'s account holding 10 credits."""
    return funded_account(user, 10)


# =============================================================================
# Checkout Sessions
# =============================================================================


@pytest.fixture
def pending_session(user, package):
    """Pending checkout session for the creator package."""
    return CheckoutSessionFactory(user=user, package=package)


# =============================================================================
# Webhooks
# =============================================================================


@pytest.fixture
def webhook_secret(settings):
    """Configure the Stripe webhook signing secret."""
    settings.STRIPE_WEBHOOK_SECRET = WEBHOOK_SECRET
    return WEBHOOK_SECRET


@pytest.fixture
def signed_webhook(webhook_secret):
    """
    Factory returning (body, signature header) for a checkout event.

    Usage:
        body, header = signed_webhook("checkout.session.completed", "cs_123")
    """

    def _make(event_type: str, session_id: str, event_id: str | None = None, **obj):
        body = json.dumps(build_event(event_type, session_id, event_id, **obj)).encode()
        return body, sign_payload(body, webhook_secret)

    return _make
