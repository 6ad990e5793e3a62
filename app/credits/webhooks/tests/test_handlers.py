"""
Tests for the webhook handler registry and checkout handlers.
"""

import pytest

from credits.models import CreditAccount
from credits.services import SettlementOutcome
from credits.tests.factories import WebhookEventFactory, build_event
from credits.webhooks.handlers import WEBHOOK_HANDLERS, dispatch_webhook, has_handler


def checkout_event(event_type: str, session_id: str, **obj):
    payload = build_event(event_type, session_id, **obj)
    return WebhookEventFactory(
        stripe_event_id=payload["id"],
        event_type=event_type,
        payload=payload,
    )


class TestRegistry:
    """Tests for handler registration."""

    def test_checkout_handlers_registered(self):
        assert has_handler("checkout.session.completed")
        assert has_handler("checkout.session.async_payment_succeeded")
        assert has_handler("checkout.session.expired")
        assert not has_handler("invoice.paid")

    def test_registry_is_keyed_by_event_type(self):
        assert set(WEBHOOK_HANDLERS) >= {
            "checkout.session.completed",
            "checkout.session.expired",
        }


@pytest.mark.django_db
class TestDispatch:
    """Tests for dispatch_webhook()."""

    def test_unhandled_type_succeeds_with_no_data(self):
        event = WebhookEventFactory(event_type="customer.created", payload={"id": "evt_x"})

        result = dispatch_webhook(event)

        assert result.success
        assert result.data is None

    def test_completed_settles(self, user, account_with_10, pending_session):
        result = dispatch_webhook(checkout_event("checkout.session.completed", pending_session.session_id))

        assert result.success
        assert result.data.outcome == SettlementOutcome.CREDITED
        assert CreditAccount.objects.get(pk=user.pk).credits == 2210

    def test_completed_unpaid_waits(self, user, account_with_10, pending_session):
        result = dispatch_webhook(
            checkout_event("checkout.session.completed", pending_session.session_id, payment_status="unpaid")
        )

        assert result.data.outcome == SettlementOutcome.AWAITING_PAYMENT

    def test_async_payment_settles(self, user, account_with_10, pending_session):
        result = dispatch_webhook(
            checkout_event("checkout.session.async_payment_succeeded", pending_session.session_id)
        )

        assert result.data.outcome == SettlementOutcome.CREDITED

    def test_expired(self, pending_session):
        result = dispatch_webhook(checkout_event("checkout.session.expired", pending_session.session_id))

        assert result.data.outcome == SettlementOutcome.EXPIRED

    @pytest.mark.parametrize(
        "event_type",
        [
            "checkout.session.completed",
            "checkout.session.async_payment_succeeded",
            "checkout.session.expired",
        ],
    )
    def test_missing_session_id_fails(self, event_type):
        event = WebhookEventFactory(event_type=event_type, payload={"id": "evt_y", "data": {"object": {}}})

        result = dispatch_webhook(event)

        assert not result.success
        assert result.error_code == "INVALID_WEBHOOK_PAYLOAD"
