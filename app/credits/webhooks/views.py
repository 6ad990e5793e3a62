"""
Webhook endpoint view for Stripe.

The view:
1. Verifies the webhook signature (nothing is parsed or stored before)
2. Records the delivery in WebhookEvent (audit trail)
3. Dispatches the event to its handler synchronously
4. Answers 200 once the outcome is committed, 500 when it must be retried

Settlement runs inside the request: the response tells Stripe whether the
credit is durable, and Stripe's redelivery is the retry mechanism.

Usage:
    # In urls.py
    from credits.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.db.models import F
from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from core.exceptions import ValidationError
from credits.adapters import StripeAdapter
from credits.exceptions import (
    PersistenceConflictError,
    SignatureVerificationError,
    WebhookNotConfiguredError,
)
from credits.models import WebhookEvent
from credits.state_machines import WebhookEventStatus
from credits.webhooks.handlers import dispatch_webhook, has_handler

logger = logging.getLogger(__name__)


def _error(message: str, error_code: str, status: int) -> JsonResponse:
    return JsonResponse({"error": message, "error_code": error_code}, status=status)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive and settle Stripe webhook events.

    Returns:
        JsonResponse with status:
        - 200: Event received (settled, duplicate, unknown session or ignored)
        - 400: Missing or invalid signature, malformed event
        - 500: Webhook secret not configured, or settlement could not commit

    Example Stripe-Signature header:
        t=1614556800,v1=xxx,v0=yyy
    """
    payload = request.body
    signature = request.headers.get("Stripe-Signature", "")

    if not signature:
        logger.warning("Webhook received without Stripe-Signature header")
        return _error("Missing signature", "MISSING_SIGNATURE", 400)

    # Step 1: Verify signature
    try:
        event_data = StripeAdapter.verify_webhook_signature(payload, signature)
    except WebhookNotConfiguredError as e:
        logger.critical("Stripe webhook received but no signing secret is configured")
        return _error("Webhook not configured", e.error_code, 500)
    except SignatureVerificationError as e:
        return _error("Invalid signature", e.error_code, 400)
    except ValidationError as e:
        logger.warning("Verified webhook body is not a JSON object")
        return _error("Invalid payload", e.error_code, 400)

    stripe_event_id = event_data.get("id")
    event_type = event_data.get("type")

    if not stripe_event_id or not event_type:
        logger.warning("Webhook missing required fields")
        return _error("Invalid event", "INVALID_EVENT", 400)

    logger.info(
        f"Received Stripe webhook: {event_type}",
        extra={"stripe_event_id": stripe_event_id, "event_type": event_type},
    )

    # Step 2: Record the delivery
    webhook_event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event_id,
        defaults={
            "event_type": event_type,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )
    if not created:
        WebhookEvent.objects.filter(pk=webhook_event.pk).update(
            delivery_count=F("delivery_count") + 1
        )
        logger.info(
            f"Redelivery of webhook event with status: {webhook_event.status}",
            extra={"stripe_event_id": stripe_event_id},
        )

    # Step 3: Dispatch; settlement is idempotent on the session status
    try:
        result = dispatch_webhook(webhook_event)
    except PersistenceConflictError as e:
        webhook_event.mark_failed(str(e))
        webhook_event.save(update_fields=["status", "error_message", "updated_at"])
        logger.error(
            "Webhook settlement could not commit, asking Stripe to retry",
            extra={"stripe_event_id": stripe_event_id, "event_type": event_type},
        )
        return _error("Temporary failure, please retry", e.error_code, 500)

    if not result.success:
        webhook_event.mark_failed(result.error or "")
        webhook_event.save(update_fields=["status", "error_message", "updated_at"])
        logger.error(
            "Webhook event could not be handled",
            extra={
                "stripe_event_id": stripe_event_id,
                "event_type": event_type,
                "error_code": result.error_code,
            },
        )
    elif has_handler(event_type):
        webhook_event.mark_processed()
        webhook_event.save(update_fields=["status", "processed_at", "error_message", "updated_at"])
    else:
        webhook_event.mark_ignored()
        webhook_event.save(update_fields=["status", "processed_at", "updated_at"])

    return JsonResponse({"received": True}, status=200)
