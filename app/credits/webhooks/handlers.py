"""
Webhook event handlers for Stripe checkout events.

This module provides a handler registry and the handlers for the checkout
events the credits app consumes. Handlers receive the recorded
WebhookEvent and return a ServiceResult; an unknown checkout session is an
expected outcome, not an error, so Stripe is told the event was received.

Usage:
    from credits.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from core.services import ServiceResult
from credits.models import WebhookEvent
from credits.services import SettlementOutcome, SettlementService

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        event_type: The Stripe event type (e.g., "checkout.session.completed")
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def has_handler(event_type: str) -> bool:
    return event_type in WEBHOOK_HANDLERS


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to the appropriate handler.

    Unregistered event types succeed with no data so Stripe stops
    redelivering them.

    Raises:
        PersistenceConflictError: Propagated from settlement so the caller
            can answer 500 and let Stripe retry
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )

    return handler(webhook_event)


def _session_object(webhook_event: WebhookEvent) -> dict:
    data = webhook_event.payload.get("data") or {}
    return data.get("object") or {}


# =============================================================================
# Checkout Session Handlers
# =============================================================================


@register_handler("checkout.session.completed")
def handle_checkout_session_completed(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Settle a completed checkout session.

    Redeliveries are harmless: settlement reads the session status under
    lock and credits only a pending session.
    """
    session_id = webhook_event.get_object_id()
    if not session_id:
        logger.error(
            "checkout.session.completed: Could not extract session id",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.failure(
            "Could not extract checkout session id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    payment_status = _session_object(webhook_event).get("payment_status")
    result = SettlementService.settle_completed(session_id, payment_status=payment_status)

    logger.info(
        "Processed checkout.session.completed",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "session_id": session_id,
            "outcome": result.outcome.value,
        },
    )
    return ServiceResult.success(result)


@register_handler("checkout.session.async_payment_succeeded")
def handle_checkout_session_async_payment_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
    """Settle a session whose delayed payment method (bank debit) cleared."""
    session_id = webhook_event.get_object_id()
    if not session_id:
        return ServiceResult.failure(
            "Could not extract checkout session id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    result = SettlementService.settle_completed(session_id)
    logger.info(
        "Processed checkout.session.async_payment_succeeded",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "session_id": session_id,
            "outcome": result.outcome.value,
        },
    )
    return ServiceResult.success(result)


@register_handler("checkout.session.expired")
def handle_checkout_session_expired(webhook_event: WebhookEvent) -> ServiceResult:
    """Expire a pending session; completed sessions are left alone."""
    session_id = webhook_event.get_object_id()
    if not session_id:
        return ServiceResult.failure(
            "Could not extract checkout session id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    result = SettlementService.expire(session_id)
    if result.outcome == SettlementOutcome.ALREADY_TERMINAL:
        logger.info(
            "Expiry arrived after the session left pending",
            extra={"stripe_event_id": webhook_event.stripe_event_id, "session_id": session_id},
        )
    return ServiceResult.success(result)
