"""
WebhookEvent model: audit trail of verified Stripe deliveries.

Rows are written only after the signature checks out. They record what
arrived and how it was handled; they are not the settlement idempotency
guard (that is CheckoutSession.status).
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from credits.state_machines import WebhookEventStatus


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    One Stripe event, possibly delivered several times.

    Fields:
        stripe_event_id: Stripe Event ID (evt_xxx), unique
        event_type: e.g. "checkout.session.completed"
        payload: Verified JSON body
        status: Outcome of the latest delivery
        processed_at: When a delivery was last handled
        error_message: Failure details of the latest failed delivery
        delivery_count: How many times Stripe delivered this event
    """

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stripe Event ID (evt_xxx)",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Stripe event type (e.g., 'checkout.session.completed')",
    )

    payload = models.JSONField(
        help_text="Verified webhook payload",
    )

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )

    processed_at = models.DateTimeField(null=True, blank=True)

    error_message = models.TextField(null=True, blank=True)

    delivery_count = models.PositiveIntegerField(
        default=1,
        help_text="Number of deliveries received for this event",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "created_at"], name="webhook_status_created_idx"),
            models.Index(fields=["event_type", "created_at"], name="webhook_type_created_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.stripe_event_id}, {self.event_type})"

    def get_object_id(self) -> str | None:
        """Return payload.data.object.id, or None when absent."""
        try:
            return self.payload.get("data", {}).get("object", {}).get("id")
        except (AttributeError, TypeError):
            return None

    # Helpers below do not save; the caller saves.

    def mark_processed(self) -> None:
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_ignored(self) -> None:
        self.status = WebhookEventStatus.IGNORED
        self.processed_at = timezone.now()

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message
