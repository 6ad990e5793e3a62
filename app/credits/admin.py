"""
Django admin configuration for credits models.

Key features:
- CreditTransaction is immutable (no add/edit/delete)
- CreditAccount balances are read-only; corrections go through the ledger
- WebhookEvent is a read-only audit trail
- BalanceDiscrepancy can be resolved with notes, never created by hand
"""

from django.contrib import admin
from django.utils import timezone

from credits.models import (
    BalanceDiscrepancy,
    CheckoutSession,
    CreditAccount,
    CreditPackage,
    CreditTransaction,
    WebhookEvent,
)


@admin.register(CreditAccount)
class CreditAccountAdmin(admin.ModelAdmin):
    """
    Admin configuration for CreditAccount.

    Balance fields are shown but never editable here: the model refuses to
    save them outside the ledger.
    """

    list_display = ["user", "credits", "total_credits_earned", "payment_customer_ref", "updated_at"]
    search_fields = ["user__email", "payment_customer_ref"]
    readonly_fields = ["user", "credits", "total_credits_earned", "created_at", "updated_at"]
    ordering = ["-updated_at"]

    def has_add_permission(self, request) -> bool:
        """Accounts are provisioned by AccountStore on first access."""
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(CreditTransaction)
class CreditTransactionAdmin(admin.ModelAdmin):
    """
    Admin configuration for CreditTransaction.

    Transactions are immutable - they cannot be added, edited or deleted
    through the admin interface. Corrections are new ledger transactions.
    """

    list_display = [
        "id",
        "created_at",
        "user",
        "type",
        "credits",
        "balance_before",
        "balance_after",
        "description",
    ]
    list_filter = ["type", "created_at"]
    search_fields = ["id", "user__email", "idempotency_key", "description"]
    readonly_fields = [
        "id",
        "user",
        "type",
        "credits",
        "balance_before",
        "balance_after",
        "description",
        "metadata",
        "idempotency_key",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(CreditPackage)
class CreditPackageAdmin(admin.ModelAdmin):
    """Admin configuration for the package catalog."""

    list_display = ["package_id", "name", "credits", "price_display", "popular", "active"]
    list_filter = ["active", "popular"]
    search_fields = ["package_id", "name", "stripe_price_id"]
    ordering = ["price_cents"]

    def price_display(self, obj: CreditPackage) -> str:
        return f"${obj.price_cents / 100:.2f}"

    price_display.short_description = "Price"


@admin.register(CheckoutSession)
class CheckoutSessionAdmin(admin.ModelAdmin):
    """
    Admin configuration for CheckoutSession.

    Status is managed by settlement only, so every field is read-only.
    """

    list_display = ["session_id", "user", "package_code", "credits", "amount_due", "status", "created_at"]
    list_filter = ["status", "created_at"]
    search_fields = ["session_id", "user__email"]
    readonly_fields = [
        "id",
        "session_id",
        "user",
        "package",
        "package_code",
        "credits",
        "amount_due",
        "currency",
        "redirect_url",
        "status",
        "created_at",
        "updated_at",
        "completed_at",
        "expired_at",
    ]
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """Read-only audit trail of verified Stripe deliveries."""

    list_display = ["stripe_event_id", "event_type", "status", "delivery_count", "created_at"]
    list_filter = ["status", "event_type"]
    search_fields = ["stripe_event_id"]
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(BalanceDiscrepancy)
class BalanceDiscrepancyAdmin(admin.ModelAdmin):
    """
    Reconciliation findings.

    Only `resolved` and `notes` are editable; resolving stamps resolved_at.
    """

    list_display = ["account", "cached_credits", "ledger_credits", "resolved", "created_at"]
    list_filter = ["resolved"]
    search_fields = ["account__user__email"]
    readonly_fields = ["account", "cached_credits", "ledger_credits", "resolved_at", "created_at"]
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def save_model(self, request, obj, form, change):
        if obj.resolved and obj.resolved_at is None:
            obj.resolved_at = timezone.now()
        super().save_model(request, obj, form, change)
