"""
Credits app configuration.

This app provides the prepaid credit system:
- Per-user cached balances backed by an append-only ledger
- Credit package purchases through Stripe Checkout
- Idempotent webhook settlement
- Feature-usage debits and periodic balance reconciliation
"""

from django.apps import AppConfig


class CreditsConfig(AppConfig):
    """Configuration for the credits application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "credits"
    verbose_name = "Credits"
