"""
DRF serializers for the credits app.

This module provides serializers for:
- Balance and transaction history responses
- Package catalog
- Checkout session requests and responses
- Feature-usage debit requests

Related files:
    - services/: Business logic the views delegate to
    - views.py: Credits API views

Usage:
    serializer = CreditTransactionSerializer(page.items, many=True)
    data = serializer.data
"""

from __future__ import annotations

from rest_framework import serializers

from credits.models import CheckoutSession, CreditPackage, CreditTransaction

# =============================================================================
# Balance / History
# =============================================================================


class BalanceSerializer(serializers.Serializer):
    """
    Current balance of the authenticated user.

    Fields:
        credits: Cached balance
        user_id: Account owner
        total_credits_earned: Lifetime granted credits
    """

    credits = serializers.IntegerField(read_only=True)
    user_id = serializers.IntegerField(read_only=True)
    total_credits_earned = serializers.IntegerField(read_only=True)


class CreditTransactionSerializer(serializers.ModelSerializer):
    """One ledger entry as shown in the history."""

    class Meta:
        model = CreditTransaction
        fields = [
            "id",
            "type",
            "credits",
            "balance_before",
            "balance_after",
            "description",
            "metadata",
            "created_at",
        ]
        read_only_fields = fields


class TransactionListQuerySerializer(serializers.Serializer):
    """Query parameters of the history endpoint."""

    limit = serializers.IntegerField(required=False, min_value=1)
    cursor = serializers.UUIDField(required=False)


class TransactionPageSerializer(serializers.Serializer):
    """
    One page of history.

    `cursor` is present only when `has_more` is true; pass it back to get
    the next page.
    """

    items = CreditTransactionSerializer(many=True, read_only=True)
    has_more = serializers.BooleanField(read_only=True)
    cursor = serializers.CharField(read_only=True, allow_null=True)


# =============================================================================
# Packages
# =============================================================================


class CreditPackageSerializer(serializers.ModelSerializer):
    """Package as listed to clients. Stripe ids stay server-side."""

    price = serializers.SerializerMethodField()

    class Meta:
        model = CreditPackage
        fields = [
            "package_id",
            "name",
            "credits",
            "price_cents",
            "price",
            "description",
            "popular",
        ]
        read_only_fields = fields

    def get_price(self, obj: CreditPackage) -> str:
        """Price formatted in dollars, e.g. "24.99"."""
        return f"{obj.price_cents / 100:.2f}"


# =============================================================================
# Checkout
# =============================================================================


class CreateCheckoutSessionSerializer(serializers.Serializer):
    """Request body of POST checkout/."""

    package_id = serializers.SlugField(max_length=50)


class CheckoutHandleSerializer(serializers.Serializer):
    """Response of POST checkout/."""

    session_id = serializers.CharField(read_only=True)
    redirect_url = serializers.URLField(read_only=True)


class CheckoutSessionStatusSerializer(serializers.ModelSerializer):
    """Status of one of the caller's checkout sessions."""

    package_id = serializers.CharField(source="package_code", read_only=True)

    class Meta:
        model = CheckoutSession
        fields = [
            "session_id",
            "status",
            "package_id",
            "credits",
            "amount_due",
            "currency",
            "created_at",
            "completed_at",
            "expired_at",
        ]
        read_only_fields = fields


# =============================================================================
# Usage
# =============================================================================


class UsageDebitSerializer(serializers.Serializer):
    """
    Request body of POST usage/.

    `user_id` defaults to the caller; only staff may debit someone else.
    """

    amount = serializers.IntegerField(min_value=1)
    feature_ref = serializers.CharField(max_length=100)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True)
    user_id = serializers.IntegerField(required=False, min_value=1)


class UsageDebitResponseSerializer(serializers.Serializer):
    """Response of POST usage/."""

    transaction = CreditTransactionSerializer(read_only=True)
    credits = serializers.IntegerField(read_only=True)
