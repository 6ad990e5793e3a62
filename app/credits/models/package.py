"""
CreditPackage model: the purchasable catalog.

Packages are priced in USD cents. Checkout sessions snapshot `credits` and
`price_cents` at creation, so editing a package never changes a pending
purchase.
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin


class CreditPackage(UUIDPrimaryKeyMixin, BaseModel):
    """
    A bundle of credits sold through Stripe Checkout.

    Fields:
        package_id: Public slug clients send to create a checkout ("starter")
        name: Display name
        credits: Credits granted on settlement
        price_cents: Price in USD cents
        stripe_price_id / stripe_product_id: Stripe catalog references
        description: Marketing copy
        popular: Highlight flag for the storefront
        active: Only active packages can be purchased or listed
    """

    package_id = models.SlugField(
        max_length=50,
        unique=True,
        help_text="Public identifier used by clients",
    )

    name = models.CharField(max_length=100)

    credits = models.PositiveIntegerField(
        help_text="Credits granted when a purchase settles",
    )

    price_cents = models.PositiveIntegerField(
        help_text="Price in USD cents",
    )

    stripe_price_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Stripe Price ID (price_xxx)",
    )

    stripe_product_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Stripe Product ID (prod_xxx)",
    )

    description = models.TextField(blank=True, default="")

    popular = models.BooleanField(default=False)

    active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Inactive packages cannot be purchased",
    )

    class Meta:
        ordering = ["price_cents"]
        verbose_name = "Credit Package"
        verbose_name_plural = "Credit Packages"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(credits__gt=0),
                name="credit_package_credits_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(price_cents__gt=0),
                name="credit_package_price_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.credits} credits, ${self.price_cents / 100:.2f})"

    @property
    def is_purchasable(self) -> bool:
        return self.active and bool(self.stripe_price_id)
