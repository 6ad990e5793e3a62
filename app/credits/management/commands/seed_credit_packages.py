"""
Seed the default credit package catalog.

Upserts the starter/pro/ultimate packages. Stripe price ids come from
CREDITS_STRIPE_PRICE_IDS (e.g. "starter=price_123,pro=price_456"); a
package without a price id is listed but cannot be purchased.

Usage:
    python manage.py seed_credit_packages
    python manage.py seed_credit_packages --deactivate-others
"""

from __future__ import annotations

from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import transaction

from credits.models import CreditPackage

DEFAULT_PACKAGES = [
    {
        "package_id": "starter",
        "name": "Starter",
        "credits": 10,
        "price_cents": 999,
        "description": "10 credits to try things out",
        "popular": False,
    },
    {
        "package_id": "pro",
        "name": "Pro",
        "credits": 30,
        "price_cents": 2499,
        "description": "30 credits for regular use",
        "popular": True,
    },
    {
        "package_id": "ultimate",
        "name": "Ultimate",
        "credits": 100,
        "price_cents": 4999,
        "description": "100 credits at the best price per credit",
        "popular": False,
    },
]


class Command(BaseCommand):
    help = "Create or update the default credit packages"

    def add_arguments(self, parser):
        parser.add_argument(
            "--deactivate-others",
            action="store_true",
            help="Deactivate packages that are not part of the default catalog",
        )

    def handle(self, *args, **options):
        price_ids = settings.CREDITS_STRIPE_PRICE_IDS

        with transaction.atomic():
            for package_def in DEFAULT_PACKAGES:
                defaults = {**package_def, "active": True}
                package_id = defaults.pop("package_id")
                price_id = price_ids.get(package_id)
                if price_id:
                    defaults["stripe_price_id"] = price_id

                package, created = CreditPackage.objects.update_or_create(
                    package_id=package_id,
                    defaults=defaults,
                )
                verb = "Created" if created else "Updated"
                self.stdout.write(f"{verb} package {package.package_id} ({package.credits} credits)")
                if not package.stripe_price_id:
                    self.stdout.write(
                        self.style.WARNING(
                            f"  {package.package_id} has no Stripe price id and cannot be purchased"
                        )
                    )

            if options["deactivate_others"]:
                default_ids = [package_def["package_id"] for package_def in DEFAULT_PACKAGES]
                count = (
                    CreditPackage.objects.exclude(package_id__in=default_ids)
                    .filter(active=True)
                    .update(active=False)
                )
                self.stdout.write(f"Deactivated {count} other packages")

        self.stdout.write(self.style.SUCCESS("Credit packages seeded"))
