import uuid

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="CreditAccount",
            fields=[
                (
                    "user",
                    models.OneToOneField(
                        help_text="Owner of this balance (also the account key)",
                        on_delete=django.db.models.deletion.PROTECT,
                        primary_key=True,
                        related_name="credit_account",
                        serialize=False,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "credits",
                    models.IntegerField(
                        default=0,
                        help_text="Cached current balance; written only by the ledger",
                    ),
                ),
                (
                    "total_credits_earned",
                    models.IntegerField(
                        default=0,
                        help_text="Lifetime granted credits; written only by the ledger",
                    ),
                ),
                (
                    "payment_customer_ref",
                    models.CharField(
                        blank=True,
                        help_text="Stripe Customer ID (cus_xxx)",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Credit Account",
                "verbose_name_plural": "Credit Accounts",
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("credits__gte", 0)),
                        name="credit_account_balance_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("total_credits_earned__gte", 0)),
                        name="credit_account_earned_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CreditPackage",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "package_id",
                    models.SlugField(
                        help_text="Public identifier used by clients",
                        unique=True,
                    ),
                ),
                ("name", models.CharField(max_length=100)),
                (
                    "credits",
                    models.PositiveIntegerField(help_text="Credits granted when a purchase settles"),
                ),
                ("price_cents", models.PositiveIntegerField(help_text="Price in USD cents")),
                (
                    "stripe_price_id",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Stripe Price ID (price_xxx)",
                        max_length=255,
                    ),
                ),
                (
                    "stripe_product_id",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Stripe Product ID (prod_xxx)",
                        max_length=255,
                    ),
                ),
                ("description", models.TextField(blank=True, default="")),
                ("popular", models.BooleanField(default=False)),
                (
                    "active",
                    models.BooleanField(
                        db_index=True,
                        default=True,
                        help_text="Inactive packages cannot be purchased",
                    ),
                ),
            ],
            options={
                "verbose_name": "Credit Package",
                "verbose_name_plural": "Credit Packages",
                "ordering": ["price_cents"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("credits__gt", 0)),
                        name="credit_package_credits_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("price_cents__gt", 0)),
                        name="credit_package_price_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CreditTransaction",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "type",
                    models.CharField(
                        choices=[("purchase", "Purchase"), ("usage", "Usage"), ("bonus", "Bonus")],
                        db_index=True,
                        help_text="Kind of balance change",
                        max_length=20,
                    ),
                ),
                ("credits", models.IntegerField(help_text="Signed credit delta")),
                ("balance_before", models.IntegerField(help_text="Balance before this change")),
                ("balance_after", models.IntegerField(help_text="Balance after this change")),
                (
                    "description",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Human-readable description",
                        max_length=255,
                    ),
                ),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Typed payload keyed by transaction type",
                    ),
                ),
                (
                    "idempotency_key",
                    models.CharField(
                        blank=True,
                        help_text="Natural key guarding against duplicate recording",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        help_text="Owner of the account this change applies to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="credit_transactions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Credit Transaction",
                "verbose_name_plural": "Credit Transactions",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["user", "-created_at", "-id"],
                        name="credit_tx_user_history_idx",
                    ),
                    models.Index(fields=["user", "type"], name="credit_tx_user_type_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("balance_after", models.F("balance_before") + models.F("credits"))
                        ),
                        name="credit_tx_balance_arithmetic",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("credits", 0), _negated=True),
                        name="credit_tx_non_zero_delta",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("balance_after__gte", 0)),
                        name="credit_tx_balance_after_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CheckoutSession",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "session_id",
                    models.CharField(
                        help_text="Stripe Checkout Session ID (cs_xxx)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "package_code",
                    models.CharField(
                        help_text="Package identifier at creation time",
                        max_length=50,
                    ),
                ),
                (
                    "credits",
                    models.PositiveIntegerField(help_text="Credits to grant on settlement (snapshot)"),
                ),
                (
                    "amount_due",
                    models.PositiveIntegerField(help_text="Amount charged in cents (snapshot)"),
                ),
                (
                    "currency",
                    models.CharField(
                        default="usd",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "redirect_url",
                    models.URLField(
                        blank=True,
                        default="",
                        help_text="Stripe-hosted checkout page",
                        max_length=2048,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("expired", "Expired"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current state of the session (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("expired_at", models.DateTimeField(blank=True, null=True)),
                (
                    "package",
                    models.ForeignKey(
                        help_text="Package the purchase was created from",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="checkout_sessions",
                        to="credits.creditpackage",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        help_text="User making the purchase",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="checkout_sessions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Checkout Session",
                "verbose_name_plural": "Checkout Sessions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "status"], name="checkout_user_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("credits__gt", 0)),
                        name="checkout_session_credits_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "stripe_event_id",
                    models.CharField(
                        help_text="Stripe Event ID (evt_xxx)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe event type (e.g., 'checkout.session.completed')",
                        max_length=100,
                    ),
                ),
                ("payload", models.JSONField(help_text="Verified webhook payload")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processed", "Processed"),
                            ("ignored", "Ignored"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("error_message", models.TextField(blank=True, null=True)),
                (
                    "delivery_count",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Number of deliveries received for this event",
                    ),
                ),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"], name="webhook_status_created_idx"
                    ),
                    models.Index(
                        fields=["event_type", "created_at"], name="webhook_type_created_idx"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BalanceDiscrepancy",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                ("cached_credits", models.IntegerField()),
                ("ledger_credits", models.IntegerField()),
                ("resolved", models.BooleanField(db_index=True, default=False)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="discrepancies",
                        to="credits.creditaccount",
                    ),
                ),
            ],
            options={
                "verbose_name": "Balance Discrepancy",
                "verbose_name_plural": "Balance Discrepancies",
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("resolved", False)),
                        fields=("account",),
                        name="one_open_discrepancy_per_account",
                    ),
                ],
            },
        ),
    ]
