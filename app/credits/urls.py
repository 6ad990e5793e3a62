"""
URL configuration for the credits app.

Routes:
    - GET  balance/ - Current balance
    - GET  transactions/ - Transaction history
    - GET  packages/ - Package catalog
    - POST checkout/ - Create checkout session
    - GET  checkout/<session_id>/ - Checkout session status
    - POST usage/ - Feature-usage debit
    - POST webhooks/stripe/ - Stripe webhook endpoint

All routes are prefixed with /api/v1/credits/ when included in the main URLconf.
"""

from django.urls import path

from credits import views
from credits.webhooks.views import stripe_webhook

app_name = "credits"

urlpatterns = [
    path("balance/", views.BalanceView.as_view(), name="balance"),
    path("transactions/", views.TransactionListView.as_view(), name="transactions"),
    path("packages/", views.PackageListView.as_view(), name="packages"),
    path("checkout/", views.CreateCheckoutSessionView.as_view(), name="checkout"),
    path(
        "checkout/<str:session_id>/",
        views.CheckoutSessionStatusView.as_view(),
        name="checkout-status",
    ),
    path("usage/", views.UsageDebitView.as_view(), name="usage"),
    # Webhook endpoints
    path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
]
