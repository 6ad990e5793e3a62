"""
Checkout service: opens purchase attempts on Stripe Checkout.

A checkout session is created pending, with the package terms (credits,
price) snapshotted, so later catalog edits never change what a paid
session grants. Settlement (credits.services.settlement_service) is the
only code that moves it out of pending.

Usage:
    from credits.services import CheckoutService

    handle = CheckoutService.create_session(request.user, "pro")
    return Response({"session_id": handle.session_id, "redirect_url": handle.redirect_url})
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings

from core.services import BaseService
from credits.adapters import CreateCheckoutSessionParams, StripeAdapter
from credits.exceptions import (
    AuthorizationError,
    CheckoutSessionNotFoundError,
    PackageNotFoundError,
    PackageUnavailableError,
)
from credits.models import CheckoutSession, CreditPackage
from credits.services.account_service import AccountStore

if TYPE_CHECKING:
    from authentication.models import User


@dataclass(frozen=True)
class CheckoutHandle:
    """What the client needs to continue on Stripe."""

    session_id: str
    redirect_url: str


class CheckoutService(BaseService):
    """Creation and lookup of checkout sessions."""

    @classmethod
    def create_session(cls, user: User, package_id: str) -> CheckoutHandle:
        """
        Create a Stripe Checkout Session for a package and record it pending.

        Args:
            user: Buyer
            package_id: CreditPackage.package_id slug

        Returns:
            CheckoutHandle with the Stripe session id and hosted page URL

        Raises:
            PackageNotFoundError: Unknown package
            PackageUnavailableError: Package inactive or without a Stripe price
            PaymentProviderError: Stripe rejected the request
        """
        logger = cls.get_logger()

        package = CreditPackage.objects.filter(package_id=package_id).first()
        if package is None:
            raise PackageNotFoundError(
                f"Package '{package_id}' does not exist",
                details={"package_id": package_id},
            )
        if not package.is_purchasable:
            raise PackageUnavailableError(
                f"Package '{package_id}' is not available for purchase",
                details={"package_id": package_id},
            )

        customer_id = AccountStore.ensure_payment_customer(user)

        app_url = settings.APP_URL.rstrip("/")
        stripe_session = StripeAdapter.create_checkout_session(
            CreateCheckoutSessionParams(
                price_id=package.stripe_price_id,
                customer_id=customer_id,
                success_url=f"{app_url}/credits/success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{app_url}/credits/cancel",
                metadata={
                    "user_id": str(user.pk),
                    "package_id": package.package_id,
                    "credits": str(package.credits),
                },
            )
        )

        session = CheckoutSession.objects.create(
            session_id=stripe_session.id,
            user=user,
            package=package,
            package_code=package.package_id,
            credits=package.credits,
            amount_due=package.price_cents,
            redirect_url=stripe_session.url or "",
        )

        logger.info(
            "Checkout session created",
            extra={
                "user_id": user.pk,
                "session_id": session.session_id,
                "package_id": package.package_id,
                "credits": session.credits,
                "amount_due": session.amount_due,
            },
        )

        return CheckoutHandle(session_id=session.session_id, redirect_url=session.redirect_url)

    @classmethod
    def get_session_status(cls, user: User, session_id: str) -> CheckoutSession:
        """
        Return one of the caller's checkout sessions.

        Raises:
            CheckoutSessionNotFoundError: Unknown session id
            AuthorizationError: Session belongs to another user
        """
        session = (
            CheckoutSession.objects.select_related("package")
            .filter(session_id=session_id)
            .first()
        )
        if session is None:
            raise CheckoutSessionNotFoundError(
                "Checkout session not found",
                details={"session_id": session_id},
            )
        if session.user_id != user.pk:
            cls.get_logger().warning(
                "Checkout session requested by another user",
                extra={"user_id": user.pk, "session_id": session_id},
            )
            raise AuthorizationError("You do not have access to this checkout session")
        return session
