"""
DRF views for the credits app.

This module provides API views for:
- Balance and transaction history
- Package catalog
- Checkout session creation and status
- Feature-usage debits

Related files:
    - services/: AccountStore, CheckoutService, QueryService, UsageService
    - serializers.py: Request/response serializers
    - webhooks/views.py: Stripe webhook endpoint
    - urls.py: URL routing

Endpoints:
    GET  /api/v1/credits/balance/ - Current balance
    GET  /api/v1/credits/transactions/ - Transaction history (cursor paginated)
    GET  /api/v1/credits/packages/ - Purchasable packages (public)
    POST /api/v1/credits/checkout/ - Create checkout session
    GET  /api/v1/credits/checkout/{session_id}/ - Checkout session status
    POST /api/v1/credits/usage/ - Debit credits for a feature

Security:
    - All endpoints require authentication except packages and the webhook
    - Users only see and debit their own account; staff may debit any
"""

from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from credits.exceptions import AuthorizationError, InsufficientCreditsError
from credits.serializers import (
    BalanceSerializer,
    CheckoutHandleSerializer,
    CheckoutSessionStatusSerializer,
    CreateCheckoutSessionSerializer,
    CreditPackageSerializer,
    CreditTransactionSerializer,
    TransactionListQuerySerializer,
    TransactionPageSerializer,
    UsageDebitResponseSerializer,
    UsageDebitSerializer,
)
from credits.services import (
    AccountStore,
    CheckoutService,
    QueryService,
    UsageService,
)

logger = logging.getLogger(__name__)


def error_response(exc: BaseApplicationError) -> Response:
    """
    Map a domain exception to an HTTP response.

    Provider and persistence failures are reported generically; their
    details stay in the logs.
    """
    if isinstance(exc, InsufficientCreditsError):
        return Response(exc.to_dict(), status=status.HTTP_402_PAYMENT_REQUIRED)
    if isinstance(exc, PermissionDeniedError):
        return Response(exc.to_dict(), status=status.HTTP_403_FORBIDDEN)
    if isinstance(exc, NotFoundError):
        return Response(exc.to_dict(), status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, ValidationError):
        return Response(exc.to_dict(), status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, ExternalServiceError):
        logger.error("Payment provider failure", extra={"error_code": exc.error_code})
        return Response(
            {"error": "Payment provider unavailable", "error_code": exc.error_code},
            status=status.HTTP_502_BAD_GATEWAY,
        )
    if isinstance(exc, ConflictError) and exc.error_code == "PERSISTENCE_CONFLICT":
        return Response(
            {"error": "Temporary failure, please retry", "error_code": exc.error_code},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    if isinstance(exc, ConflictError):
        return Response(exc.to_dict(), status=status.HTTP_409_CONFLICT)
    return Response(exc.to_dict(), status=status.HTTP_400_BAD_REQUEST)


class BalanceView(APIView):
    """
    Current credit balance.

    GET /api/v1/credits/balance/

    The first call for a user provisions the account with the welcome
    credits.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_credit_balance",
        summary="Get credit balance",
        responses={200: BalanceSerializer},
        tags=["Credits - Balance"],
    )
    def get(self, request):
        try:
            account = AccountStore.get_or_create(request.user.pk)
        except BaseApplicationError as e:
            return error_response(e)

        serializer = BalanceSerializer(
            {
                "credits": account.credits,
                "user_id": account.user_id,
                "total_credits_earned": account.total_credits_earned,
            }
        )
        return Response(serializer.data)


class TransactionListView(APIView):
    """
    Transaction history, newest first.

    GET /api/v1/credits/transactions/?limit=50&cursor=<id>
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_credit_transactions",
        summary="List credit transactions",
        parameters=[
            OpenApiParameter(
                name="limit",
                type=int,
                location=OpenApiParameter.QUERY,
                description="Page size (default 50, max 100)",
                required=False,
            ),
            OpenApiParameter(
                name="cursor",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Cursor from the previous page",
                required=False,
            ),
        ],
        responses={
            200: TransactionPageSerializer,
            400: OpenApiResponse(description="Invalid limit or cursor"),
        },
        tags=["Credits - Balance"],
    )
    def get(self, request):
        query = TransactionListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        cursor = query.validated_data.get("cursor")
        try:
            page = QueryService.list_transactions(
                request.user.pk,
                limit=query.validated_data.get("limit"),
                cursor=str(cursor) if cursor else None,
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(TransactionPageSerializer(page).data)


class PackageListView(APIView):
    """
    Purchasable credit packages, cheapest first.

    GET /api/v1/credits/packages/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="list_credit_packages",
        summary="List credit packages",
        responses={200: CreditPackageSerializer(many=True)},
        tags=["Credits - Purchase"],
    )
    def get(self, request):
        packages = QueryService.list_packages()
        return Response(CreditPackageSerializer(packages, many=True).data)


class CreateCheckoutSessionView(APIView):
    """
    Create a Stripe Checkout session for a package.

    POST /api/v1/credits/checkout/

    Request body:
        {"package_id": "pro"}

    Returns:
        {"session_id": "cs_...", "redirect_url": "https://checkout.stripe.com/..."}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_credit_checkout_session",
        summary="Start a credit purchase",
        request=CreateCheckoutSessionSerializer,
        responses={
            201: CheckoutHandleSerializer,
            400: OpenApiResponse(description="Package not purchasable"),
            404: OpenApiResponse(description="Package not found"),
            502: OpenApiResponse(description="Payment provider unavailable"),
        },
        tags=["Credits - Purchase"],
    )
    def post(self, request):
        serializer = CreateCheckoutSessionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            handle = CheckoutService.create_session(
                request.user,
                serializer.validated_data["package_id"],
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(
            CheckoutHandleSerializer(handle).data,
            status=status.HTTP_201_CREATED,
        )


class CheckoutSessionStatusView(APIView):
    """
    Status of one of the caller's checkout sessions.

    GET /api/v1/credits/checkout/{session_id}/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_credit_checkout_session",
        summary="Get checkout session status",
        responses={
            200: CheckoutSessionStatusSerializer,
            403: OpenApiResponse(description="Session belongs to another user"),
            404: OpenApiResponse(description="Session not found"),
        },
        tags=["Credits - Purchase"],
    )
    def get(self, request, session_id: str):
        try:
            session = CheckoutService.get_session_status(request.user, session_id)
        except BaseApplicationError as e:
            return error_response(e)

        return Response(CheckoutSessionStatusSerializer(session).data)


class UsageDebitView(APIView):
    """
    Debit credits for a feature.

    POST /api/v1/credits/usage/

    Request body:
        {"amount": 1, "feature_ref": "face_swap"}

    Returns:
        {"transaction": {...}, "credits": <balance after>}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="debit_credits_for_usage",
        summary="Debit credits for feature usage",
        request=UsageDebitSerializer,
        responses={
            201: UsageDebitResponseSerializer,
            400: OpenApiResponse(description="Invalid amount"),
            402: OpenApiResponse(description="Insufficient credits"),
            403: OpenApiResponse(description="Cannot debit another user's account"),
        },
        tags=["Credits - Usage"],
    )
    def post(self, request):
        serializer = UsageDebitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        target_user_id = data.get("user_id", request.user.pk)

        try:
            if target_user_id != request.user.pk:
                if not request.user.is_staff:
                    raise AuthorizationError("You can only spend your own credits")
                if not get_user_model().objects.filter(pk=target_user_id).exists():
                    raise NotFoundError(
                        "User not found",
                        error_code="USER_NOT_FOUND",
                        details={"user_id": target_user_id},
                    )

            entry = UsageService.debit_for_usage(
                target_user_id,
                amount=data["amount"],
                feature_ref=data["feature_ref"],
                description=data.get("description") or None,
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(
            {
                "transaction": CreditTransactionSerializer(entry).data,
                "credits": entry.balance_after,
            },
            status=status.HTTP_201_CREATED,
        )
