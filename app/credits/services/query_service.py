"""
Read-only projections over accounts, transactions and packages.

History is keyset-paginated on (created_at, id), newest first. The cursor
handed to clients is the id of the last row of the previous page; it is
resolved against the caller's own transactions only.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from django.conf import settings
from django.db.models import Q, QuerySet

from core.services import BaseService
from credits.exceptions import InvalidCursorError
from credits.models import CreditPackage, CreditTransaction


@dataclass
class TransactionPage:
    """One page of history."""

    items: list[CreditTransaction] = field(default_factory=list)
    has_more: bool = False
    cursor: str | None = None


class QueryService(BaseService):
    """Balance history and catalog reads."""

    @classmethod
    def list_transactions(
        cls,
        user_id: int,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> TransactionPage:
        """
        Return the user's transactions, newest first.

        Args:
            user_id: Account owner
            limit: Page size (default CREDITS_HISTORY_PAGE_SIZE, capped at
                CREDITS_HISTORY_MAX_PAGE_SIZE)
            cursor: Id of the last transaction of the previous page

        Returns:
            TransactionPage; `cursor` is set only when `has_more` is true

        Raises:
            InvalidCursorError: Cursor is malformed, unknown or another user's
        """
        if limit is None:
            limit = settings.CREDITS_HISTORY_PAGE_SIZE
        limit = max(1, min(limit, settings.CREDITS_HISTORY_MAX_PAGE_SIZE))

        queryset = CreditTransaction.objects.filter(user_id=user_id).order_by(
            "-created_at", "-id"
        )

        if cursor:
            anchor = cls._resolve_cursor(user_id, cursor)
            queryset = queryset.filter(
                Q(created_at__lt=anchor.created_at)
                | Q(created_at=anchor.created_at, id__lt=anchor.id)
            )

        rows = list(queryset[: limit + 1])
        has_more = len(rows) > limit
        items = rows[:limit]

        return TransactionPage(
            items=items,
            has_more=has_more,
            cursor=str(items[-1].id) if has_more else None,
        )

    @staticmethod
    def _resolve_cursor(user_id: int, cursor: str) -> CreditTransaction:
        try:
            cursor_id = uuid.UUID(str(cursor))
        except ValueError:
            raise InvalidCursorError("Invalid cursor", details={"cursor": cursor})

        anchor = CreditTransaction.objects.filter(id=cursor_id, user_id=user_id).first()
        if anchor is None:
            raise InvalidCursorError("Invalid cursor", details={"cursor": cursor})
        return anchor

    @classmethod
    def list_packages(cls) -> QuerySet[CreditPackage]:
        """Active packages, cheapest first."""
        return CreditPackage.objects.filter(active=True).order_by("price_cents", "package_id")
