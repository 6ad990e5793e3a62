"""
Model mixins shared by domain models.

Available Mixins:
    UUIDPrimaryKeyMixin: Use a UUID as primary key

Usage:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin

    class CheckoutSession(UUIDPrimaryKeyMixin, BaseModel):
        session_id = models.CharField(max_length=255, unique=True)
"""

from __future__ import annotations

import uuid

from django.db import models


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use a UUID as primary key instead of an auto-increment integer.

    Transaction ids are handed to clients as history cursors, so they must
    not reveal how many rows exist or be guessable.

    Fields:
        id: UUIDField primary key (generated on instantiation)
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for this record",
    )

    class Meta:
        abstract = True
