"""
Tests for typed transaction metadata.
"""

import pytest

from credits.ledger.types import (
    BonusMetadata,
    PurchaseMetadata,
    UsageMetadata,
)
from credits.state_machines import TransactionType


class TestMetadataTypes:
    """Tests for the metadata dataclasses."""

    def test_tags_match_transaction_types(self):
        assert PurchaseMetadata.tag == TransactionType.PURCHASE
        assert UsageMetadata.tag == TransactionType.USAGE
        assert BonusMetadata.tag == TransactionType.BONUS

    def test_purchase_key_is_derived_from_session(self):
        """One purchase per checkout session."""
        metadata = PurchaseMetadata(package_id="pro", session_id="cs_123")

        assert metadata.idempotency_key == "purchase:cs_123"
        assert metadata.to_dict() == {"package_id": "pro", "session_id": "cs_123"}

    def test_usage_and_bonus_have_no_natural_key(self):
        assert UsageMetadata(feature_ref="face_swap").idempotency_key is None
        assert BonusMetadata(reason="welcome").idempotency_key is None

    @pytest.mark.parametrize(
        "factory,kwargs",
        [
            (PurchaseMetadata, {"package_id": "", "session_id": "cs_1"}),
            (PurchaseMetadata, {"package_id": "pro", "session_id": ""}),
            (UsageMetadata, {"feature_ref": ""}),
            (BonusMetadata, {"reason": ""}),
        ],
    )
    def test_required_fields(self, factory, kwargs):
        with pytest.raises(ValueError):
            factory(**kwargs)

    def test_metadata_is_frozen(self):
        metadata = UsageMetadata(feature_ref="face_swap")

        with pytest.raises(AttributeError):
            metadata.feature_ref = "other"
