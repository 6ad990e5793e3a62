"""
Typed metadata for ledger transactions.

CreditTransaction.metadata is a tagged union keyed by the transaction type.
Callers build one of these dataclasses; the ledger checks that its tag
matches the transaction type before anything is written, and stores
`to_dict()` in the JSON column.

Types:
    PurchaseMetadata: purchase → {package_id, session_id}
    UsageMetadata: usage → {feature_ref}
    BonusMetadata: bonus → {reason}

Usage:
    from credits.ledger.types import UsageMetadata

    ledger.apply_delta(
        user_id=user.pk,
        delta=-1,
        tx_type=TransactionType.USAGE,
        description="Face swap",
        metadata=UsageMetadata(feature_ref="face_swap"),
    )
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, ClassVar, Union

from credits.state_machines import TransactionType


@dataclass(frozen=True)
class PurchaseMetadata:
    """Credits bought through a settled checkout session."""

    package_id: str
    session_id: str

    tag: ClassVar[str] = TransactionType.PURCHASE

    def __post_init__(self) -> None:
        if not self.package_id:
            raise ValueError("package_id is required")
        if not self.session_id:
            raise ValueError("session_id is required")

    @property
    def idempotency_key(self) -> str:
        # One purchase transaction per checkout session, ever
        return f"purchase:{self.session_id}"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class UsageMetadata:
    """Credits consumed by a feature."""

    feature_ref: str

    tag: ClassVar[str] = TransactionType.USAGE

    def __post_init__(self) -> None:
        if not self.feature_ref:
            raise ValueError("feature_ref is required")

    @property
    def idempotency_key(self) -> str | None:
        return None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BonusMetadata:
    """Credits granted for free."""

    reason: str

    tag: ClassVar[str] = TransactionType.BONUS

    WELCOME: ClassVar[str] = "welcome"

    def __post_init__(self) -> None:
        if not self.reason:
            raise ValueError("reason is required")

    @property
    def idempotency_key(self) -> str | None:
        return None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


TransactionMetadata = Union[PurchaseMetadata, UsageMetadata, BonusMetadata]

METADATA_TYPES: dict[str, type] = {
    TransactionType.PURCHASE: PurchaseMetadata,
    TransactionType.USAGE: UsageMetadata,
    TransactionType.BONUS: BonusMetadata,
}
