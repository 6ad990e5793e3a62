"""
Bounded retry for atomic ledger writes.

Ledger and settlement writes run in one `transaction.atomic()` block. When
that block fails on write contention (lock timeout, deadlock, serialization
failure, SQLite busy, or losing a unique-key race) the whole block is rolled
back and run again after an exponential backoff with jitter. When every
attempt fails, PersistenceConflictError is raised; nothing from any attempt
is persisted.

When called inside an outer transaction, the block runs once as a nested
atomic and errors propagate: a failed statement has already broken the
outer transaction, so only its owner can retry.
"""

from __future__ import annotations

import logging
import random
import time
from typing import TYPE_CHECKING, TypeVar

from django.conf import settings
from django.db import IntegrityError, OperationalError, transaction

from credits.exceptions import PersistenceConflictError

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any


logger = logging.getLogger(__name__)

T = TypeVar("T")

# A unique-key IntegrityError is the lost race on
# CreditTransaction.idempotency_key or CreditAccount's primary key; a rerun
# sees the winner's committed row. Any other IntegrityError (foreign key,
# check, not null) fails the same way every time and is not retried.
CONTENTION_ERRORS: tuple[type[Exception], ...] = (OperationalError, IntegrityError)

# PostgreSQL SQLSTATE unique_violation
UNIQUE_VIOLATION_SQLSTATE = "23505"


def is_contention_error(error: Exception) -> bool:
    """True if rerunning the atomic unit that raised `error` may succeed."""
    if isinstance(error, OperationalError):
        return True
    if not isinstance(error, IntegrityError):
        return False
    cause = error.__cause__
    sqlstate = getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)
    if sqlstate is not None:
        return sqlstate == UNIQUE_VIOLATION_SQLSTATE
    message = str(error)
    return "UNIQUE constraint failed" in message or "duplicate key value" in message


def backoff_delay(attempt: int, base: float = 0.05, max_delay: float = 2.0) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Args:
        attempt: Current attempt number (0-indexed)
        base: Base delay in seconds
        max_delay: Maximum delay in seconds before jitter

    Returns:
        Delay in seconds with 0-25% jitter

    Example:
        # base=0.05: attempt 0 → 0.05-0.0625s, attempt 1 → 0.1-0.125s
        delay = backoff_delay(attempt=1)
    """
    delay = min(base * (2**attempt), max_delay)
    jitter = delay * random.uniform(0, 0.25)
    return delay + jitter


def run_atomic_with_retry(
    func: Callable[[], T],
    *,
    operation: str,
    max_attempts: int | None = None,
    base_delay: float | None = None,
    log_context: dict[str, Any] | None = None,
) -> T:
    """
    Run `func` inside transaction.atomic(), retrying on contention.

    Args:
        func: Zero-argument callable doing all reads and writes of the unit
        operation: Name used in logs and in the conflict error
        max_attempts: Attempts before giving up (CREDITS_SETTLEMENT_MAX_ATTEMPTS)
        base_delay: Backoff base in seconds (CREDITS_RETRY_BASE_DELAY)
        log_context: Extra structured logging fields

    Returns:
        Whatever `func` returns from the committed attempt

    Raises:
        PersistenceConflictError: Every attempt hit contention
        IntegrityError: A non-unique constraint failed, raised on the first hit
        Any other exception from `func`, unchanged and without retry
    """
    context = {"operation": operation, **(log_context or {})}

    if transaction.get_connection().in_atomic_block:
        with transaction.atomic():
            return func()

    if max_attempts is None:
        max_attempts = settings.CREDITS_SETTLEMENT_MAX_ATTEMPTS
    if base_delay is None:
        base_delay = settings.CREDITS_RETRY_BASE_DELAY
    max_attempts = max(1, max_attempts)

    last_error: Exception | None = None
    for attempt in range(max_attempts):
        try:
            with transaction.atomic():
                return func()
        except CONTENTION_ERRORS as e:
            if not is_contention_error(e):
                raise
            last_error = e
            if attempt + 1 >= max_attempts:
                break
            delay = backoff_delay(attempt, base=base_delay)
            logger.warning(
                "Write contention, retrying atomic unit",
                extra={
                    **context,
                    "attempt": attempt + 1,
                    "delay_seconds": round(delay, 3),
                    "error": str(e),
                },
            )
            time.sleep(delay)

    logger.error(
        "Atomic unit failed after retries",
        extra={**context, "attempts": max_attempts, "error": str(last_error)},
    )
    raise PersistenceConflictError(
        "The operation could not be completed. Please retry.",
        details={"operation": operation, "attempts": max_attempts},
    ) from last_error
