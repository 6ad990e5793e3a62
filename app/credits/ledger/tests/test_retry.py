"""
Tests for the bounded atomic retry used by ledger and settlement writes.
"""

from unittest.mock import MagicMock, patch

import pytest
from django.db import IntegrityError, OperationalError, transaction

from credits.exceptions import PersistenceConflictError
from credits.ledger.retry import backoff_delay, is_contention_error, run_atomic_with_retry


class TestBackoffDelay:
    """Tests for backoff_delay()."""

    def test_grows_exponentially_with_jitter(self):
        for attempt, base_delay in [(0, 0.05), (1, 0.1), (2, 0.2)]:
            delay = backoff_delay(attempt, base=0.05)
            assert base_delay <= delay <= base_delay * 1.25

    def test_capped_at_max_delay(self):
        delay = backoff_delay(20, base=0.05, max_delay=2.0)

        assert 2.0 <= delay <= 2.5


@pytest.mark.django_db(transaction=True)
class TestRunAtomicWithRetry:
    """Tests for run_atomic_with_retry() outside any outer transaction."""

    def test_returns_result_of_first_success(self):
        func = MagicMock(return_value="ok")

        assert run_atomic_with_retry(func, operation="test") == "ok"
        func.assert_called_once()

    @patch("credits.ledger.retry.time.sleep")
    def test_retries_on_contention(self, mock_sleep):
        """Should rerun the block after OperationalError or a unique-key IntegrityError."""
        func = MagicMock(
            side_effect=[
                OperationalError("database is locked"),
                IntegrityError("UNIQUE constraint failed: credits_creditaccount.user_id"),
                "ok",
            ]
        )

        result = run_atomic_with_retry(func, operation="test", max_attempts=3, base_delay=0.001)

        assert result == "ok"
        assert func.call_count == 3
        assert mock_sleep.call_count == 2

    @patch("credits.ledger.retry.time.sleep")
    def test_raises_conflict_after_last_attempt(self, mock_sleep):
        func = MagicMock(side_effect=OperationalError("database is locked"))

        with pytest.raises(PersistenceConflictError) as exc_info:
            run_atomic_with_retry(func, operation="ledger.apply_delta", max_attempts=3, base_delay=0.001)

        assert func.call_count == 3
        assert exc_info.value.details == {"operation": "ledger.apply_delta", "attempts": 3}
        assert exc_info.value.is_retryable is True
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_other_errors_propagate_without_retry(self):
        func = MagicMock(side_effect=ValueError("boom"))

        with pytest.raises(ValueError):
            run_atomic_with_retry(func, operation="test", max_attempts=3)

        func.assert_called_once()

    @patch("credits.ledger.retry.time.sleep")
    def test_constraint_violation_is_not_retried(self, mock_sleep):
        """A foreign key or check failure repeats on every run."""
        error = IntegrityError("FOREIGN KEY constraint failed")
        func = MagicMock(side_effect=error)

        with pytest.raises(IntegrityError) as exc_info:
            run_atomic_with_retry(func, operation="test", max_attempts=3)

        assert exc_info.value is error
        func.assert_called_once()
        mock_sleep.assert_not_called()

    def test_uses_settings_defaults(self, settings):
        settings.CREDITS_SETTLEMENT_MAX_ATTEMPTS = 2
        func = MagicMock(side_effect=OperationalError("locked"))

        with pytest.raises(PersistenceConflictError):
            run_atomic_with_retry(func, operation="test")

        assert func.call_count == 2

    def test_runs_once_inside_outer_transaction(self):
        """Nested calls never retry; the outer owner decides."""
        func = MagicMock(side_effect=OperationalError("locked"))

        with pytest.raises(OperationalError):
            with transaction.atomic():
                run_atomic_with_retry(func, operation="test", max_attempts=5)

        func.assert_called_once()


class PgUniqueViolation(Exception):
    sqlstate = "23505"


class PgForeignKeyViolation(Exception):
    sqlstate = "23503"


def integrity_error(message, cause=None):
    error = IntegrityError(message)
    error.__cause__ = cause
    return error


class TestIsContentionError:
    """Tests for is_contention_error()."""

    @pytest.mark.parametrize(
        "error,expected",
        [
            (OperationalError("database is locked"), True),
            (integrity_error("UNIQUE constraint failed: credits_creditaccount.user_id"), True),
            (integrity_error("FOREIGN KEY constraint failed"), False),
            (integrity_error("CHECK constraint failed: credit_account_balance_non_negative"), False),
            (integrity_error("NOT NULL constraint failed: credits_credittransaction.type"), False),
            (integrity_error("duplicate key", PgUniqueViolation()), True),
            (integrity_error("violates foreign key constraint", PgForeignKeyViolation()), False),
            (ValueError("boom"), False),
        ],
    )
    def test_classifies_errors(self, error, expected):
        assert is_contention_error(error) is expected
