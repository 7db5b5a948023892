"""Unit tests for store retry logic and error classification."""
import pytest
from unittest.mock import MagicMock

from workout_tracker_api.retry import (
    DEFAULT_MAX_ATTEMPTS,
    create_retry_decorator,
    is_retryable_error,
)


class TestIsRetryableError:
    """Test error classification for retry decisions."""

    # --- Retryable errors (should return True) ---

    @pytest.mark.parametrize(
        "error_message",
        [
            "Rate limit exceeded",
            "Error code: 429",
            "Status 429: Too Many Requests",
        ],
    )
    def test_rate_limit_errors_are_retryable(self, error_message):
        """429 rate limit errors should be retryable."""
        assert is_retryable_error(Exception(error_message)) is True

    @pytest.mark.parametrize("status_code", ["500", "502", "503", "504"])
    def test_server_errors_5xx_are_retryable(self, status_code):
        """5xx server errors should be retryable."""
        assert is_retryable_error(Exception(f"Server error: {status_code}")) is True

    @pytest.mark.parametrize(
        "error_message",
        [
            "Request timed out",
            "Read timeout",
            "Connection refused",
            "Temporary failure in name resolution",
        ],
    )
    def test_network_errors_are_retryable(self, error_message):
        """Timeouts and connection failures should be retryable."""
        assert is_retryable_error(Exception(error_message)) is True

    def test_timeout_exception_type_is_retryable(self):
        """Exception with 'timeout' in class name should be retryable."""

        class ReadTimeoutError(Exception):
            pass

        assert is_retryable_error(ReadTimeoutError("request failed")) is True

    # --- Non-retryable errors (should return False) ---

    @pytest.mark.parametrize(
        "error_message",
        [
            "Error 400: Bad Request",
            "Error 401: Unauthorized",
            "Error 403: Forbidden",
            "Resource not found: 404",
            "Conflict: 409",
            "permission denied for table routines",
        ],
    )
    def test_client_errors_not_retryable(self, error_message):
        """4xx and permission errors should NOT be retryable."""
        assert is_retryable_error(Exception(error_message)) is False

    def test_unique_violation_not_retryable_even_with_5xx_text(self):
        """Constraint violations never succeed on retry."""
        error = Exception("500: duplicate key value violates unique constraint")
        assert is_retryable_error(error) is False

    def test_unknown_errors_not_retryable(self):
        """Unknown errors default to no retry."""
        assert is_retryable_error(ValueError("something odd")) is False


class TestCreateRetryDecorator:
    """Test the tenacity decorator factory."""

    def test_retries_transient_errors_until_success(self):
        fn = MagicMock(side_effect=[Exception("503"), Exception("timeout"), "ok"])
        wrapped = create_retry_decorator(max_attempts=3, min_wait_seconds=0, max_wait_seconds=0)(fn)
        assert wrapped() == "ok"
        assert fn.call_count == 3

    def test_reraises_last_error_after_max_attempts(self):
        fn = MagicMock(side_effect=Exception("503 unavailable"))
        wrapped = create_retry_decorator(max_attempts=2, min_wait_seconds=0, max_wait_seconds=0)(fn)
        with pytest.raises(Exception, match="503 unavailable"):
            wrapped()
        assert fn.call_count == 2

    def test_does_not_retry_permanent_errors(self):
        fn = MagicMock(side_effect=Exception("Error 400: Bad Request"))
        wrapped = create_retry_decorator(max_attempts=3, min_wait_seconds=0, max_wait_seconds=0)(fn)
        with pytest.raises(Exception, match="400"):
            wrapped()
        assert fn.call_count == 1

    def test_default_attempts(self):
        fn = MagicMock(side_effect=Exception("429"))
        wrapped = create_retry_decorator(min_wait_seconds=0, max_wait_seconds=0)(fn)
        with pytest.raises(Exception):
            wrapped()
        assert fn.call_count == DEFAULT_MAX_ATTEMPTS
