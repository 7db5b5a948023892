"""Retry policy for remote store calls with exponential backoff."""
import logging
from typing import Callable, TypeVar

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MIN_WAIT_SECONDS = 0.5
DEFAULT_MAX_WAIT_SECONDS = 8


def is_retryable_error(exception: BaseException) -> bool:
    """
    Determine if a store error is transient.

    Retryable errors include:
    - Rate limit errors (429)
    - Server errors (5xx)
    - Timeout errors
    - Connection errors

    Non-retryable errors include:
    - Client errors (400, 401, 403, 404, 409)
    - Authentication / permission errors
    - Unique constraint violations
    """
    error_str = str(exception).lower()
    exception_type = type(exception).__name__.lower()

    # Unique constraint violations never succeed on retry
    if "duplicate" in error_str or "unique" in error_str:
        return False

    if "rate" in error_str and "limit" in error_str:
        return True
    if "429" in error_str:
        return True

    if any(code in error_str for code in ["500", "502", "503", "504"]):
        return True

    if "timeout" in error_str or "timed out" in error_str:
        return True
    if "timeout" in exception_type:
        return True

    if "connection" in error_str or "connect" in exception_type:
        return True
    if "temporary failure in name resolution" in error_str:
        return True

    if any(code in error_str for code in ["400", "401", "403", "404", "409"]):
        return False
    if "authentication" in error_str or "unauthorized" in error_str:
        return False
    if "permission" in error_str:
        return False

    # Default: don't retry unknown errors
    return False


def create_retry_decorator(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    min_wait_seconds: float = DEFAULT_MIN_WAIT_SECONDS,
    max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Create a retry decorator with exponential backoff for transient errors.

    Args:
        max_attempts: Maximum number of attempts (including the first)
        min_wait_seconds: Minimum wait time between retries
        max_wait_seconds: Maximum wait time between retries

    Returns:
        A tenacity retry decorator; the last exception is re-raised
    """
    return retry(
        retry=retry_if_exception(is_retryable_error),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(
            multiplier=min_wait_seconds,
            min=min_wait_seconds,
            max=max_wait_seconds,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
