"""
Retry utilities with exponential backoff for vendor API calls.

Auth failures are never retried; 5xx, 429, timeouts and transport errors are.
"""
import asyncio
import random
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple, Type

import httpx

from adsync.errors import VendorAuthError, VendorApiError
from adsync.utils.logger import log


@dataclass
class RetryStats:
    """Tracks retry statistics for a single operation."""
    attempts: int = 0
    total_delay_seconds: float = 0.0
    last_error: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    success: bool = False

    def record_attempt(self, error: Optional[Exception] = None, delay: float = 0.0):
        """Record a retry attempt."""
        self.attempts += 1
        self.total_delay_seconds += delay
        if error:
            error_str = f"{type(error).__name__}: {str(error)}"
            self.last_error = error_str
            self.errors.append(error_str)

    def mark_success(self):
        """Mark the operation as successful."""
        self.success = True

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/storage."""
        return {
            "attempts": self.attempts,
            "total_delay_seconds": round(self.total_delay_seconds, 2),
            "success": self.success,
            "last_error": self.last_error,
            "errors": self.errors[:5]  # Cap at 5 errors
        }


# Transport-level failures worth another attempt
DEFAULT_RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.TransportError,
    ConnectionError,
    TimeoutError,
)

RETRYABLE_STATUS_CODES: Tuple[int, ...] = (429, 500, 502, 503, 504)


def calculate_backoff(
    attempt: int,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True
) -> float:
    """
    Calculate delay for exponential backoff.

    Args:
        attempt: Current attempt number (1-indexed)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay cap
        exponential_base: Base for exponential calculation
        jitter: Add randomness to prevent thundering herd

    Returns:
        Delay in seconds
    """
    delay = base_delay * (exponential_base ** (attempt - 1))
    delay = min(delay, max_delay)

    # 0-25% jitter
    if jitter:
        delay += delay * random.uniform(0, 0.25)

    return delay


def is_retryable_error(
    error: Exception,
    retryable_exceptions: Tuple[Type[Exception], ...] = DEFAULT_RETRYABLE_EXCEPTIONS,
    retryable_status_codes: Tuple[int, ...] = RETRYABLE_STATUS_CODES
) -> bool:
    """
    Check if an error is retryable.

    Args:
        error: The exception to check
        retryable_exceptions: Exception types to retry
        retryable_status_codes: HTTP status codes to retry

    Returns:
        True if error should be retried
    """
    if isinstance(error, VendorAuthError):
        return False

    if isinstance(error, retryable_exceptions):
        return True

    if isinstance(error, VendorApiError):
        if getattr(error, "http_status", None) in retryable_status_codes:
            return True
        error_str = str(error).lower()
        return "rate limit" in error_str or "too many requests" in error_str

    return False


class RetryContext:
    """
    Context manager for retry operations with stats tracking.

    Usage:
        async with RetryContext(max_attempts=3, label="meta GET") as ctx:
            payload = await ctx.execute(send, client, url)

    Leaving the block with an exception after more than one attempt logs the
    retry stats.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_base: float = 2.0,
        retryable: Callable[[Exception], bool] = is_retryable_error,
        label: str = "operation"
    ):
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.retryable = retryable
        self.label = label
        self.stats = RetryStats()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None and self.stats.attempts > 1:
            log.warning(f"{self.label} gave up: {self.stats.to_dict()}")
        return False

    async def execute(self, func: Callable, *args, **kwargs):
        """Execute a function with retry logic."""
        last_error = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                if asyncio.iscoroutinefunction(func):
                    result = await func(*args, **kwargs)
                else:
                    result = func(*args, **kwargs)

                self.stats.record_attempt()
                self.stats.mark_success()
                return result

            except Exception as e:
                last_error = e

                if attempt >= self.max_attempts or not self.retryable(e):
                    self.stats.record_attempt(error=e)
                    raise

                delay = calculate_backoff(
                    attempt,
                    base_delay=self.base_delay,
                    max_delay=self.max_delay,
                    exponential_base=self.exponential_base
                )

                self.stats.record_attempt(error=e, delay=delay)

                log.warning(
                    f"{self.label} attempt {attempt} failed: {e}. Retrying in {delay:.1f}s..."
                )

                await asyncio.sleep(delay)

        raise last_error if last_error else RuntimeError("Retry exhausted")
