"""
Retry utilities with exponential backoff for data source calls.

The sync path retries only the external fetch; everything downstream of a
successful fetch fails fast and is handled per source.
"""
import asyncio
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Tuple, Type
from perfsync.exceptions import DataSourceError
from perfsync.utils.logger import log


@dataclass
class RetryStats:
    """Tracks retry statistics for a single operation."""
    attempts: int = 0
    total_delay_seconds: float = 0.0
    last_error: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    delays: List[float] = field(default_factory=list)
    success: bool = False

    def record_attempt(self, error: Optional[Exception] = None, delay: float = 0.0):
        """Record a retry attempt."""
        self.attempts += 1
        self.total_delay_seconds += delay
        if delay:
            self.delays.append(delay)
        if error:
            error_str = f"{type(error).__name__}: {str(error)}"
            self.last_error = error_str
            self.errors.append(error_str)

    def mark_success(self):
        """Mark the operation as successful."""
        self.success = True


# Default retryable exceptions (transport/API errors)
DEFAULT_RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    DataSourceError,
    ConnectionError,
    TimeoutError,
    OSError,  # Includes network errors
)


def calculate_backoff(
    attempt: int,
    base_delay: float = 2.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = False
) -> float:
    """
    Calculate delay for exponential backoff.

    Args:
        attempt: Current attempt number (1-indexed)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay cap
        exponential_base: Base for exponential calculation
        jitter: Add up to 25% randomness to prevent thundering herd

    Returns:
        Delay in seconds
    """
    # Exponential backoff: base_delay * (exponential_base ^ (attempt - 1))
    delay = base_delay * (exponential_base ** (attempt - 1))

    # Cap at max_delay
    delay = min(delay, max_delay)

    if jitter:
        delay += delay * random.uniform(0, 0.25)

    return delay


class RetryContext:
    """
    Retry an async callable with exponential backoff and stats tracking.

    Usage:
        retry = RetryContext(max_attempts=3)
        result = await retry.execute(client.fetch_tabs, source_id, tabs)
        log.info(f"fetched after {retry.stats.attempts} attempt(s)")
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 2.0,
        max_delay: float = 60.0,
        exponential_base: float = 2.0,
        jitter: bool = False,
        retryable_exceptions: Tuple[Type[Exception], ...] = DEFAULT_RETRYABLE_EXCEPTIONS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.retryable_exceptions = retryable_exceptions
        self.sleep = sleep
        self.stats = RetryStats()

    async def execute(self, func: Callable[..., Awaitable], *args, **kwargs):
        """Execute an async function with retry logic. The last error propagates."""
        label = getattr(func, "__name__", "operation")

        for attempt in range(1, self.max_attempts + 1):
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                if attempt >= self.max_attempts or not isinstance(e, self.retryable_exceptions):
                    self.stats.record_attempt(error=e)
                    log.error(f"{label} failed after {attempt} attempts: {e}")
                    raise

                delay = calculate_backoff(
                    attempt,
                    base_delay=self.base_delay,
                    max_delay=self.max_delay,
                    exponential_base=self.exponential_base,
                    jitter=self.jitter,
                )

                self.stats.record_attempt(error=e, delay=delay)

                log.warning(
                    f"{label} attempt {attempt}/{self.max_attempts} failed: {e}. "
                    f"Retrying in {delay:.1f}s..."
                )

                await self.sleep(delay)
                continue

            self.stats.record_attempt()
            self.stats.mark_success()

            if attempt > 1:
                log.info(
                    f"{label} succeeded on attempt {attempt} "
                    f"after {self.stats.total_delay_seconds:.1f}s total delay"
                )

            return result

        raise RuntimeError("Retry exhausted")  # unreachable: last attempt re-raises
