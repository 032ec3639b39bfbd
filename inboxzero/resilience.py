"""
Resilience utilities for InboxZero.

Retry with exponential backoff and rate limiting for the external
collaborators (LLM classifier, Gmail, Calendar), plus the paced executor
the batch orchestrator uses to sequence rate-limited calls.
"""

import functools
import random
import threading
import time
from collections import deque
from typing import Any, Callable, Iterable, Iterator, List, Optional, Tuple, Type

from inboxzero.logging_config import get_logger

logger = get_logger(__name__)


class RetryError(Exception):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, message: str, last_exception: Optional[Exception] = None):
        super().__init__(message)
        self.last_exception = last_exception


class RateLimitExceeded(Exception):
    """
    Raised when an upstream API reports that its quota is exhausted.

    This is a batch-level condition: callers stop issuing further requests
    instead of retrying.
    """

    def __init__(self, message: str = "rate limit reached", retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,),
    on_retry: Optional[Callable[[Exception, int], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Decorator for retry with exponential backoff.

    RateLimitExceeded is never retried, even if it matches
    ``retryable_exceptions``; it propagates immediately.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay cap in seconds
        exponential_base: Base for exponential calculation
        jitter: Add +/-25% random jitter to each delay
        retryable_exceptions: Tuple of exceptions to retry on
        on_retry: Optional callback called on each retry (exception, attempt)
        sleep: Sleep function (injectable for tests)

    Usage:
        @retry_with_backoff(max_retries=3, base_delay=1.0)
        def flaky_api_call():
            ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except RateLimitExceeded:
                    raise
                except retryable_exceptions as e:
                    last_exception = e

                    if attempt == max_retries:
                        logger.error(
                            f"All {max_retries} retries exhausted for {func.__name__}: {e}"
                        )
                        raise RetryError(
                            f"Failed after {max_retries} retries: {e}", last_exception=e
                        )

                    delay = min(base_delay * (exponential_base**attempt), max_delay)
                    if jitter:
                        delay = delay * (0.75 + random.random() * 0.5)

                    logger.warning(
                        f"Retry {attempt + 1}/{max_retries} for {func.__name__} "
                        f"after {delay:.2f}s delay. Error: {e}"
                    )

                    if on_retry:
                        on_retry(e, attempt + 1)

                    sleep(delay)

            raise RetryError(f"Failed after {max_retries} retries", last_exception=last_exception)

        return wrapper

    return decorator


class RateLimiter:
    """
    Sliding-window rate limiter for API calls.

    Allows at most ``calls_per_minute`` calls in any 60 second window and
    spaces consecutive calls by at least ``60 / calls_per_minute`` seconds.
    """

    def __init__(self, calls_per_minute: int = 60):
        self.calls_per_minute = calls_per_minute
        self.min_interval = 60.0 / calls_per_minute

        self._lock = threading.Lock()
        self._call_times: deque = deque(maxlen=calls_per_minute)
        self._last_call: Optional[float] = None

    def acquire(self, timeout: Optional[float] = None) -> bool:
        """
        Acquire permission to make a call, blocking if necessary.

        Args:
            timeout: Maximum time to wait in seconds (None for infinite)

        Returns:
            True if acquired, False if the timeout would be exceeded
        """
        start_time = time.time()

        while True:
            with self._lock:
                now = time.time()

                while self._call_times and self._call_times[0] < now - 60:
                    self._call_times.popleft()

                if len(self._call_times) < self.calls_per_minute:
                    if self._last_call is None or (now - self._last_call) >= self.min_interval:
                        self._call_times.append(now)
                        self._last_call = now
                        return True

                if self._call_times:
                    wait_for_window = max(0, self._call_times[0] + 60 - now)
                else:
                    wait_for_window = 0

                if self._last_call:
                    wait_for_interval = max(0, self._last_call + self.min_interval - now)
                else:
                    wait_for_interval = 0

                wait_time = max(wait_for_window, wait_for_interval)

            if timeout is not None:
                elapsed = time.time() - start_time
                if elapsed + wait_time > timeout:
                    return False

            if wait_time > 0:
                time.sleep(min(wait_time, 0.1))
            else:
                time.sleep(0.01)


class APIRateLimiters:
    """Pre-configured rate limiters for the external collaborators."""

    claude = RateLimiter(calls_per_minute=60)

    # x.ai free tier is stricter than Anthropic's
    grok = RateLimiter(calls_per_minute=30)

    gmail = RateLimiter(calls_per_minute=120)

    calendar = RateLimiter(calls_per_minute=60)


class PacedExecutor:
    """
    Sequential executor for rate-limited collaborator calls.

    Truncates the input to the first ``max_items`` entries, waits
    ``delay`` seconds between consecutive calls and optionally acquires a
    RateLimiter before each call. Results are yielded in input order as
    ``(item, result, error)`` triples. An exception raised by ``func`` is
    handed to the consumer as ``error`` (with ``result`` None) so that one
    failure does not end the iteration; the consumer decides whether to
    stop, e.g. by breaking out of the loop on RateLimitExceeded.
    """

    def __init__(
        self,
        delay: float = 0.0,
        max_items: Optional[int] = None,
        rate_limiter: Optional[RateLimiter] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.delay = delay
        self.max_items = max_items
        self.rate_limiter = rate_limiter
        self._sleep = sleep

    def select(self, items: Iterable[Any]) -> List[Any]:
        """Return the items this executor will process."""
        items = list(items)
        if self.max_items is not None:
            return items[: self.max_items]
        return items

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """Run a single paced call (rate limiter only, no inter-call delay)."""
        if self.rate_limiter:
            self.rate_limiter.acquire()
        return func(*args, **kwargs)

    def map(
        self, func: Callable[[Any], Any], items: Iterable[Any]
    ) -> Iterator[Tuple[Any, Any, Optional[Exception]]]:
        for index, item in enumerate(self.select(items)):
            if index > 0 and self.delay > 0:
                self._sleep(self.delay)
            try:
                result = self.call(func, item)
            except Exception as e:
                yield item, None, e
            else:
                yield item, result, None
