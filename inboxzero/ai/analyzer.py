"""
AI Analyzer - High-level email classification

Wraps the configured provider with retry logic and rate limiting. Transient
API errors are retried with exponential backoff; an exhausted quota
surfaces immediately as RateLimitExceeded so that the batch can stop.
"""

import time
from typing import Callable, Optional

from inboxzero.logging_config import get_logger
from inboxzero.models import Analysis, Email, UserPreferences
from inboxzero.resilience import APIRateLimiters, RateLimitExceeded, RetryError, retry_with_backoff

from .base import ClassificationError, ClassifierProvider
from .factory import get_provider

logger = get_logger(__name__)

MAX_RETRIES = 3
RATE_LIMIT_TIMEOUT = 30


def classify_email(
    email: Email,
    preferences: UserPreferences,
    provider: Optional[ClassifierProvider] = None,
    max_retries: int = MAX_RETRIES,
    sleep: Callable[[float], None] = time.sleep,
) -> Analysis:
    """
    Classify an email with the configured provider.

    Args:
        email: The email to classify
        preferences: User profile
        provider: Provider to use (defaults to get_provider())
        max_retries: Retries for transient API errors
        sleep: Sleep function for backoff (injectable for tests)

    Returns:
        Canonical Analysis

    Raises:
        ClassificationError: On unparseable output or unrecoverable API errors
        RateLimitExceeded: When the provider reports HTTP 429
    """
    provider = provider or get_provider()
    limiter = getattr(APIRateLimiters, provider.provider_name, None)

    @retry_with_backoff(
        max_retries=max_retries,
        base_delay=2.0,
        retryable_exceptions=provider.retryable_exceptions,
        on_retry=lambda e, attempt: logger.warning(
            f"Retry {attempt}/{max_retries} classifying email {email.id}: {e}"
        ),
        sleep=sleep,
    )
    def _call_with_retry() -> Analysis:
        if limiter:
            limiter.acquire(timeout=RATE_LIMIT_TIMEOUT)
        return provider.classify(email, preferences)

    try:
        analysis = _call_with_retry()
    except (RateLimitExceeded, ClassificationError):
        raise
    except RetryError as e:
        logger.error(f"Classification failed after retries for email {email.id}: {e}")
        raise ClassificationError(str(e)) from e.last_exception
    except Exception as e:
        logger.error(f"Classification error for email {email.id}: {e}")
        raise ClassificationError(str(e)) from e

    logger.info(
        f"Classified email {email.id} as {analysis.intent} "
        f"(company {analysis.company_category}) via {provider.provider_name}"
    )
    return analysis
