"""
Batch Orchestrator - classify, score, plan and persist a batch of emails

For each email (in input order, at most one classifier call each):
1. Classify via the injected classifier
2. Score and bucket into a tier, which replaces the classifier's priority
3. Resolve calendar availability for scheduling requests with dates
4. Synthesize the next action and generate suggestions
5. Persist the email and its suggestions when a store is given

Classifier failures never drop an email: it is kept with the default
analysis and a user-visible error. A rate-limit signal stops all further
classification for the batch.
"""

from datetime import datetime
from typing import Callable, List, Optional

from inboxzero import intents
from inboxzero.actions import synthesize_action
from inboxzero.ai.base import ClassificationError
from inboxzero.logging_config import LogContext, get_logger
from inboxzero.models import Analysis, BatchResult, Email, EmailResult, UserPreferences
from inboxzero.resilience import PacedExecutor, RateLimitExceeded
from inboxzero.scoring import (
    FALLBACK_SCORE,
    calculate_priority_score,
    rank_results,
    score_to_tier,
)
from inboxzero.suggestions import generate_suggestions

logger = get_logger(__name__)

CLASSIFY_FAILED_MESSAGE = "could not classify this email"
RATE_LIMITED_MESSAGE = "rate limit reached"

Classifier = Callable[[Email, UserPreferences], Analysis]


def executor_from_config(config) -> PacedExecutor:
    """Classifier executor honoring pipeline.max_emails and pipeline.classify_delay."""
    return PacedExecutor(delay=config.classify_delay, max_items=config.max_emails)


def _unclassified(email: Email, message: str) -> EmailResult:
    analysis = Analysis.default(email)
    tier = score_to_tier(FALLBACK_SCORE)
    analysis.priority = tier
    return EmailResult(
        email=email,
        analysis=analysis,
        score=FALLBACK_SCORE,
        tier=tier,
        action=synthesize_action(email, analysis, tier),
        suggestions=[],
        error=message,
    )


def _plan(
    email: Email,
    analysis: Analysis,
    preferences: UserPreferences,
    resolver,
    now: Optional[datetime],
) -> EmailResult:
    score = calculate_priority_score(email, analysis, preferences)
    tier = score_to_tier(score)
    analysis.priority = tier

    availabilities = []
    wants_slots = analysis.intent == intents.SCHEDULE_CALL and analysis.constraints.dates
    if resolver is not None and wants_slots:
        availabilities = resolver.resolve(analysis.constraints.dates)

    return EmailResult(
        email=email,
        analysis=analysis,
        score=score,
        tier=tier,
        action=synthesize_action(email, analysis, tier, preferences),
        suggestions=generate_suggestions(email, analysis, availabilities, now),
    )


def _persist(store, user_id: str, result: EmailResult, errors: List[str]) -> None:
    try:
        store.save_result(user_id, result.email, result.analysis, result.suggestions)
    except Exception as e:
        logger.error(f"Failed to save email {result.email.id}: {e}", exc_info=True)
        errors.append(f"could not save email {result.email.id}: {e}")


def process_batch(
    emails: List[Email],
    preferences: UserPreferences,
    classifier: Classifier,
    resolver=None,
    store=None,
    user_id: Optional[str] = None,
    executor: Optional[PacedExecutor] = None,
    now: Optional[datetime] = None,
) -> BatchResult:
    """
    Process a batch of emails end to end.

    Args:
        emails: Emails in fetch order
        preferences: User profile
        classifier: Callable (email, preferences) -> Analysis; raises
            ClassificationError or RateLimitExceeded
        resolver: AvailabilityResolver, or None to skip calendar lookups
        store: SuggestionStore, or None to skip persistence
        user_id: Owner of persisted rows (required with ``store``)
        executor: Paces classifier calls and caps the batch size
        now: Timestamp for generated suggestions

    Returns:
        BatchResult with ranked results, the rate-limit flag and
        non-fatal errors
    """
    executor = executor or PacedExecutor()
    selected = executor.select(emails)
    if len(selected) < len(emails):
        logger.info(f"Processing first {len(selected)} of {len(emails)} emails")

    results: List[EmailResult] = []
    errors: List[str] = []
    rate_limited = False
    attempted = 0

    def classify(email: Email) -> Analysis:
        return classifier(email, preferences)

    for email, analysis, error in executor.map(classify, selected):
        attempted += 1
        with LogContext(logger, email_id=email.id):
            if isinstance(error, RateLimitExceeded):
                logger.warning("Classifier rate limit reached, stopping batch")
                rate_limited = True
                results.append(_unclassified(email, RATE_LIMITED_MESSAGE))
                break

            if error is not None:
                if not isinstance(error, ClassificationError):
                    logger.error(f"Unexpected classifier error: {error}", exc_info=error)
                else:
                    logger.warning(f"Classification failed: {error}")
                results.append(_unclassified(email, CLASSIFY_FAILED_MESSAGE))
                continue

            result = _plan(email, analysis, preferences, resolver, now)
            results.append(result)
            if store is not None and user_id:
                _persist(store, user_id, result, errors)

    if rate_limited:
        for email in selected[attempted:]:
            results.append(_unclassified(email, RATE_LIMITED_MESSAGE))

    classified = sum(1 for r in results if not r.error)
    logger.info(
        f"Processed {len(results)} emails ({classified} classified"
        + (", rate limited" if rate_limited else "")
        + ")"
    )
    return BatchResult(results=rank_results(results), rate_limited=rate_limited, errors=errors)
