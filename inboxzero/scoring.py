"""
Scoring Module - Email priority scoring and ranking

This module centralizes all priority-related logic for InboxZero.

Scoring components (additive, starting from a base of 50):
1. Company signal: AI company category, else legacy company-name lists
2. Role signals: desired roles, past roles, high/medium priority roles
3. Skill and keyword signals from the user's profile
4. Intent bonus from the classifier's canonical intent
5. Urgency signals: extracted deadlines, urgent phrases, LinkedIn origin

The final score is clamped to 0-100 and bucketed into a high/medium/low
tier, which is the only priority surfaced downstream.
"""

import logging
from typing import Dict, List, Tuple

from inboxzero import intents
from inboxzero.matching import (
    distinct_skill_matches,
    distinct_substring_matches,
    first_role_match,
    first_substring_match,
)
from inboxzero.models import Analysis, Email, EmailResult, UserPreferences, to_utc

logger = logging.getLogger(__name__)

BASE_SCORE = 50
MIN_SCORE = 0
MAX_SCORE = 100

HIGH_TIER_THRESHOLD = 70
MEDIUM_TIER_THRESHOLD = 40

COMPANY_POINTS = {"high": 30, "medium": 15, "low": -20}

DESIRED_ROLE_POINTS = 25
PAST_ROLE_POINTS = 18
HIGH_ROLE_POINTS = 20
MEDIUM_ROLE_POINTS = 10

SKILL_POINTS = 15
MAX_SKILL_MATCHES = 2

HIGH_KEYWORD_POINTS = 15
MAX_KEYWORD_MATCHES = 2
LOW_KEYWORD_POINTS = -25

INTENT_POINTS = {
    intents.SCHEDULE_CALL: 20,
    intents.DEADLINE: 25,
    intents.SEND_RESUME: 18,
    intents.TECHNICAL_ASSESSMENT: 22,
    intents.MULTI_STEP_PROCESS: 15,
    intents.LINKEDIN_FOLLOWUP: 10,
    intents.OTHER: -10,
}

DEADLINE_POINTS = 20
URGENT_POINTS = 15
LINKEDIN_POINTS = 5

# Score pinned for emails the classifier could not handle
FALLBACK_SCORE = 30


def _searchable_text(email: Email) -> str:
    return f"{email.sender} {email.subject} {email.body}".lower()


def _company_adjustment(
    text: str, analysis: Analysis, preferences: UserPreferences
) -> Tuple[str, int]:
    """Company points from the AI category, else the first legacy list match."""
    category = analysis.company_category
    if category in COMPANY_POINTS:
        return f"company category {category}", COMPANY_POINTS[category]

    legacy_lists = (
        ("high", preferences.high_priority_companies),
        ("medium", preferences.medium_priority_companies),
        ("low", preferences.low_priority_companies),
    )
    for level, companies in legacy_lists:
        company = first_substring_match(text, companies)
        if company:
            return f"{level} priority company '{company}'", COMPANY_POINTS[level]
    return "", 0


def score_breakdown(
    email: Email, analysis: Analysis, preferences: UserPreferences
) -> List[Tuple[str, int]]:
    """
    List every adjustment that applies to this email.

    Each category is evaluated independently; "first match" rules only
    short-circuit within their own category.

    Args:
        email: The email being scored
        analysis: Canonical analysis (see Analysis.from_dict)
        preferences: User profile

    Returns:
        List of (reason, points) tuples, in evaluation order
    """
    text = _searchable_text(email)
    adjustments: List[Tuple[str, int]] = []

    reason, points = _company_adjustment(text, analysis, preferences)
    if points:
        adjustments.append((reason, points))

    role = first_role_match(text, preferences.desired_roles)
    if role:
        adjustments.append((f"desired role '{role}'", DESIRED_ROLE_POINTS))

    role = first_role_match(text, preferences.past_roles)
    if role:
        adjustments.append((f"past role '{role}'", PAST_ROLE_POINTS))

    role = first_substring_match(text, preferences.high_priority_roles)
    if role:
        adjustments.append((f"high priority role '{role}'", HIGH_ROLE_POINTS))

    role = first_substring_match(text, preferences.medium_priority_roles)
    if role:
        adjustments.append((f"medium priority role '{role}'", MEDIUM_ROLE_POINTS))

    for skill in distinct_skill_matches(text, preferences.skills, MAX_SKILL_MATCHES):
        adjustments.append((f"skill '{skill}'", SKILL_POINTS))

    for keyword in distinct_substring_matches(
        text, preferences.high_priority_keywords, MAX_KEYWORD_MATCHES
    ):
        adjustments.append((f"keyword '{keyword}'", HIGH_KEYWORD_POINTS))

    keyword = first_substring_match(text, preferences.low_priority_keywords)
    if keyword:
        adjustments.append((f"low priority keyword '{keyword}'", LOW_KEYWORD_POINTS))

    intent = intents.normalize_intent(analysis.intent)
    adjustments.append((f"intent {intent}", INTENT_POINTS[intent]))

    if analysis.constraints.deadlines:
        adjustments.append(("has deadline", DEADLINE_POINTS))

    indicator = first_substring_match(text, preferences.urgent_indicators)
    if indicator:
        adjustments.append((f"urgent indicator '{indicator}'", URGENT_POINTS))

    if email.is_linkedin_notification:
        adjustments.append(("linkedin notification", LINKEDIN_POINTS))

    return adjustments


def calculate_priority_score(
    email: Email, analysis: Analysis, preferences: UserPreferences
) -> int:
    """
    Calculate the priority score for an email.

    Example:
        Company categorized "high" by the classifier, intent "other", no
        other signals: 50 + 30 - 10 = 70 -> tier "high".

    Returns:
        Integer score clamped to 0-100
    """
    adjustments = score_breakdown(email, analysis, preferences)
    raw = BASE_SCORE + sum(points for _, points in adjustments)
    score = max(MIN_SCORE, min(MAX_SCORE, raw))

    logger.debug(
        f"Scored email {email.id}: {score} (raw {raw}) from "
        + ", ".join(f"{reason} {points:+d}" for reason, points in adjustments)
    )
    return score


def score_to_tier(score: int) -> str:
    """
    Map a score to its priority tier.

    Args:
        score: Priority score (0-100)

    Returns:
        "high" (>= 70), "medium" (>= 40) or "low"
    """
    if score >= HIGH_TIER_THRESHOLD:
        return "high"
    elif score >= MEDIUM_TIER_THRESHOLD:
        return "medium"
    else:
        return "low"


def rank_results(results: List[EmailResult]) -> List[EmailResult]:
    """
    Sort results by score (descending), newest first within a score.

    Ties on both are broken by email id so that the order is stable
    across runs.
    """
    return sorted(
        results,
        key=lambda r: (-r.score, -to_utc(r.email.received_at).timestamp(), r.email.id),
    )


def calculate_batch_stats(results: List[EmailResult]) -> Dict:
    """
    Calculate statistics for a processed batch.

    Returns:
        Dictionary with total, per-tier counts, suggestion count,
        failed classifications and average score
    """
    if not results:
        return {
            "total": 0,
            "high": 0,
            "medium": 0,
            "low": 0,
            "suggestions": 0,
            "unclassified": 0,
            "avg_score": 0,
        }

    total = len(results)
    avg_score = sum(r.score for r in results) / total

    return {
        "total": total,
        "high": sum(1 for r in results if r.tier == "high"),
        "medium": sum(1 for r in results if r.tier == "medium"),
        "low": sum(1 for r in results if r.tier == "low"),
        "suggestions": sum(len(r.suggestions) for r in results),
        "unclassified": sum(1 for r in results if r.error),
        "avg_score": round(avg_score, 1),
    }


__all__ = [
    "calculate_priority_score",
    "score_breakdown",
    "score_to_tier",
    "rank_results",
    "calculate_batch_stats",
    "FALLBACK_SCORE",
]
