"""
Action Synthesizer - one definitive next action per email

Turns a classified email into a single imperative sentence for the inbox
view ("Schedule call with Dana at Stripe for 2026-10-21"). Dispatches on
the canonical intent; emails without a recognized intent fall back to a
tier-dependent "respond" or "review" action.
"""

import logging
from typing import Optional

from inboxzero import intents
from inboxzero.models import Analysis, Email, UserPreferences

logger = logging.getLogger(__name__)

SUBJECT_PREVIEW_LENGTH = 50


def sender_first_name(email: Email, analysis: Optional[Analysis] = None) -> str:
    """
    First whitespace-delimited token of the sender's display name.

    Falls back to the classifier's sender name, then the local part of
    the address, then "sender".
    """
    candidates = [email.sender_name]
    if analysis and analysis.sender_info:
        candidates.append(analysis.sender_info.name)
    candidates.append(email.sender.split("@")[0])

    for name in candidates:
        tokens = (name or "").split()
        if tokens:
            return tokens[0]
    return "sender"


def company_context(analysis: Analysis) -> str:
    company = analysis.company
    return f" at {company}" if company else ""


def _truncate(text: str, length: int) -> str:
    return " ".join(text.split())[:length].rstrip()


def _deadline_suffix(analysis: Analysis) -> str:
    deadlines = analysis.constraints.deadlines
    return f" by {deadlines[0]}" if deadlines else ""


def synthesize_action(
    email: Email,
    analysis: Analysis,
    tier: str,
    preferences: Optional[UserPreferences] = None,
) -> str:
    """
    Build the definitive next action for an email.

    Args:
        email: The email
        analysis: Canonical analysis
        tier: Priority tier from score_to_tier()
        preferences: User profile (currently unused)

    Returns:
        Non-empty human-readable action sentence
    """
    name = sender_first_name(email, analysis)
    who = f"{name}{company_context(analysis)}"
    constraints = analysis.constraints
    intent = intents.normalize_intent(analysis.intent)

    if intent == intents.SCHEDULE_CALL:
        if constraints.dates:
            return f"Schedule call with {who} for {constraints.dates[0]}"
        if constraints.time_constraints:
            return f"Schedule call with {who} for {constraints.time_constraints}"
        return f"Respond to {who} with your availability"

    if intent == intents.SEND_RESUME:
        return f"Send resume to {who}{_deadline_suffix(analysis)}"

    if intent == intents.TECHNICAL_ASSESSMENT:
        return f"Complete technical assessment from {who}{_deadline_suffix(analysis)}"

    if intent == intents.DEADLINE:
        if constraints.deadlines:
            task = analysis.action_items[0] if analysis.action_items else "see email"
            return f"Complete by {constraints.deadlines[0]}: {task}"
        return f"Complete deadline task from {who}"

    if intent == intents.MULTI_STEP_PROCESS:
        if analysis.action_items:
            return f"Start step 1: {analysis.action_items[0]}"
        return f"Begin multi-step process with {who}"

    if intent == intents.LINKEDIN_FOLLOWUP:
        return f"Follow up with {who} on LinkedIn"

    if tier == "high":
        subject = _truncate(email.subject, SUBJECT_PREVIEW_LENGTH) or "(no subject)"
        if analysis.company_category == "high":
            return f"High priority match: respond to {who} - {subject}"
        return f"Respond to {who} - {subject}"

    if tier == "medium":
        return f"Review email from {who}"

    return f"Review email from {name}"
