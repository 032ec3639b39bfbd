"""
Suggestion Generator - typed, templated follow-up actions per email

Each rule below is gated on the canonical intent and runs independently,
so one email can yield several suggestions (one per deadline, one per
step of a multi-step process, a LinkedIn follow-up next to a scheduling
reply). Suggestion ids are derived from the email id plus a per-kind
discriminator, which makes regeneration idempotent and safe to upsert.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple
from urllib.parse import quote, urlparse

from inboxzero import intents
from inboxzero.actions import sender_first_name
from inboxzero.models import (
    Analysis,
    CalendarAvailability,
    Email,
    Suggestion,
    TimeSlot,
    to_utc,
)

logger = logging.getLogger(__name__)

MAX_TIME_SLOTS = 3
DEFAULT_DEADLINE_DAYS = 7
DEFAULT_RESUME_ATTACHMENT = "Resume.pdf"
LINKEDIN_MESSAGING_URL = "https://www.linkedin.com/messaging/compose/?recipient={recipient}"

_EMBEDDED_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")
_DURATION = re.compile(
    r"(\d+(?:\.\d+)?)\s*(hours|hour|hrs|hr|h|minutes|minute|mins|min|m)\b", re.IGNORECASE
)


# ---------------------------------------------------------------------------
# Parsing and formatting helpers
# ---------------------------------------------------------------------------


def _parse_iso(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None


def parse_deadline(value: str, now: datetime) -> Tuple[datetime, bool]:
    """
    Parse a deadline string from the classifier.

    Tries a full ISO parse, then an embedded YYYY-MM-DD, then falls back
    to DEFAULT_DEADLINE_DAYS from ``now``.

    Returns:
        (deadline, parsed) where ``parsed`` is False for the fallback
    """
    deadline = _parse_iso(value)
    if deadline is None:
        match = _EMBEDDED_DATE.search(value or "")
        if match:
            deadline = _parse_iso(match.group(0))

    if deadline is None:
        logger.debug(f"Unparseable deadline '{value}', defaulting to {DEFAULT_DEADLINE_DAYS} days")
        return now + timedelta(days=DEFAULT_DEADLINE_DAYS), False
    return deadline, True


def epoch_millis(value: datetime) -> int:
    return int(to_utc(value).timestamp() * 1000)


def parse_duration_minutes(text: Optional[str]) -> Optional[int]:
    """
    Parse a free-text meeting duration.

    Examples:
        "30min" -> 30, "1 hour" -> 60, "1.5 hrs" -> 90, "a quick chat" -> None
    """
    if not text:
        return None
    match = _DURATION.search(text)
    if not match:
        return None
    amount = float(match.group(1))
    if match.group(2).lower().startswith("h"):
        amount *= 60
    minutes = int(round(amount))
    return minutes if minutes > 0 else None


def _clock(value: datetime) -> str:
    """9:00AM / 12:30PM"""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d}{suffix}"


def _long_date(value: datetime) -> str:
    """Tuesday, October 20, 2026"""
    return f"{value.strftime('%A, %B')} {value.day}, {value.year}"


def format_time_slot(slot: TimeSlot, duration_minutes: Optional[int] = None) -> str:
    """
    Format a free window as "{Weekday} {h:mmAM}-{h:mmPM}".

    When a meeting duration is known, the end is capped at start + duration
    so the offer reads as a concrete meeting time rather than the whole gap.
    """
    start = _parse_iso(slot.start)
    end = _parse_iso(slot.end)
    if start is None or end is None:
        return f"{slot.start}-{slot.end}"

    if duration_minutes:
        end = min(end, start + timedelta(minutes=duration_minutes))
    return f"{start.strftime('%A')} {_clock(start)}-{_clock(end)}"


def linkedin_message_url(profile_url: Optional[str]) -> Optional[str]:
    """
    Derive a messaging deep link from a LinkedIn profile URL.

    "https://www.linkedin.com/in/jane-doe/" ->
    "https://www.linkedin.com/messaging/compose/?recipient=jane-doe"
    """
    if not profile_url:
        return None
    path = urlparse(profile_url).path
    segments = [s for s in path.split("/") if s]
    if not segments:
        return None
    return LINKEDIN_MESSAGING_URL.format(recipient=quote(segments[-1]))


def _profile_url(email: Email, analysis: Analysis) -> Optional[str]:
    if analysis.linkedin_profile_url:
        return analysis.linkedin_profile_url
    if analysis.sender_info and analysis.sender_info.linkedin_profile_url:
        return analysis.sender_info.linkedin_profile_url
    return email.linkedin_profile_url


def _display_name(email: Email, analysis: Analysis) -> str:
    if email.sender_name:
        return email.sender_name
    if analysis.sender_info and analysis.sender_info.name:
        return analysis.sender_info.name
    return email.sender or "sender"


def _select_slots(availabilities: List[CalendarAvailability]) -> List[TimeSlot]:
    slots: List[TimeSlot] = []
    for availability in availabilities:
        for slot in availability.available_slots:
            slots.append(slot)
            if len(slots) >= MAX_TIME_SLOTS:
                return slots
    return slots


# ---------------------------------------------------------------------------
# Per-intent rules
# ---------------------------------------------------------------------------


def _schedule_suggestions(
    email: Email,
    analysis: Analysis,
    availabilities: List[CalendarAvailability],
    now: datetime,
) -> List[Suggestion]:
    first = sender_first_name(email, analysis)
    name = _display_name(email, analysis)
    company = analysis.company
    at_company = f" at {company}" if company else ""
    slots = _select_slots(availabilities)

    if slots:
        duration = parse_duration_minutes(analysis.constraints.duration)
        formatted = [format_time_slot(slot, duration) for slot in slots]
        offered = " or ".join(formatted[:2])
        response = (
            f"Hi {first},\n\n"
            f"Thank you for reaching out. I'm available {offered}. "
            f"Please let me know which time works best for you.\n\n"
            f"Best regards"
        )
        return [
            Suggestion(
                id=f"schedule-{email.id}",
                email_id=email.id,
                type="schedule",
                title=f"Schedule call with {name}{at_company}",
                description="Available times: " + ", ".join(formatted),
                suggested_time=slots[0].start,
                action_items=list(analysis.action_items),
                priority=analysis.priority,
                generated_response=response,
                time_slots=formatted,
                created_at=now,
            )
        ]

    phrase = analysis.constraints.time_constraints
    if phrase:
        response = (
            f"Hi {first},\n\n"
            f"Thank you for reaching out. Regarding timing ({phrase}), "
            f"could you share a few options that work for you?\n\n"
            f"Best regards"
        )
        return [
            Suggestion(
                id=f"schedule-{email.id}-availability",
                email_id=email.id,
                type="schedule",
                title=f"Respond to {name}{at_company} with availability",
                description=f"Requested timing: {phrase}. Reply with times that work for you.",
                action_items=list(analysis.action_items),
                priority=analysis.priority,
                generated_response=response,
                created_at=now,
            )
        ]

    return []


def _resume_suggestion(email: Email, analysis: Analysis, now: datetime) -> Suggestion:
    first = sender_first_name(email, analysis)
    company = analysis.company
    deadline = None
    deadline_note = ""
    if analysis.constraints.deadlines:
        deadline, parsed = parse_deadline(analysis.constraints.deadlines[0], now)
        label = _long_date(deadline) if parsed else analysis.constraints.deadlines[0]
        deadline_note = f", ahead of the {label} deadline"

    interest = f" in opportunities at {company}" if company else ""
    response = (
        f"Hi {first},\n\n"
        f"Thank you for your interest{interest}. "
        f"Please find my resume attached{deadline_note}. "
        f"I look forward to hearing from you.\n\n"
        f"Best regards"
    )
    at_company = f" at {company}" if company else ""
    return Suggestion(
        id=f"resume-{email.id}",
        email_id=email.id,
        type="followup",
        title=f"Send resume to {_display_name(email, analysis)}{at_company}",
        description=(
            f"Due: {_long_date(deadline)}" if deadline else "Reply with your resume attached"
        ),
        deadline=deadline,
        action_items=list(analysis.action_items) or ["Send resume"],
        priority=analysis.priority,
        generated_response=response,
        attachments_needed=[DEFAULT_RESUME_ATTACHMENT],
        created_at=now,
    )


def _assessment_suggestion(email: Email, analysis: Analysis, now: datetime) -> Suggestion:
    first = sender_first_name(email, analysis)
    company = analysis.company
    deadline = None
    if analysis.constraints.deadlines:
        deadline, _ = parse_deadline(analysis.constraints.deadlines[0], now)

    by_date = f" by {_long_date(deadline)}" if deadline else ""
    response = (
        f"Hi {first},\n\n"
        f"Thank you for sending over the technical assessment. "
        f"I'll complete it{by_date} and let you know once it's submitted.\n\n"
        f"Best regards"
    )
    from_company = f" from {company}" if company else ""
    return Suggestion(
        id=f"assessment-{email.id}",
        email_id=email.id,
        type="deadline",
        title=f"Complete technical assessment{from_company}",
        description=f"Due: {_long_date(deadline)}" if deadline else "No deadline given",
        deadline=deadline,
        action_items=list(analysis.action_items) or ["Complete technical assessment"],
        priority=analysis.priority,
        generated_response=response,
        created_at=now,
    )


def _deadline_suggestions(email: Email, analysis: Analysis, now: datetime) -> List[Suggestion]:
    suggestions = []
    seen_ids = set()
    task = analysis.action_items[0] if analysis.action_items else "Complete task"

    for index, raw in enumerate(analysis.constraints.deadlines):
        deadline, parsed = parse_deadline(raw, now)
        if parsed:
            suggestion_id = f"deadline-{email.id}-{epoch_millis(deadline)}"
        else:
            suggestion_id = f"deadline-{email.id}-default-{index}"

        # The same deadline listed twice is one deadline
        if suggestion_id in seen_ids:
            continue
        seen_ids.add(suggestion_id)

        suggestions.append(
            Suggestion(
                id=suggestion_id,
                email_id=email.id,
                type="deadline",
                title=f"Deadline: {task}",
                description=f"Due: {_long_date(deadline)}",
                deadline=deadline,
                action_items=list(analysis.action_items),
                priority=analysis.priority,
                created_at=now,
            )
        )
    return suggestions


def _multi_step_suggestions(email: Email, analysis: Analysis, now: datetime) -> List[Suggestion]:
    first = sender_first_name(email, analysis)
    name = _display_name(email, analysis)
    suggestions = []

    for index, item in enumerate(analysis.action_items):
        response = None
        if index == 0:
            response = (
                f"Hi {first},\n\n"
                f"Thank you for outlining the process. "
                f"I'll get started on the first step: {item}.\n\n"
                f"Best regards"
            )
        suggestions.append(
            Suggestion(
                id=f"multistep-{email.id}-{index}",
                email_id=email.id,
                type="followup",
                title=f"Step {index + 1}: {item}",
                description=f"Part of multi-step process with {name}",
                action_items=[item],
                priority="high" if index == 0 else analysis.priority,
                generated_response=response,
                created_at=now,
            )
        )
    return suggestions


def _linkedin_suggestion(email: Email, analysis: Analysis, now: datetime) -> Suggestion:
    first = sender_first_name(email, analysis)
    company = analysis.company
    profile_url = _profile_url(email, analysis)
    about = f" about opportunities at {company}" if company else ""
    details = ". ".join(analysis.action_items)
    return Suggestion(
        id=f"linkedin-{email.id}",
        email_id=email.id,
        type="linkedin-followup",
        title=f"Follow up with {_display_name(email, analysis)} on LinkedIn",
        description="Continue the conversation on LinkedIn." + (f" {details}" if details else ""),
        action_items=list(analysis.action_items),
        priority=analysis.priority,
        linkedin_profile_url=profile_url,
        linkedin_message_url=linkedin_message_url(profile_url),
        generated_response=(
            f"Hi {first}, thanks for reaching out! "
            f"I'd love to continue our conversation{about}."
        ),
        created_at=now,
    )


def _generic_followup(email: Email, analysis: Analysis, now: datetime) -> Suggestion:
    first = sender_first_name(email, analysis)
    seed = analysis.action_items[0]
    return Suggestion(
        id=f"followup-{email.id}",
        email_id=email.id,
        type="followup",
        title=f"Follow up with {_display_name(email, analysis)}",
        description=". ".join(analysis.action_items),
        action_items=list(analysis.action_items),
        priority=analysis.priority,
        generated_response=(
            f"Hi {first},\n\n"
            f"Thanks for your email. I'm following up on: {seed}. "
            f"Please let me know if you need anything else from me.\n\n"
            f"Best regards"
        ),
        created_at=now,
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def generate_suggestions(
    email: Email,
    analysis: Analysis,
    availabilities: Optional[List[CalendarAvailability]] = None,
    now: Optional[datetime] = None,
) -> List[Suggestion]:
    """
    Generate follow-up suggestions for a classified email.

    Args:
        email: The email
        analysis: Canonical analysis whose ``priority`` already holds the
            scorer's tier
        availabilities: Free calendar windows for the requested dates
        now: Creation timestamp and anchor for defaulted deadlines
            (defaults to the current UTC time)

    Returns:
        Possibly empty list of suggestions with deterministic ids
    """
    now = now or datetime.now(timezone.utc)
    availabilities = availabilities or []
    intent = intents.normalize_intent(analysis.intent)
    suggestions: List[Suggestion] = []

    if intent == intents.SCHEDULE_CALL:
        suggestions.extend(_schedule_suggestions(email, analysis, availabilities, now))

    if intent == intents.SEND_RESUME:
        suggestions.append(_resume_suggestion(email, analysis, now))

    if intent == intents.TECHNICAL_ASSESSMENT:
        suggestions.append(_assessment_suggestion(email, analysis, now))

    if intent == intents.DEADLINE:
        suggestions.extend(_deadline_suggestions(email, analysis, now))

    if intent == intents.MULTI_STEP_PROCESS:
        suggestions.extend(_multi_step_suggestions(email, analysis, now))

    if intent == intents.LINKEDIN_FOLLOWUP or (
        analysis.platform == "linkedin" and _profile_url(email, analysis)
    ):
        suggestions.append(_linkedin_suggestion(email, analysis, now))

    if not suggestions and analysis.action_items:
        suggestions.append(_generic_followup(email, analysis, now))

    logger.debug(f"Generated {len(suggestions)} suggestion(s) for email {email.id} ({intent})")
    return suggestions
