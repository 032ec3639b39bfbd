"""
Tests for record normalization at the ingestion boundary.
"""

from datetime import datetime, timezone

import pytest

from inboxzero.intents import normalize_intent
from inboxzero.models import (
    Analysis,
    Email,
    Suggestion,
    UserPreferences,
    merge_action_items,
    to_utc,
)


def test_analysis_from_camel_case(sample_email):
    analysis = Analysis.from_dict(
        {
            "intent": "schedule",
            "constraints": {
                "dates": ["2026-10-20"],
                "timeConstraints": "mornings",
                "specificConstraints": ["video call"],
            },
            "requiredActions": ["Reply with availability"],
            "actionItems": ["reply  with AVAILABILITY", "Prepare questions"],
            "companyCategory": "HIGH",
            "companyName": "Stripe",
            "linkedInProfileUrl": "https://www.linkedin.com/in/dana",
            "priority": "urgent",
        },
        sample_email,
    )

    assert analysis.intent == "schedule_call"
    assert analysis.constraints.dates == ["2026-10-20"]
    assert analysis.constraints.time_constraints == "mornings"
    assert analysis.constraints.specific_constraints == ["video call"]
    assert analysis.action_items == ["Reply with availability", "Prepare questions"]
    assert analysis.company_category == "high"
    assert analysis.company == "Stripe"
    assert analysis.linkedin_profile_url == "https://www.linkedin.com/in/dana"
    assert analysis.priority == "medium"
    assert analysis.platform == "email"


def test_analysis_tolerates_garbage(sample_email):
    """Mistyped optional fields fall back to defaults instead of raising."""
    analysis = Analysis.from_dict(
        {
            "intent": 42,
            "constraints": "tomorrow",
            "requiredActions": "Send resume",
            "senderInfo": ["not", "a", "dict"],
            "companyCategory": "huge",
        },
        sample_email,
    )

    assert analysis.intent == "other"
    assert analysis.constraints.dates == []
    assert analysis.action_items == ["Send resume"]
    assert analysis.sender_info.name == "Dana Smith"
    assert analysis.sender_info.email == "dana@stripe.com"
    assert analysis.company_category == "unknown"
    assert analysis.company is None


def test_analysis_from_none(sample_email):
    assert Analysis.from_dict(None, sample_email).intent == "other"


def test_company_falls_back_to_sender_company(sample_email):
    analysis = Analysis.from_dict({"senderInfo": {"company": "Stripe"}}, sample_email)

    assert analysis.company_name is None
    assert analysis.company == "Stripe"


def test_linkedin_platform_and_profile_from_email(linkedin_email):
    analysis = Analysis.from_dict({}, linkedin_email)

    assert analysis.platform == "linkedin"
    assert analysis.linkedin_profile_url == "https://www.linkedin.com/in/priya-patel-42"


def test_default_analysis(linkedin_email):
    analysis = Analysis.default(linkedin_email)

    assert analysis.intent == "other"
    assert analysis.priority == "low"
    assert analysis.platform == "linkedin"
    assert analysis.action_items == []


def test_stored_row_roundtrip(sample_email, schedule_analysis):
    restored = Analysis.from_dict(schedule_analysis.to_dict(), sample_email)

    assert restored == schedule_analysis


@pytest.mark.parametrize(
    "raw, canonical",
    [
        ("schedule", "schedule_call"),
        ("schedule-call", "schedule_call"),
        ("Send-Resume", "send_resume"),
        ("technical-assessment", "technical_assessment"),
        ("multi-step", "multi_step_process"),
        ("multi-step-process", "multi_step_process"),
        ("linkedin-followup", "linkedin_followup"),
        ("deadline", "deadline"),
        ("coffee", "other"),
        ("", "other"),
        (None, "other"),
    ],
)
def test_normalize_intent(raw, canonical):
    assert normalize_intent(raw) == canonical


def test_merge_action_items_keeps_required_first():
    merged = merge_action_items(["Send resume", "Book call"], ["book call", "Share portfolio"])

    assert merged == ["Send resume", "Book call", "Share portfolio"]


def test_to_utc():
    naive = datetime(2026, 10, 18, 12, 0)

    assert to_utc(naive) == datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def test_email_from_dict_aliases():
    email = Email.from_dict(
        {
            "id": 7,
            "threadId": "t-7",
            "from": "jo@example.com",
            "fromName": "Jo",
            "subject": "Hello",
            "date": "2026-10-17T09:30:00Z",
            "isLinkedInNotification": True,
        }
    )

    assert email.id == "7"
    assert email.thread_id == "t-7"
    assert email.sender_name == "Jo"
    assert email.received_at == datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc)
    assert email.is_linkedin_notification is True


def test_preferences_from_camel_case():
    prefs = UserPreferences.from_dict(
        {
            "skills": ["Python", "  "],
            "desiredRoles": ["Staff Engineer"],
            "highPriorityCompanyTypes": " AI startups ",
            "preferredResponseTime": 12,
        }
    )

    assert prefs.skills == ["Python"]
    assert prefs.desired_roles == ["Staff Engineer"]
    assert prefs.high_priority_company_types == "AI startups"
    assert prefs.preferred_response_time == 12
    assert "interview" in prefs.high_priority_keywords


@pytest.mark.parametrize(
    "payload, message",
    [
        (None, "must be a JSON object"),
        ({"skills": "Python"}, "'skills' must be a list of strings"),
        ({"skills": ["Python", 3]}, "'skills' must be a list of strings"),
        ({"high_priority_company_types": ["AI"]}, "must be a string"),
        ({"preferred_response_time": -1}, "non-negative integer"),
        ({"preferred_response_time": True}, "non-negative integer"),
    ],
)
def test_preferences_validation(payload, message):
    with pytest.raises(ValueError, match=message):
        UserPreferences.from_dict(payload)


def test_preferences_roundtrip():
    prefs = UserPreferences(skills=["Go"], high_priority_company_types="fintech")

    assert UserPreferences.from_dict(prefs.to_dict()) == prefs


def test_suggestion_rejects_unknown_type():
    with pytest.raises(ValueError, match="Invalid suggestion type 'reminder'"):
        Suggestion(
            id="reminder-msg-1",
            email_id="msg-1",
            type="reminder",
            title="Remind me",
            description="",
            action_items=[],
            priority="low",
            created_at=datetime(2026, 10, 18, tzinfo=timezone.utc),
        )
