"""
Tests for the action synthesizer.

Every email gets exactly one non-empty next action, chosen by intent and,
for unrecognized intents, by tier.
"""

import pytest

from conftest import make_email
from inboxzero.actions import sender_first_name, synthesize_action
from inboxzero.models import Analysis, Constraints, SenderInfo


def test_schedule_with_date(sample_email, schedule_analysis):
    action = synthesize_action(sample_email, schedule_analysis, "high")

    assert action == "Schedule call with Dana at Stripe for 2026-10-20"


def test_schedule_with_time_constraint_only(sample_email):
    analysis = Analysis(
        intent="schedule_call",
        constraints=Constraints(time_constraints="Friday afternoon"),
    )

    assert synthesize_action(sample_email, analysis, "medium") == (
        "Schedule call with Dana for Friday afternoon"
    )


def test_schedule_without_dates(sample_email):
    analysis = Analysis(intent="schedule", company_name="Stripe")

    assert synthesize_action(sample_email, analysis, "medium") == (
        "Respond to Dana at Stripe with your availability"
    )


def test_send_resume_with_deadline(sample_email):
    analysis = Analysis(
        intent="send_resume",
        company_name="Stripe",
        constraints=Constraints(deadlines=["2026-10-25"]),
    )

    assert synthesize_action(sample_email, analysis, "high") == (
        "Send resume to Dana at Stripe by 2026-10-25"
    )


def test_technical_assessment_without_deadline(sample_email):
    analysis = Analysis(intent="technical-assessment")

    assert synthesize_action(sample_email, analysis, "medium") == (
        "Complete technical assessment from Dana"
    )


def test_deadline_without_action_items(sample_email):
    analysis = Analysis(intent="deadline", constraints=Constraints(deadlines=["2026-10-25"]))

    assert synthesize_action(sample_email, analysis, "high") == "Complete by 2026-10-25: see email"


def test_deadline_with_action_item(sample_email):
    analysis = Analysis(
        intent="deadline",
        constraints=Constraints(deadlines=["2026-10-25"]),
        action_items=["Submit references"],
    )

    assert synthesize_action(sample_email, analysis, "high") == (
        "Complete by 2026-10-25: Submit references"
    )


def test_deadline_intent_without_deadline(sample_email):
    analysis = Analysis(intent="deadline", company_name="Stripe")

    assert synthesize_action(sample_email, analysis, "low") == (
        "Complete deadline task from Dana at Stripe"
    )


def test_multi_step_process(sample_email):
    analysis = Analysis(
        intent="multi-step",
        action_items=["Fill out the application form", "Book the phone screen"],
    )

    assert synthesize_action(sample_email, analysis, "medium") == (
        "Start step 1: Fill out the application form"
    )


def test_multi_step_process_without_items(sample_email):
    analysis = Analysis(intent="multi_step_process")

    assert synthesize_action(sample_email, analysis, "medium") == (
        "Begin multi-step process with Dana"
    )


def test_linkedin_followup(linkedin_email):
    analysis = Analysis(intent="linkedin-followup")

    assert synthesize_action(linkedin_email, analysis, "low") == "Follow up with Priya on LinkedIn"


def test_other_high_tier_high_company(sample_email):
    analysis = Analysis(company_category="high", company_name="Stripe")

    assert synthesize_action(sample_email, analysis, "high") == (
        "High priority match: respond to Dana at Stripe - Quick chat about the role"
    )


def test_other_high_tier_truncates_subject():
    email = make_email(subject="A" * 60)

    action = synthesize_action(email, Analysis(), "high")

    assert action == "Respond to Dana - " + "A" * 50


def test_subject_preview_never_exceeds_50_chars():
    email = make_email(subject="Following up on our conversation about the platform team role " * 2)

    action = synthesize_action(email, Analysis(), "high")

    preview = action.split(" - ", 1)[1]
    assert len(preview) <= 50
    assert preview == email.subject[:50]


def test_subject_at_limit_is_not_truncated():
    email = make_email(subject="B" * 50)

    assert synthesize_action(email, Analysis(), "high") == "Respond to Dana - " + "B" * 50


@pytest.mark.parametrize(
    "tier, expected",
    [("medium", "Review email from Dana at Stripe"), ("low", "Review email from Dana")],
)
def test_other_by_tier(sample_email, tier, expected):
    analysis = Analysis(company_name="Stripe")

    assert synthesize_action(sample_email, analysis, tier) == expected


def test_unknown_intent_treated_as_other(sample_email):
    analysis = Analysis(intent="coffee-chat")

    assert synthesize_action(sample_email, analysis, "low") == "Review email from Dana"


def test_company_falls_back_to_sender_info(sample_email):
    analysis = Analysis(
        intent="linkedin_followup",
        sender_info=SenderInfo(name="Dana Smith", email="dana@stripe.com", company="Stripe"),
    )

    assert synthesize_action(sample_email, analysis, "low") == (
        "Follow up with Dana at Stripe on LinkedIn"
    )


def test_first_name_fallbacks():
    """Display name, then classifier sender name, then address local part."""
    no_name = make_email(sender_name="", sender="jordan.lee@example.com")
    with_info = Analysis(sender_info=SenderInfo(name="Jordan Lee", email="jordan.lee@example.com"))

    assert sender_first_name(no_name, with_info) == "Jordan"
    assert sender_first_name(no_name) == "jordan.lee"
    assert sender_first_name(make_email(sender_name="", sender="")) == "sender"
