"""
Pytest configuration and shared fixtures for InboxZero tests.
"""

import os
import sys
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
import yaml

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from inboxzero.models import Analysis, Email, UserPreferences  # noqa: E402

FIXED_NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def make_email(**overrides) -> Email:
    """Build an Email with sensible defaults; override any field by keyword."""
    fields = {
        "id": "msg-1",
        "thread_id": "thread-1",
        "sender": "dana@stripe.com",
        "sender_name": "Dana Smith",
        "subject": "Quick chat about the role",
        "body": "Hi, would you be open to a call next week?",
        "received_at": datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return Email(**fields)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def sample_email():
    """Plain recruiter email with no profile signals."""
    return make_email()


@pytest.fixture
def linkedin_email():
    """LinkedIn InMail notification carrying a profile URL."""
    return make_email(
        id="msg-li",
        sender="inmail-hit-reply@linkedin.com",
        sender_name="Priya Patel via LinkedIn",
        subject="Priya sent you a message",
        body=(
            "Hi! I came across your profile and think you'd be a great fit. "
            "View profile: https://www.linkedin.com/in/priya-patel-42"
        ),
        is_linkedin_notification=True,
        linkedin_profile_url="https://www.linkedin.com/in/priya-patel-42",
    )


@pytest.fixture
def empty_preferences():
    """Profile with every list empty, so only intent and urgency signals apply."""
    return UserPreferences(
        high_priority_keywords=[],
        low_priority_keywords=[],
        urgent_indicators=[],
    )


@pytest.fixture
def preferences():
    """Representative job-seeker profile."""
    return UserPreferences(
        skills=["Python", "TypeScript", "PostgreSQL"],
        past_roles=["Backend Engineer"],
        desired_roles=["Staff Engineer"],
        high_priority_company_types="AI companies, fintech unicorns",
        medium_priority_company_types="Enterprise software",
        low_priority_company_types="Staffing agencies",
        high_priority_companies=["Stripe"],
        low_priority_companies=["Acme Staffing"],
    )


@pytest.fixture
def schedule_analysis(sample_email):
    """Classifier output for a scheduling request."""
    return Analysis.from_dict(
        {
            "intent": "schedule_call",
            "constraints": {
                "dates": ["2026-10-20", "2026-10-21"],
                "duration": "30min",
                "timeConstraints": "Tuesday or Wednesday afternoon",
            },
            "requiredActions": ["Reply with availability"],
            "senderInfo": {"name": "Dana Smith", "company": "Stripe", "email": "dana@stripe.com"},
            "companyCategory": "high",
            "companyName": "Stripe",
        },
        sample_email,
    )


@pytest.fixture
def mock_anthropic_client():
    """
    Mock Anthropic API client for testing without actual API calls.

    Returns:
        Mock: Mocked Anthropic client whose response is a schedule_call JSON
    """
    client = Mock()

    mock_message = Mock()
    mock_message.content = [
        Mock(
            text=(
                "```json\n"
                '{"intent": "schedule", "constraints": {"dates": ["2026-10-20"]}, '
                '"requiredActions": ["Reply with availability"], '
                '"actionItems": ["reply with availability", "Prepare questions"], '
                '"companyCategory": "high", "companyName": "Stripe", "priority": "high"}\n'
                "```"
            )
        )
    ]
    client.messages.create.return_value = mock_message

    return client


@pytest.fixture
def db_path(tmp_path):
    """Initialized temporary SQLite database."""
    from inboxzero.database import init_db

    path = tmp_path / "inboxzero-test.db"
    init_db(path)
    return path


@pytest.fixture
def config_file(tmp_path):
    """Write a valid config.yaml and return its path."""

    def _write(overrides=None):
        data = {
            "user": {"name": "Test User", "email": "test@example.com"},
            "ai": {"provider": "claude"},
            "calendar": {"working_hours": {"start": "09:00", "end": "17:00"}},
            "pipeline": {"max_emails": 10, "classify_delay": 0},
            "database": {"path": "test.db"},
        }
        for section, values in (overrides or {}).items():
            if isinstance(values, dict):
                data.setdefault(section, {}).update(values)
            else:
                data[section] = values
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(data))
        return path

    return _write
