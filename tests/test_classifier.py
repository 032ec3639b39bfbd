"""
Tests for the classifier providers, the provider factory and the
retrying classify_email wrapper.

Provider SDK clients are mocked; no network calls are made.
"""

from unittest.mock import Mock

import anthropic
import httpx
import pytest

from conftest import make_email
from inboxzero.ai import ClassificationError, ClassifierProvider, classify_email, get_provider
from inboxzero.ai.claude import DEFAULT_MODEL, ClaudeProvider
from inboxzero.ai.grok import GrokProvider
from inboxzero.ai.prompts import build_classify_email_prompt, build_profile_context
from inboxzero.models import Analysis, UserPreferences
from inboxzero.resilience import RateLimitExceeded


def _claude_reply(client, text):
    client.messages.create.return_value = Mock(content=[Mock(text=text)])


def _rate_limit_error():
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    return anthropic.RateLimitError(
        "rate limited", response=httpx.Response(429, request=request), body=None
    )


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


def test_claude_classify(mock_anthropic_client, sample_email, preferences):
    provider = ClaudeProvider(client=mock_anthropic_client)

    analysis = provider.classify(sample_email, preferences)

    assert analysis.intent == "schedule_call"
    assert analysis.constraints.dates == ["2026-10-20"]
    assert analysis.action_items == ["Reply with availability", "Prepare questions"]
    assert analysis.company == "Stripe"
    assert analysis.company_category == "high"

    kwargs = mock_anthropic_client.messages.create.call_args.kwargs
    assert kwargs["model"] == DEFAULT_MODEL
    assert kwargs["max_tokens"] == 2048
    assert "Subject: Quick chat about the role" in kwargs["messages"][0]["content"]


def test_claude_model_from_config(mock_anthropic_client):
    provider = ClaudeProvider({"ai": {"model": "claude-haiku"}}, client=mock_anthropic_client)

    assert provider.provider_name == "claude"
    assert provider.model_name == "claude-haiku"


def test_claude_requires_api_key(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
        ClaudeProvider()


@pytest.mark.parametrize("text", ["I can't help with that.", "[1, 2, 3]", ""])
def test_unusable_output_raises(mock_anthropic_client, sample_email, preferences, text):
    _claude_reply(mock_anthropic_client, text)
    provider = ClaudeProvider(client=mock_anthropic_client)

    with pytest.raises(ClassificationError):
        provider.classify(sample_email, preferences)


def test_claude_rate_limit_becomes_rate_limit_exceeded(
    mock_anthropic_client, sample_email, preferences
):
    mock_anthropic_client.messages.create.side_effect = _rate_limit_error()
    provider = ClaudeProvider(client=mock_anthropic_client)

    with pytest.raises(RateLimitExceeded):
        provider.classify(sample_email, preferences)


def test_grok_classify(sample_email, preferences):
    client = Mock()
    client.chat.completions.create.return_value = Mock(
        choices=[Mock(message=Mock(content='{"intent": "deadline", "companyName": "Acme"}'))]
    )
    provider = GrokProvider(client=client)

    analysis = provider.classify(sample_email, preferences)

    assert analysis.intent == "deadline"
    assert analysis.company == "Acme"
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["temperature"] == 0
    assert kwargs["messages"][0]["role"] == "system"


@pytest.mark.parametrize(
    "text",
    [
        '{"intent": "deadline"}',
        '```json\n{"intent": "deadline"}\n```',
        '```\n{"intent": "deadline"}\n```',
        'Here is the analysis:\n{"intent": "deadline"}\nLet me know!',
    ],
)
def test_parse_json_response(mock_anthropic_client, text):
    provider = ClaudeProvider(client=mock_anthropic_client)

    assert provider._parse_json_response(text) == {"intent": "deadline"}


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def test_get_provider_unknown():
    with pytest.raises(ValueError, match="Unknown AI provider: 'gpt'"):
        get_provider({"ai": {"provider": "gpt"}})


def test_get_provider_claude(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")

    provider = get_provider({"ai": {"provider": "Claude", "model": "claude-x"}})

    assert isinstance(provider, ClaudeProvider)
    assert provider.model_name == "claude-x"


def test_get_provider_grok(monkeypatch):
    monkeypatch.delenv("GROK_API_KEY", raising=False)
    monkeypatch.setenv("XAI_API_KEY", "xai-test")

    assert isinstance(get_provider({"ai": {"provider": "grok"}}), GrokProvider)


# ---------------------------------------------------------------------------
# classify_email
# ---------------------------------------------------------------------------


class FakeProvider(ClassifierProvider):
    """Provider whose responses are a scripted list of texts or exceptions."""

    def __init__(self, responses):
        super().__init__()
        self.responses = list(responses)
        self.calls = 0

    @property
    def provider_name(self):
        return "fake"

    @property
    def model_name(self):
        return "fake-1"

    def _generate(self, prompt, max_tokens=1000):
        self.calls += 1
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def test_transient_errors_are_retried(sample_email, preferences):
    sleeps = []
    provider = FakeProvider(
        [ConnectionError("reset"), TimeoutError("slow"), '{"intent": "send_resume"}']
    )

    analysis = classify_email(sample_email, preferences, provider, sleep=sleeps.append)

    assert analysis.intent == "send_resume"
    assert provider.calls == 3
    assert len(sleeps) == 2


def test_retries_exhausted(sample_email, preferences):
    provider = FakeProvider([ConnectionError("reset")] * 2)

    with pytest.raises(ClassificationError):
        classify_email(sample_email, preferences, provider, max_retries=1, sleep=lambda s: None)
    assert provider.calls == 2


def test_rate_limit_is_not_retried(sample_email, preferences):
    provider = FakeProvider([RateLimitExceeded(), '{"intent": "other"}'])

    with pytest.raises(RateLimitExceeded):
        classify_email(sample_email, preferences, provider, sleep=lambda s: None)
    assert provider.calls == 1


def test_bad_output_is_not_retried(sample_email, preferences):
    provider = FakeProvider(["not json", '{"intent": "other"}'])

    with pytest.raises(ClassificationError):
        classify_email(sample_email, preferences, provider, sleep=lambda s: None)
    assert provider.calls == 1


def test_unexpected_error_becomes_classification_error(sample_email, preferences):
    provider = FakeProvider([KeyError("choices")])

    with pytest.raises(ClassificationError):
        classify_email(sample_email, preferences, provider, sleep=lambda s: None)


def test_classify_email_returns_canonical_analysis(sample_email, preferences):
    provider = FakeProvider(['{"intent": "multi-step", "actionItems": ["Fill form"]}'])

    analysis = classify_email(sample_email, preferences, provider)

    assert isinstance(analysis, Analysis)
    assert analysis.intent == "multi_step_process"
    assert analysis.action_items == ["Fill form"]


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------


def test_prompt_truncates_long_bodies(preferences):
    email = make_email(body="x" * 150)

    prompt = build_classify_email_prompt(email, preferences, max_body_chars=100)

    assert "x" * 100 + "\n[...truncated...]" in prompt
    assert "x" * 101 not in prompt


def test_profile_context(preferences):
    context = build_profile_context(preferences)

    assert context.startswith("User Profile:")
    assert "Skills: Python, TypeScript, PostgreSQL" in context
    assert "Seeking roles: Staff Engineer" in context
    assert "High priority keywords: interview, deadline, urgent, asap, final round" in context
    assert "High priority companies: AI companies, fintech unicorns" in context


def test_empty_profile_has_no_context():
    empty = UserPreferences(high_priority_keywords=[])

    assert build_profile_context(empty) == ""
