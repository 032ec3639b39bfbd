"""
Tests for the Flask API.

The app is built from a temporary config; the mail fetcher, classifier
and availability resolver are replaced through app.config.
"""

from unittest.mock import Mock

import pytest

from conftest import make_email
from inboxzero import create_app
from inboxzero.ai.base import ClassificationError
from inboxzero.models import Analysis, Constraints
from inboxzero.resilience import RateLimitExceeded


@pytest.fixture(autouse=True)
def no_dotenv(monkeypatch):
    monkeypatch.setattr("dotenv.load_dotenv", lambda *args, **kwargs: False)


@pytest.fixture
def fetched():
    return [
        make_email(id="msg-1", subject="Offer paperwork"),
        make_email(id="msg-2", subject="Intro call"),
    ]


@pytest.fixture
def outcomes():
    return {
        "msg-1": Analysis(
            intent="deadline",
            constraints=Constraints(deadlines=["2020-01-15"]),
            action_items=["Sign the offer"],
        ),
        "msg-2": Analysis(company_category="high", company_name="Stripe"),
    }


@pytest.fixture
def app(monkeypatch, config_file, fetched, outcomes):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
    app = create_app(config_file())
    app.config["TESTING"] = True

    fetch = Mock(return_value=fetched)

    def classifier(email, preferences):
        outcome = outcomes[email.id]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    resolver = Mock()
    resolver.resolve.return_value = []

    app.config["FETCH_EMAILS"] = fetch
    app.config["CLASSIFIER"] = classifier
    app.config["RESOLVER"] = resolver
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    data = response.get_json()
    assert data["status"] == "healthy"
    assert data["provider"] == "claude"
    assert "timestamp" in data


def test_process_emails(app, client):
    response = client.post("/api/emails", json={})

    assert response.status_code == 200
    data = response.get_json()
    assert [r["email"]["id"] for r in data["results"]] == ["msg-1", "msg-2"]
    assert data["results"][0]["suggestions"][0]["type"] == "deadline"
    assert data["rate_limited"] is False
    assert data["errors"] == []
    assert data["stats"]["total"] == 2
    assert data["stats"]["high"] == 2
    app.config["FETCH_EMAILS"].assert_called_once_with(
        max_results=10, query="is:unread OR in:inbox"
    )


def test_process_emails_max_results(app, client):
    response = client.post("/api/emails", json={"max_results": 1})

    assert response.status_code == 200
    assert app.config["FETCH_EMAILS"].call_args.kwargs["max_results"] == 1


@pytest.mark.parametrize("value", [0, -3, "ten", True, 2.5])
def test_process_emails_rejects_bad_max_results(client, value):
    response = client.post("/api/emails", json={"max_results": value})

    assert response.status_code == 400
    assert "max_results" in response.get_json()["error"]


def test_process_emails_fetch_failure(app, client):
    app.config["FETCH_EMAILS"].side_effect = RuntimeError("token expired")

    response = client.post("/api/emails")

    assert response.status_code == 502
    assert "token expired" in response.get_json()["error"]


def test_process_emails_partial_failures(client, outcomes):
    outcomes["msg-1"] = ClassificationError("bad json")
    outcomes["msg-2"] = RateLimitExceeded()

    response = client.post("/api/emails", json={})

    assert response.status_code == 200
    data = response.get_json()
    assert data["rate_limited"] is True
    assert sorted(r["error"] for r in data["results"]) == [
        "could not classify this email",
        "rate limit reached",
    ]
    assert data["stats"]["unclassified"] == 2


def test_preferences_defaults(client):
    response = client.get("/api/preferences")

    assert response.status_code == 200
    assert "interview" in response.get_json()["high_priority_keywords"]


def test_save_preferences(client):
    response = client.post(
        "/api/preferences", json={"skills": ["Python"], "desiredRoles": ["Staff Engineer"]}
    )

    assert response.status_code == 200
    assert response.get_json()["success"] is True
    stored = client.get("/api/preferences").get_json()
    assert stored["skills"] == ["Python"]
    assert stored["desired_roles"] == ["Staff Engineer"]


@pytest.mark.parametrize("payload", [{"skills": "Python"}, ["Python"]])
def test_save_preferences_rejects_bad_payload(client, payload):
    response = client.post("/api/preferences", json=payload)

    assert response.status_code == 400
    assert "error" in response.get_json()


def test_followups(client):
    client.post("/api/emails", json={})

    overdue = client.get("/api/followups?status=overdue").get_json()
    pending = client.get("/api/followups").get_json()

    assert overdue["count"] == 1
    assert overdue["followups"][0]["email_id"] == "msg-1"
    assert overdue["followups"][0]["followup_status"] == "overdue"
    assert all(f["email_id"] != "msg-1" for f in pending["followups"])


def test_followups_rejects_unknown_filter(client):
    response = client.get("/api/followups?status=someday")

    assert response.status_code == 400


def test_suggestion_status(client):
    data = client.post("/api/emails", json={}).get_json()
    suggestion_id = data["results"][0]["suggestions"][0]["id"]

    response = client.post(
        f"/api/suggestions/{suggestion_id}/status", json={"status": "completed"}
    )

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "id": suggestion_id, "status": "completed"}
    assert client.get("/api/followups?status=overdue").get_json()["count"] == 0


def test_suggestion_status_errors(client):
    bad = client.post("/api/suggestions/whatever/status", json={"status": "archived"})
    missing = client.post("/api/suggestions/whatever/status", json={"status": "dismissed"})

    assert bad.status_code == 400
    assert missing.status_code == 404


def test_create_app_requires_api_key(monkeypatch, config_file):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
        create_app(config_file())


def test_create_app_missing_config(tmp_path):
    with pytest.raises(FileNotFoundError):
        create_app(tmp_path / "missing.yaml")
