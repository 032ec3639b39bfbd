"""
API Routes - Flask blueprint for InboxZero

Endpoints:
- POST /api/emails: fetch the inbox, process it, return ranked results
- GET/POST /api/preferences: read or replace the job-search profile
- GET /api/followups: pending or overdue follow-ups
- POST /api/suggestions/<id>/status: mark a suggestion done or dismissed
- GET /api/health: liveness check

Collaborators (mail fetcher, classifier, availability resolver) are read
from ``app.config`` and built on first use when not injected.
"""

import functools
import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request

from inboxzero.ai import classify_email, get_provider
from inboxzero.database import SUGGESTION_STATUSES
from inboxzero.models import UserPreferences
from inboxzero.pipeline import executor_from_config, process_batch
from inboxzero.scoring import calculate_batch_stats

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__, url_prefix="/api")

FOLLOWUP_FILTERS = ("pending", "overdue")


def _config():
    return current_app.config["INBOXZERO_CONFIG"]


def _user_id() -> str:
    return _config().user_email


def _google_client():
    client = current_app.config.get("GOOGLE_CLIENT")
    if client is None:
        from inboxzero.gmail import GoogleClient

        client = GoogleClient()
        current_app.config["GOOGLE_CLIENT"] = client
    return client


def _fetch_emails(max_results: int):
    fetch = current_app.config.get("FETCH_EMAILS")
    if fetch is None:
        from inboxzero.gmail import fetch_emails

        fetch = functools.partial(fetch_emails, _google_client())
        current_app.config["FETCH_EMAILS"] = fetch
    return fetch(max_results=max_results, query=_config().gmail_query)


def _classifier():
    classifier = current_app.config.get("CLASSIFIER")
    if classifier is None:
        provider = get_provider(_config().to_dict())
        classifier = functools.partial(classify_email, provider=provider)
        current_app.config["CLASSIFIER"] = classifier
    return classifier


def _resolver():
    resolver = current_app.config.get("RESOLVER")
    if resolver is None:
        from inboxzero.availability import AvailabilityResolver, CalendarClient

        resolver = AvailabilityResolver.from_config(CalendarClient(_google_client()), _config())
        current_app.config["RESOLVER"] = resolver
    return resolver


@api_bp.route("/emails", methods=["POST"])
def process_emails():
    """Fetch, classify, score and plan the inbox."""
    config = _config()
    payload = request.get_json(silent=True) or {}
    max_results = payload.get("max_results", config.max_emails)
    if isinstance(max_results, bool) or not isinstance(max_results, int) or max_results < 1:
        return jsonify({"error": "'max_results' must be a positive integer"}), 400

    try:
        emails = _fetch_emails(max_results)
    except Exception as e:
        logger.error(f"Failed to fetch emails: {e}", exc_info=True)
        return jsonify({"error": f"Failed to fetch emails: {e}"}), 502

    try:
        user_id = _user_id()
        preferences = current_app.config["PREFERENCE_STORE"].load(user_id)
        batch = process_batch(
            emails,
            preferences,
            _classifier(),
            resolver=_resolver(),
            store=current_app.config["SUGGESTION_STORE"],
            user_id=user_id,
            executor=executor_from_config(config),
        )
    except Exception as e:
        logger.error(f"Failed to process emails: {e}", exc_info=True)
        return jsonify({"error": "Internal server error"}), 500

    response = batch.to_dict()
    response["stats"] = calculate_batch_stats(batch.results)
    return jsonify(response)


@api_bp.route("/preferences", methods=["GET"])
def get_preferences():
    preferences = current_app.config["PREFERENCE_STORE"].load(_user_id())
    return jsonify(preferences.to_dict())


@api_bp.route("/preferences", methods=["POST"])
def save_preferences():
    """Replace the user's preferences. Missing keys revert to defaults."""
    payload = request.get_json(silent=True)
    try:
        preferences = UserPreferences.from_dict(payload)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    current_app.config["PREFERENCE_STORE"].save(_user_id(), preferences)
    return jsonify({"success": True, "preferences": preferences.to_dict()})


@api_bp.route("/followups", methods=["GET"])
def get_followups():
    status = request.args.get("status", "pending")
    if status not in FOLLOWUP_FILTERS:
        return jsonify({"error": f"Invalid status filter: '{status}'"}), 400

    store = current_app.config["SUGGESTION_STORE"]
    if status == "overdue":
        followups = store.get_overdue_followups(_user_id())
    else:
        followups = store.get_pending_followups(_user_id())
    return jsonify({"followups": followups, "count": len(followups)})


@api_bp.route("/suggestions/<suggestion_id>/status", methods=["POST"])
def set_suggestion_status(suggestion_id):
    payload = request.get_json(silent=True) or {}
    status = payload.get("status")
    if status not in SUGGESTION_STATUSES:
        return (
            jsonify({"error": f"'status' must be one of: {', '.join(SUGGESTION_STATUSES)}"}),
            400,
        )

    store = current_app.config["SUGGESTION_STORE"]
    if not store.set_suggestion_status(_user_id(), suggestion_id, status):
        return jsonify({"error": "Suggestion not found"}), 404
    return jsonify({"success": True, "id": suggestion_id, "status": status})


@api_bp.route("/health", methods=["GET"])
def health():
    config = _config()
    return jsonify(
        {
            "status": "healthy",
            "provider": config.ai_provider,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )
