"""
InboxZero - Application Factory

Job-search follow-up assistant: reads the inbox, classifies each email
with an LLM, ranks it against the user's profile and proposes the next
action, calendar slots and ready-to-send replies.
"""

import logging
import os

from flask import Flask
from flask_cors import CORS

from inboxzero.config import get_config
from inboxzero.database import PreferenceStore, SuggestionStore, init_db

logger = logging.getLogger(__name__)

__version__ = "0.3.0"

# Environment variables accepted for each classifier provider
PROVIDER_API_KEYS = {
    "claude": ("ANTHROPIC_API_KEY",),
    "grok": ("GROK_API_KEY", "XAI_API_KEY"),
}


def create_app(config_path=None):
    """
    Application factory for creating Flask app instances.

    Args:
        config_path: Optional path to config.yaml file

    Returns:
        Configured Flask application instance

    Raises:
        FileNotFoundError: If the config file is missing
        ValueError: If the config is invalid or the provider's API key is not set
    """
    from dotenv import load_dotenv

    load_dotenv()

    try:
        config = get_config(config_path)
    except FileNotFoundError as e:
        logger.error(f"Configuration Error: {e}")
        raise

    key_names = PROVIDER_API_KEYS[config.ai_provider]
    if not any(os.getenv(name) for name in key_names):
        logger.error(f"No API key set for the {config.ai_provider} provider")
        raise ValueError(
            f"No API key found for the '{config.ai_provider}' provider. "
            f"Set {' or '.join(key_names)} in your .env file."
        )

    app = Flask(__name__)
    CORS(app)

    init_db(config.database_path)

    app.config["INBOXZERO_CONFIG"] = config
    app.config["PREFERENCE_STORE"] = PreferenceStore(config.database_path)
    app.config["SUGGESTION_STORE"] = SuggestionStore(config.database_path)

    # Collaborators are built on first request unless injected
    app.config.setdefault("GOOGLE_CLIENT", None)
    app.config.setdefault("FETCH_EMAILS", None)
    app.config.setdefault("CLASSIFIER", None)
    app.config.setdefault("RESOLVER", None)

    from inboxzero.routes import api_bp

    app.register_blueprint(api_bp)
    logger.info("Registered API routes")

    return app
