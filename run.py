#!/usr/bin/env python3
"""
InboxZero - Main Entry Point

Uses the application factory pattern via inboxzero.create_app().

Usage:
    python run.py

Environment Variables:
    FLASK_ENV: development (default), production, testing
    LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (optional)
    INBOXZERO_CONFIG: path to config.yaml (optional)
"""

import os
import sys
from pathlib import Path

APP_DIR = Path(__file__).parent
sys.path.insert(0, str(APP_DIR))

from dotenv import load_dotenv

load_dotenv(APP_DIR / ".env")

from inboxzero.logging_config import get_logger, setup_logging

flask_env = os.environ.get("FLASK_ENV", "development")
log_level = os.environ.get("LOG_LEVEL")
json_logs = flask_env == "production"

setup_logging(level=log_level, json_logs=json_logs)
logger = get_logger(__name__)


def main():
    """Main entry point for InboxZero."""
    from inboxzero import create_app

    try:
        app = create_app()
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Startup failed: {e}")
        sys.exit(1)

    config = app.config["INBOXZERO_CONFIG"]

    logger.info("=" * 60)
    logger.info("  InboxZero - Job Search Follow-Up Assistant")
    logger.info("=" * 60)
    logger.info(f"  Environment: {flask_env}")
    logger.info(f"  User: {config.user_name or config.user_email}")
    logger.info(f"  Classifier: {config.ai_provider}")
    logger.info(f"  Configuration: {config.config_path}")
    logger.info(f"  Database: {config.database_path}")
    logger.info(f"  Google credentials: {APP_DIR / 'credentials.json'}")
    logger.info("")
    logger.info("  Process inbox: POST http://localhost:5000/api/emails")
    logger.info("  Health Check: http://localhost:5000/api/health")
    logger.info("=" * 60)

    debug_mode = flask_env != "production"
    app.run(debug=debug_mode, host="0.0.0.0", port=5000)


if __name__ == "__main__":
    main()
