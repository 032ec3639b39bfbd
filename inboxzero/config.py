"""
Configuration Loader for InboxZero
Loads and validates application configuration from config.yaml
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

SUPPORTED_PROVIDERS = ("claude", "grok")

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"


class Config:
    """Configuration manager for InboxZero."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration from YAML file.

        Args:
            config_path: Path to config.yaml (defaults to $INBOXZERO_CONFIG,
                then ./config.yaml at the project root)
        """
        if config_path is None:
            env_path = os.environ.get("INBOXZERO_CONFIG")
            config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

        self.config_path = Path(config_path)
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {self.config_path}\n"
                f"Copy config.example.yaml to config.yaml and fill in your information."
            )

        with open(self.config_path, "r") as f:
            config = yaml.safe_load(f) or {}

        self._validate_config(config)

        return config

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """Validate that required configuration fields are present and well formed."""
        if "user" not in config:
            raise ValueError("Missing required config section: user")

        if not (config["user"] or {}).get("email"):
            raise ValueError("Missing required user field: email")

        provider = (config.get("ai") or {}).get("provider", "claude")
        if str(provider).lower() not in SUPPORTED_PROVIDERS:
            raise ValueError(
                f"Unknown AI provider: '{provider}'. "
                f"Available providers: {', '.join(SUPPORTED_PROVIDERS)}"
            )

        hours = (config.get("calendar") or {}).get("working_hours") or {}
        for key in ("start", "end"):
            value = hours.get(key)
            if value is not None and not HHMM_PATTERN.match(str(value)):
                raise ValueError(f"calendar.working_hours.{key} must be HH:MM, got '{value}'")
        if hours.get("start") and hours.get("end") and str(hours["start"]) >= str(hours["end"]):
            raise ValueError("calendar.working_hours.start must be before end")

    # ===== USER PROFILE =====

    @property
    def user_email(self) -> str:
        """Mailbox owner's address; also the user id for stored data."""
        return self._config["user"]["email"]

    @property
    def user_name(self) -> str:
        return self._config["user"].get("name", "")

    # ===== AI CONFIGURATION =====

    @property
    def ai_provider(self) -> str:
        return str(self.get("ai.provider", "claude")).lower()

    @property
    def ai_model(self) -> Optional[str]:
        """Model override; providers fall back to their own default."""
        return self.get("ai.model")

    @property
    def max_body_chars(self) -> int:
        """Characters of email body sent to the classifier."""
        return int(self.get("ai.max_body_chars", 2000))

    # ===== CALENDAR CONFIGURATION =====

    @property
    def working_hours(self) -> Tuple[str, str]:
        """Working-hours window as (start, end) HH:MM strings."""
        return (
            str(self.get("calendar.working_hours.start", "09:00")),
            str(self.get("calendar.working_hours.end", "17:00")),
        )

    @property
    def min_slot_minutes(self) -> int:
        return int(self.get("calendar.min_slot_minutes", 30))

    @property
    def max_calendar_dates(self) -> int:
        """Requested dates looked up per email (bounds Calendar API calls)."""
        return int(self.get("calendar.max_dates", 3))

    @property
    def calendar_request_delay(self) -> float:
        return float(self.get("calendar.request_delay", 0.2))

    @property
    def timezone(self) -> str:
        return str(self.get("calendar.timezone", "UTC"))

    # ===== PIPELINE CONFIGURATION =====

    @property
    def max_emails(self) -> int:
        """Emails fetched and classified per batch."""
        return int(self.get("pipeline.max_emails", 20))

    @property
    def classify_delay(self) -> float:
        """Seconds to wait between classifier calls."""
        return float(self.get("pipeline.classify_delay", 0.5))

    @property
    def gmail_query(self) -> str:
        return str(self.get("pipeline.gmail_query", "is:unread OR in:inbox"))

    # ===== DATABASE =====

    @property
    def database_path(self) -> Path:
        path = Path(self.get("database.path", "inboxzero.db"))
        if not path.is_absolute():
            path = self.config_path.parent / path
        return path

    # ===== UTILITY METHODS =====

    def reload(self) -> None:
        """Reload configuration from file."""
        self._config = self._load_config()

    def to_dict(self) -> Dict[str, Any]:
        """Return a copy of the raw configuration dictionary."""
        return dict(self._config)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation key.

        Example: config.get('calendar.working_hours.start')
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value


# Global config instance
_config: Optional[Config] = None


def get_config(config_path: Optional[Path] = None) -> Config:
    """
    Get global configuration instance.
    Creates instance on first call (or when an explicit path is given),
    then returns cached instance.
    """
    global _config
    if _config is None or config_path is not None:
        _config = Config(config_path)
    return _config


def reload_config() -> None:
    """Reload configuration from file."""
    global _config
    if _config is not None:
        _config.reload()
    else:
        _config = Config()
