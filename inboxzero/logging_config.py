"""
Centralized logging configuration for InboxZero.

Console output is colored for development; production adds a rotating
JSON log file. Per-email context (email id, intent) can be attached to
every record emitted inside a LogContext block.
"""

import json
import logging
import logging.handlers
import os
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

LOGS_DIR = Path(__file__).parent.parent / "logs"

_log_context: ContextVar[Dict[str, Any]] = ContextVar("inboxzero_log_context", default={})

LOG_LEVELS = {
    "development": logging.DEBUG,
    "production": logging.INFO,
    "testing": logging.WARNING,
}

# Third-party loggers that are too chatty at DEBUG
NOISY_LOGGERS = (
    "urllib3",
    "httpcore",
    "httpx",
    "werkzeug",
    "google",
    "googleapiclient",
    "anthropic",
    "openai",
)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data"):
            log_obj["data"] = record.extra_data

        return json.dumps(log_obj, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored console formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    MAX_MESSAGE_LENGTH = 500

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.now().strftime("%H:%M:%S")

        message = record.getMessage()
        if len(message) > self.MAX_MESSAGE_LENGTH:
            message = message[: self.MAX_MESSAGE_LENGTH] + "..."

        context = getattr(record, "extra_data", None)
        if context:
            pairs = " ".join(f"{k}={v}" for k, v in context.items())
            message = f"{message} [{pairs}]"

        return f"{color}[{timestamp}] {record.levelname:8}{self.RESET} {record.name}: {message}"


def setup_logging(
    level: Optional[str] = None,
    json_logs: bool = False,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Use JSON formatting on the console
        log_file: Optional log file path (always enabled in production)

    Returns:
        The configured root logger
    """
    env = os.environ.get("FLASK_ENV", "development")
    if level:
        log_level = getattr(logging, level.upper(), logging.INFO)
    else:
        log_level = LOG_LEVELS.get(env, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(JSONFormatter() if json_logs else ConsoleFormatter())
    console_handler.addFilter(context_filter)
    root_logger.addHandler(console_handler)

    if log_file or env == "production":
        if log_file:
            file_path = Path(log_file)
        else:
            LOGS_DIR.mkdir(exist_ok=True)
            file_path = LOGS_DIR / "inboxzero.log"
        file_handler = logging.handlers.RotatingFileHandler(
            file_path,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(JSONFormatter())
        file_handler.addFilter(context_filter)
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific module (typically ``__name__``)."""
    return logging.getLogger(name)


class LogContextFilter(logging.Filter):
    """Copy the active LogContext fields onto each record as ``extra_data``."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _log_context.get()
        if context and not hasattr(record, "extra_data"):
            record.extra_data = dict(context)
        return True


context_filter = LogContextFilter()


class LogContext:
    """
    Context manager that attaches extra fields to every log record.

    The fields live in a ContextVar, so concurrent requests each see their
    own context and nested blocks restore the outer fields on exit.

    Usage:
        with LogContext(logger, email_id=email.id):
            logger.info("classified")
    """

    def __init__(self, logger: logging.Logger, **kwargs):
        self.logger = logger
        self.extra_data = kwargs
        self._token = None

    def __enter__(self):
        if context_filter not in self.logger.filters:
            self.logger.addFilter(context_filter)
        merged = {**_log_context.get(), **self.extra_data}
        self._token = _log_context.set(merged)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _log_context.reset(self._token)
        self._token = None
