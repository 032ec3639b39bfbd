"""
Claude Classifier Provider - Anthropic Claude implementation
"""

import logging
import os
from typing import Any, Dict, Optional

import anthropic

from inboxzero.resilience import RateLimitExceeded

from .base import ClassifierProvider

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"


class ClaudeProvider(ClassifierProvider):
    """Classifier backed by the Anthropic Messages API."""

    retryable_exceptions = (
        anthropic.APIConnectionError,
        anthropic.APITimeoutError,
        anthropic.InternalServerError,
    )

    def __init__(self, config: Optional[Dict[str, Any]] = None, client=None):
        """
        Initialize Claude provider.

        Args:
            config: Configuration dict with optional 'ai.model' setting
            client: Pre-built anthropic client (tests inject a mock)
        """
        super().__init__(config)
        ai_config = (config or {}).get("ai") or {}
        self._model = ai_config.get("model") or DEFAULT_MODEL

        if client is None:
            if not os.environ.get("ANTHROPIC_API_KEY"):
                raise ValueError(
                    "ANTHROPIC_API_KEY not found. " "Set it in .env or environment variables."
                )
            client = anthropic.Anthropic()
        self._client = client

    @property
    def provider_name(self) -> str:
        return "claude"

    @property
    def model_name(self) -> str:
        return self._model

    def _generate(self, prompt: str, max_tokens: int = 1000) -> str:
        """Generate a response using Claude."""
        try:
            response = self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.RateLimitError as e:
            logger.warning(f"Claude rate limit reached: {e}")
            raise RateLimitExceeded() from e
        except anthropic.APIError as e:
            logger.error(f"Claude generation error: {e}")
            raise
        return response.content[0].text.strip()
