"""
Grok Classifier Provider - x.ai Grok implementation

x.ai exposes an OpenAI-compatible chat completions API, so this provider
drives it through the openai SDK with a custom base URL.
"""

import logging
import os
from typing import Any, Dict, Optional

import openai

from inboxzero.resilience import RateLimitExceeded

from .base import ClassifierProvider

logger = logging.getLogger(__name__)

XAI_BASE_URL = "https://api.x.ai/v1"
DEFAULT_MODEL = "grok-2-1212"

SYSTEM_PROMPT = (
    "You are a helpful assistant that analyzes emails and extracts structured "
    "information. Always return valid JSON only."
)


class GrokProvider(ClassifierProvider):
    """Classifier backed by x.ai's Grok models."""

    retryable_exceptions = (
        openai.APIConnectionError,
        openai.APITimeoutError,
        openai.InternalServerError,
    )

    def __init__(self, config: Optional[Dict[str, Any]] = None, client=None):
        super().__init__(config)
        ai_config = (config or {}).get("ai") or {}
        self._model = ai_config.get("model") or DEFAULT_MODEL

        if client is None:
            api_key = os.environ.get("GROK_API_KEY") or os.environ.get("XAI_API_KEY")
            if not api_key:
                raise ValueError(
                    "GROK_API_KEY (or XAI_API_KEY) not found. "
                    "Set it in .env or environment variables."
                )
            client = openai.OpenAI(api_key=api_key, base_url=XAI_BASE_URL)
        self._client = client

    @property
    def provider_name(self) -> str:
        return "grok"

    @property
    def model_name(self) -> str:
        return self._model

    def _generate(self, prompt: str, max_tokens: int = 1000) -> str:
        """Generate a response using Grok."""
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0,
                max_tokens=max_tokens,
            )
        except openai.RateLimitError as e:
            logger.warning(f"Grok rate limit reached: {e}")
            raise RateLimitExceeded() from e
        except openai.APIError as e:
            logger.error(f"Grok generation error: {e}")
            raise
        return (response.choices[0].message.content or "").strip()
