"""
Base Classifier Provider - Abstract base class for LLM email classifiers

This module defines the interface for classifier backends (Claude, Grok).
Providers only implement the raw model call; prompt construction, JSON
extraction and normalization into an Analysis are shared here so that
every backend yields identical shapes.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple, Type

from inboxzero.models import Analysis, Email, UserPreferences

from .prompts import build_classify_email_prompt

logger = logging.getLogger(__name__)

DEFAULT_MAX_BODY_CHARS = 2000
CLASSIFY_MAX_TOKENS = 2048


class ClassificationError(Exception):
    """Raised when an email cannot be classified (bad response, API failure)."""


class ClassifierProvider(ABC):
    """
    Abstract base class for classifier providers.

    Subclasses wrap one LLM SDK. They must translate the SDK's "too many
    requests" error into RateLimitExceeded and let transient errors listed
    in ``retryable_exceptions`` propagate unchanged so the caller can retry.
    """

    # Transient SDK errors worth retrying; overridden per provider
    retryable_exceptions: Tuple[Type[Exception], ...] = (ConnectionError, TimeoutError)

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        ai_config = (config or {}).get("ai") or {}
        self.max_body_chars = int(ai_config.get("max_body_chars") or DEFAULT_MAX_BODY_CHARS)

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of this provider.

        Returns:
            str: Provider name (e.g., 'claude', 'grok')
        """
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """
        Return the model being used.

        Returns:
            str: Model identifier (e.g., 'claude-sonnet-4-20250514')
        """
        pass

    @abstractmethod
    def _generate(self, prompt: str, max_tokens: int = 1000) -> str:
        """
        Send a single-turn prompt and return the model's text response.

        Raises:
            RateLimitExceeded: When the API reports HTTP 429
        """
        pass

    def classify(self, email: Email, preferences: UserPreferences) -> Analysis:
        """
        Classify one email.

        Args:
            email: The email to classify
            preferences: User profile passed to the model as context

        Returns:
            Analysis: Canonical analysis (aliases resolved, fields filled)

        Raises:
            ClassificationError: If the response holds no usable JSON object
            RateLimitExceeded: When the provider's quota is exhausted
        """
        prompt = build_classify_email_prompt(email, preferences, self.max_body_chars)
        text = self._generate(prompt, max_tokens=CLASSIFY_MAX_TOKENS)

        try:
            data = self._parse_json_response(text)
        except ValueError as e:
            logger.error(f"{self.provider_name} returned unparseable output for {email.id}: {e}")
            raise ClassificationError(str(e)) from e

        if not isinstance(data, dict):
            raise ClassificationError(
                f"Expected a JSON object from {self.provider_name}, got {type(data).__name__}"
            )

        return Analysis.from_dict(data, email)

    def _parse_json_response(self, text: str) -> Any:
        """
        Extract JSON from an AI response that might include markdown fences or preamble.

        Args:
            text: Raw AI response text

        Returns:
            Parsed JSON value

        Raises:
            ValueError: If no valid JSON can be extracted

        Example:
            >>> provider._parse_json_response('```json\\n{"key": "value"}\\n```')
            {"key": "value"}
            >>> provider._parse_json_response('Here is the result: {"key": "value"}')
            {"key": "value"}
        """
        if not text:
            raise ValueError("Empty response text")

        text = text.strip()

        # Try 1: Direct parse (ideal case)
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            pass

        # Try 2: Extract from markdown json code fence
        match = re.search(r"```json\s*([\s\S]*?)\s*```", text)
        if match:
            try:
                return json.loads(match.group(1))
            except json.JSONDecodeError:
                pass

        # Try 3: Extract from generic code fence
        match = re.search(r"```\s*([\s\S]*?)\s*```", text)
        if match:
            try:
                return json.loads(match.group(1))
            except json.JSONDecodeError:
                pass

        # Try 4: Outermost braces
        match = re.search(r"\{[\s\S]*\}", text)
        if match:
            try:
                return json.loads(match.group())
            except json.JSONDecodeError:
                pass

        raise ValueError(
            f"Could not extract valid JSON from response. "
            f"Raw text (first 500 chars): {text[:500]}"
        )
