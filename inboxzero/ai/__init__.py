"""
AI Package - LLM email classification for InboxZero

Supports two classifier backends: Claude (Anthropic) and Grok (x.ai).

Usage:
    from inboxzero.ai import classify_email, get_provider

    provider = get_provider(config.to_dict())
    analysis = classify_email(email, preferences, provider)
"""

from .analyzer import classify_email
from .base import ClassificationError, ClassifierProvider
from .factory import PROVIDERS, get_provider

__all__ = [
    "ClassificationError",
    "ClassifierProvider",
    "PROVIDERS",
    "get_provider",
    "classify_email",
]
