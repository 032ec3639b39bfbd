"""
Classifier Provider Factory - Creates the configured classifier provider

Reads the provider setting from the config and instantiates the matching
provider class.
"""

import importlib
import logging
from typing import Any, Dict, Optional

from .base import ClassifierProvider

logger = logging.getLogger(__name__)

# Registry of available providers
PROVIDERS = {
    "claude": "inboxzero.ai.claude.ClaudeProvider",
    "grok": "inboxzero.ai.grok.GrokProvider",
}

# Default provider if none specified
DEFAULT_PROVIDER = "claude"


def get_provider(config: Optional[Dict[str, Any]] = None) -> ClassifierProvider:
    """
    Get the configured classifier provider instance.

    Args:
        config: Optional configuration dict. If not provided, reads from
                inboxzero.config.get_config()

    Returns:
        ClassifierProvider: An instance of the configured provider

    Raises:
        ValueError: If the provider is unknown or its API key is missing

    Example:
        >>> get_provider({'ai': {'provider': 'grok'}}).provider_name
        'grok'
    """
    if config is None:
        from inboxzero.config import get_config

        config = get_config().to_dict()

    ai_config = config.get("ai") or {}
    provider_name = (ai_config.get("provider") or DEFAULT_PROVIDER).lower()

    if provider_name not in PROVIDERS:
        available = ", ".join(PROVIDERS.keys())
        raise ValueError(
            f"Unknown AI provider: '{provider_name}'. " f"Available providers: {available}"
        )

    module_path, class_name = PROVIDERS[provider_name].rsplit(".", 1)
    module = importlib.import_module(module_path)
    provider_class = getattr(module, class_name)

    logger.info(f"Using {provider_name} classifier")
    return provider_class(config)
