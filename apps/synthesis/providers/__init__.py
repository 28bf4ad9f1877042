"""
Content synthesizer registry.

Synthesizers turn a business payload into site copy.
"""

import logging

from django.conf import settings

from apps.synthesis.providers.base import BaseSynthesizer, SynthesisError
from apps.synthesis.providers.local import LocalContentSynthesizer
from apps.synthesis.providers.openai import OpenAIContentSynthesizer, has_usable_api_key

logger = logging.getLogger(__name__)

# Registry of available synthesizers
PROVIDERS: dict[str, type[BaseSynthesizer]] = {
    "local": LocalContentSynthesizer,
    "openai": OpenAIContentSynthesizer,
}


def get_provider(name: str = "local", **kwargs) -> BaseSynthesizer:
    """
    Get a synthesizer instance by name.

    Raises:
        KeyError: If the name is not registered.
    """
    if name not in PROVIDERS:
        raise KeyError(f"Unknown provider: {name}. Available: {list(PROVIDERS.keys())}")
    return PROVIDERS[name](**kwargs)


def get_active_synthesizer() -> BaseSynthesizer:
    """
    Resolve the configured synthesizer.

    CONTENT_SYNTHESIZER selects the backend. The OpenAI backend is only used
    when OPENAI_API_KEY holds a usable key; otherwise the local templates are.
    """
    name = getattr(settings, "CONTENT_SYNTHESIZER", "local")
    if name == "openai":
        api_key = getattr(settings, "OPENAI_API_KEY", "")
        if not has_usable_api_key(api_key):
            logger.info("OPENAI_API_KEY not configured, using local content synthesizer")
            return LocalContentSynthesizer()
        return get_provider(
            "openai", api_key=api_key, model=getattr(settings, "OPENAI_MODEL", None)
        )
    return get_provider(name)


def list_providers() -> list[str]:
    """List all registered synthesizer names."""
    return list(PROVIDERS.keys())


__all__ = [
    "PROVIDERS",
    "BaseSynthesizer",
    "LocalContentSynthesizer",
    "OpenAIContentSynthesizer",
    "SynthesisError",
    "get_active_synthesizer",
    "get_provider",
    "list_providers",
]
