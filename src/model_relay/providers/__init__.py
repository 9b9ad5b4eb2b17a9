"""Provider abstraction layer for multi-vendor API access.

Re-exports the public interface so callers can write::

    from model_relay.providers import Provider, ProviderRegistry
"""

from model_relay.providers.base import Provider
from model_relay.providers.gemini import GeminiProvider
from model_relay.providers.groq import GroqProvider
from model_relay.providers.ollama import OllamaProvider
from model_relay.providers.openai import OpenAIProvider
from model_relay.providers.registry import ProviderRegistry

__all__ = [
    "Provider",
    "GeminiProvider",
    "GroqProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "ProviderRegistry",
]
