"""Groq provider implementation.

Groq serves an OpenAI-compatible chat completions endpoint, so this
provider reuses ``OpenAIProvider`` with a different URL and vendor tag.
"""

from __future__ import annotations

from typing import ClassVar

from model_relay.providers.openai import OpenAIProvider
from model_relay.types import Vendor

GROQ_API_URL = "https://api.groq.com/openai/v1/chat/completions"


class GroqProvider(OpenAIProvider):
    """Async provider for the Groq chat completions API."""

    vendor: ClassVar[Vendor] = Vendor.GROQ
    api_url: ClassVar[str] = GROQ_API_URL
