"""Core routing types for provider fallback.

Defines the vendor enum, the fallback attempt record, and the per-attempt
failure record. These types are imported by config, models, provider
implementations, the registry, and the router.

Separated from ``models.py`` so that provider and config modules can share
them without pulling in the review document types.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class Vendor(StrEnum):
    """Supported inference providers.

    Values are lowercase strings matching the provider keys used in
    ``config.py``'s ``providers`` dict and ``_PROVIDER_ENV_MAP``.
    Inherits from ``str`` so values serialize naturally to JSON.
    """

    GEMINI = "gemini"
    GROQ = "groq"
    OPENAI = "openai"
    OLLAMA = "ollama"


@dataclass(frozen=True)
class ProviderAttempt:
    """One entry in the fallback order.

    Attributes:
        provider: Which vendor to call.
        model: Vendor-native model identifier.
    """

    provider: Vendor
    model: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {"provider": self.provider.value, "model": self.model}


@dataclass(frozen=True)
class FailureRecord:
    """Why a single fallback attempt did not produce a result.

    Accumulated by the router during one traversal of the fallback order
    and attached to ``AllProvidersFailedError`` when nothing succeeds.

    Attributes:
        provider: Vendor that was attempted.
        model: Model identifier that was attempted.
        reason: Human-readable failure description.
    """

    provider: Vendor
    model: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {"provider": self.provider.value, "model": self.model, "reason": self.reason}


# Fastest and cheapest first; the local model is the last resort.
DEFAULT_FALLBACK_ORDER: tuple[ProviderAttempt, ...] = (
    ProviderAttempt(Vendor.GEMINI, "gemini-2.0-flash"),
    ProviderAttempt(Vendor.GEMINI, "gemini-2.0-pro"),
    ProviderAttempt(Vendor.GROQ, "llama-3.1-70b-versatile"),
    ProviderAttempt(Vendor.OPENAI, "gpt-4.1-mini"),
    ProviderAttempt(Vendor.OLLAMA, "llama3"),
)
