"""Abstract base class for model API providers.

Defines the ``Provider`` interface that all vendor-specific implementations
must follow.  Providers handle auth, endpoints, request formatting, and
response normalization.  All providers return ``GenerationResult`` objects
on success and raise ``ProviderError`` on failure, so the router never sees
a vendor-specific response shape.

Subclasses must implement ``complete()``, ``__aenter__()``, and
``__aexit__()``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from model_relay.errors import ProviderError
from model_relay.models import GenerationResult
from model_relay.types import Vendor

MAX_OUTPUT_TOKENS = 2000
DEFAULT_MAX_TOKENS = 200
DEFAULT_TIMEOUT = 60.0  # seconds


class Provider(ABC):
    """Base class for all model API providers.

    Designed as an async context manager for connection lifecycle.

    Attributes:
        vendor: Which vendor this provider talks to.
        max_output_tokens: Ceiling applied to every requested token budget.
    """

    vendor: ClassVar[Vendor]
    max_output_tokens: ClassVar[int] = MAX_OUTPUT_TOKENS

    @abstractmethod
    async def complete(
        self,
        model_id: str,
        *,
        messages: list[dict[str, Any]] | None = None,
        prompt: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> GenerationResult:
        """Send a completion request.

        Accepts either ``messages`` (list of chat messages) or ``prompt``
        (single user message string).  Exactly one must be provided.

        Args:
            model_id: Provider-specific model identifier.
            messages: Chat messages in OpenAI-compatible format.
            prompt: Single user message string (convenience shorthand).
            max_tokens: Requested output budget; clamped to
                ``max_output_tokens``.

        Returns:
            GenerationResult with non-blank content.

        Raises:
            ValueError: If both ``messages`` and ``prompt`` are provided,
                or if neither is provided.
            ProviderError: If the call fails at any stage.
        """
        ...

    def clamp_tokens(self, max_tokens: int) -> int:
        """Clamp a requested budget into ``[1, max_output_tokens]``."""
        return max(1, min(int(max_tokens), self.max_output_tokens))

    def _fail(self, model_id: str, stage: str, detail: str) -> ProviderError:
        return ProviderError(self.vendor, model_id, stage, detail)

    def _require_text(self, model_id: str, text: Any) -> str:
        """Reject missing or blank generated text.

        Raises:
            ProviderError: With stage ``shape`` for non-strings and ``empty``
                for blank strings.
        """
        if not isinstance(text, str):
            raise self._fail(model_id, "shape", f"Invalid response structure from {self.vendor.value}")
        if not text.strip():
            raise self._fail(model_id, "empty", f"Empty response from {self.vendor.value}")
        return text

    @staticmethod
    def _resolve_messages(
        messages: list[dict[str, Any]] | None,
        prompt: str | None,
    ) -> list[dict[str, Any]]:
        """Normalize ``messages``/``prompt`` into a message list.

        Exactly one of the two parameters must be provided.  If ``prompt``
        is given it is wrapped in ``[{"role": "user", "content": prompt}]``.

        Args:
            messages: Chat messages in OpenAI-compatible format, or ``None``.
            prompt: Single user message string, or ``None``.

        Returns:
            A list of message dicts ready to send to the API.

        Raises:
            ValueError: If both or neither argument is provided.
        """
        if messages is not None and prompt is not None:
            raise ValueError("Provide either 'messages' or 'prompt', not both.")
        if messages is None and prompt is None:
            raise ValueError("Provide either 'messages' or 'prompt'.")
        if messages is not None:
            return messages
        return [{"role": "user", "content": prompt}]

    @abstractmethod
    async def __aenter__(self) -> Provider:
        """Enter the async context manager (open connections)."""
        ...

    @abstractmethod
    async def __aexit__(self, *exc: Any) -> None:
        """Exit the async context manager (close connections)."""
        ...


def flatten_messages(messages: list[dict[str, Any]]) -> str:
    """Join message contents into one prompt, newline separated."""
    return "\n".join(str(m.get("content", "")) for m in messages)


def extract_error(resp: Any) -> str:
    """Extract error detail from a non-2xx API response.

    Understands both ``{"error": {"message": ...}}`` and
    ``{"error": "..."}`` bodies.

    Args:
        resp: The httpx response object.

    Returns:
        Human-readable error description.
    """
    try:
        body = resp.json()
        error = body.get("error", {})
        if isinstance(error, dict):
            return str(error.get("message", str(body)))
        return str(error)
    except Exception:
        return str(resp.text[:500])


def sum_token_counts(*counts: Any) -> int | None:
    """Add up usage counters reported by a provider.

    Returns:
        The total, or None if any counter is missing or not a number.
    """
    total = 0
    for count in counts:
        if isinstance(count, bool) or not isinstance(count, (int, float)):
            return None
        total += int(count)
    return total
