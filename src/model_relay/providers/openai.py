"""OpenAI provider implementation.

Async HTTP provider for the OpenAI chat completions API.  The same request
and response shape is spoken by several other vendors, so subclasses only
need to override ``vendor`` and ``api_url`` (see ``groq.py``).

Typical usage::

    import asyncio
    from model_relay.providers.openai import OpenAIProvider

    async def main():
        async with OpenAIProvider(api_key="sk-...") as provider:
            result = await provider.complete("gpt-4.1-mini", prompt="Hello")

    asyncio.run(main())
"""

from __future__ import annotations

import time
from typing import Any, ClassVar

import httpx

from model_relay.models import GenerationResult
from model_relay.providers.base import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TIMEOUT,
    Provider,
    extract_error,
    sum_token_counts,
)
from model_relay.types import Vendor

OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_TEMPERATURE = 0.7


class OpenAIProvider(Provider):
    """Async provider for OpenAI-compatible chat completions APIs.

    Uses ``httpx.AsyncClient`` for connection pooling and async I/O.
    Designed to be used as an async context manager.

    Args:
        api_key: Vendor API key, sent as a bearer token.
        timeout: Request timeout in seconds.  Defaults to 60s.
    """

    vendor: ClassVar[Vendor] = Vendor.OPENAI
    api_url: ClassVar[str] = OPENAI_API_URL

    def __init__(self, api_key: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        if not api_key or not api_key.strip():
            raise ValueError(
                f"{self.vendor.value} API key is required. Set "
                f"{self.vendor.value.upper()}_API_KEY env var or add it to "
                "~/.model-relay/config.toml"
            )
        self._api_key = api_key
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> OpenAIProvider:
        """Open the underlying HTTP connection pool."""
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout),
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        """Close the underlying HTTP connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def complete(
        self,
        model_id: str,
        *,
        messages: list[dict[str, Any]] | None = None,
        prompt: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> GenerationResult:
        """Send a chat completion request to a single model.

        Args:
            model_id: Vendor model identifier.
            messages: Chat messages in OpenAI-compatible format.
            prompt: Single user message string (convenience shorthand).
            max_tokens: Output budget, clamped to the provider ceiling.

        Returns:
            GenerationResult with the first choice's message content.

        Raises:
            ValueError: If both or neither of ``messages``/``prompt`` are given.
            RuntimeError: If the client is used outside a context manager.
            ProviderError: On transport failure, non-2xx status, or a response
                without usable content.
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        resolved = self._resolve_messages(messages, prompt)
        start = time.monotonic()

        payload = {
            "model": model_id,
            "messages": resolved,
            "max_tokens": self.clamp_tokens(max_tokens),
            "temperature": DEFAULT_TEMPERATURE,
        }

        try:
            resp = await self._client.post(self.api_url, json=payload)
        except httpx.TimeoutException:
            raise self._fail(model_id, "transport", f"Request timed out after {self._timeout}s") from None
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise self._fail(model_id, "transport", str(exc) or type(exc).__name__) from exc

        elapsed_ms = int((time.monotonic() - start) * 1000)

        if resp.status_code != 200:
            raise self._fail(model_id, "status", f"HTTP {resp.status_code}: {extract_error(resp)}")

        try:
            data = resp.json()
        except ValueError:
            raise self._fail(model_id, "shape", "Response body is not JSON") from None

        content = self._require_text(model_id, _extract_content(data))

        return GenerationResult(
            content=content,
            vendor=self.vendor,
            model_id=model_id,
            latency_ms=elapsed_ms,
            token_count=_extract_token_count(data),
        )


def _extract_content(data: Any) -> str | None:
    """Extract the assistant message content from an API response.

    Args:
        data: Parsed JSON response body.

    Returns:
        The text content of the first choice, or None if the shape is wrong.
    """
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) else None


def _extract_token_count(data: Any) -> int | None:
    """Extract total token usage from an API response.

    Args:
        data: Parsed JSON response body.

    Returns:
        Total token count if available, None otherwise.
    """
    usage = data.get("usage") if isinstance(data, dict) else None
    if not isinstance(usage, dict):
        return None
    return sum_token_counts(usage.get("total_tokens"))
