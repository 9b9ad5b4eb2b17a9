"""Google Gemini provider implementation.

Async HTTP provider for the Gemini ``generateContent`` REST endpoint.
Handles the Gemini-specific request format: system messages go into a
separate ``systemInstruction`` field, assistant turns use the ``model``
role, and text arrives as a list of parts on each candidate.

Typical usage::

    import asyncio
    from model_relay.providers.gemini import GeminiProvider

    async def main():
        async with GeminiProvider(api_key="AIza...") as provider:
            result = await provider.complete("gemini-2.0-flash", prompt="Hello")

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

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"


class GeminiProvider(Provider):
    """Async provider for the Google Gemini API.

    Args:
        api_key: Gemini API key, sent in the ``x-goog-api-key`` header.
        timeout: Request timeout in seconds.  Defaults to 60s.
    """

    vendor: ClassVar[Vendor] = Vendor.GEMINI

    def __init__(self, api_key: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        if not api_key or not api_key.strip():
            raise ValueError(
                "Gemini API key is required. Set GEMINI_API_KEY env var "
                "or add gemini_api_key to ~/.model-relay/config.toml"
            )
        self._api_key = api_key
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> GeminiProvider:
        """Open the underlying HTTP connection pool."""
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout),
            headers={
                "x-goog-api-key": self._api_key,
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
        """Send a generateContent request to a single Gemini model.

        Args:
            model_id: Gemini model identifier (e.g. "gemini-2.0-flash").
            messages: Chat messages in OpenAI-compatible format.
            prompt: Single user message string (convenience shorthand).
            max_tokens: Output budget, clamped to the provider ceiling.

        Returns:
            GenerationResult with the first candidate's text.

        Raises:
            ValueError: If both or neither of ``messages``/``prompt`` are given.
            RuntimeError: If the client is used outside a context manager.
            ProviderError: On transport failure, non-2xx status, or a response
                without usable text.
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        resolved = self._resolve_messages(messages, prompt)
        system_text, contents = _to_gemini_contents(resolved)
        start = time.monotonic()

        payload: dict[str, Any] = {
            "contents": contents,
            "generationConfig": {"maxOutputTokens": self.clamp_tokens(max_tokens)},
        }
        if system_text is not None:
            payload["systemInstruction"] = {"parts": [{"text": system_text}]}

        url = f"{GEMINI_API_BASE}/{model_id}:generateContent"
        try:
            resp = await self._client.post(url, json=payload)
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


def _to_gemini_contents(
    messages: list[dict[str, Any]],
) -> tuple[str | None, list[dict[str, Any]]]:
    """Split system messages out and convert the rest to Gemini contents.

    Multiple system messages are joined with double newlines.

    Args:
        messages: Chat messages in OpenAI-compatible format.

    Returns:
        Tuple of (system_text or None, Gemini ``contents`` list).
    """
    system_parts: list[str] = []
    contents: list[dict[str, Any]] = []
    for msg in messages:
        role = msg.get("role", "user")
        text = str(msg.get("content", ""))
        if role == "system":
            system_parts.append(text)
            continue
        gemini_role = "model" if role == "assistant" else "user"
        contents.append({"role": gemini_role, "parts": [{"text": text}]})

    # Gemini rejects a request with no contents.
    if not contents and system_parts:
        return None, [{"role": "user", "parts": [{"text": "\n\n".join(system_parts)}]}]

    system_text = "\n\n".join(system_parts) if system_parts else None
    return system_text, contents


def _extract_content(data: Any) -> str | None:
    """Concatenate the text parts of the first candidate.

    Args:
        data: Parsed JSON response body.

    Returns:
        Joined text, or None if the response has no text parts.
    """
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(parts, list):
        return None
    texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
    if not texts:
        return None
    return "".join(texts)


def _extract_token_count(data: Any) -> int | None:
    """Extract total token usage from ``usageMetadata``.

    Args:
        data: Parsed JSON response body.

    Returns:
        Total token count if available, None otherwise.
    """
    usage = data.get("usageMetadata") if isinstance(data, dict) else None
    if not isinstance(usage, dict):
        return None
    return sum_token_counts(usage.get("totalTokenCount"))
