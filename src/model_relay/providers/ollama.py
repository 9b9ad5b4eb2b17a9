"""Ollama provider implementation.

Talks to a locally reachable Ollama server through its non-streaming
``/api/generate`` endpoint.  No credential is involved; the provider is
usable whenever a host is configured.  Chat messages are flattened into a
single prompt because ``/api/generate`` takes plain text.
"""

from __future__ import annotations

import time
from typing import Any, ClassVar

import httpx

from model_relay.models import GenerationResult
from model_relay.providers.base import (
    DEFAULT_MAX_TOKENS,
    Provider,
    extract_error,
    flatten_messages,
    sum_token_counts,
)
from model_relay.types import Vendor

OLLAMA_TIMEOUT = 30.0  # seconds


class OllamaProvider(Provider):
    """Async provider for a local Ollama server.

    Args:
        host: Base URL of the server (e.g. "http://localhost:11434").
        timeout: Request timeout in seconds.  Defaults to 30s.
    """

    vendor: ClassVar[Vendor] = Vendor.OLLAMA

    def __init__(self, host: str, timeout: float = OLLAMA_TIMEOUT) -> None:
        if not host or not host.strip():
            raise ValueError("Ollama host is required. Set OLLAMA_HOST env var.")
        self._host = host.strip().rstrip("/")
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> OllamaProvider:
        """Open the underlying HTTP connection pool."""
        self._client = httpx.AsyncClient(
            base_url=self._host,
            timeout=httpx.Timeout(self._timeout),
            headers={"Content-Type": "application/json"},
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
        """Generate text from a local model.

        Raises:
            ValueError: If both or neither of ``messages``/``prompt`` are given.
            RuntimeError: If the client is used outside a context manager.
            ProviderError: If the server is unreachable, times out, answers
                non-2xx, or returns no text.
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        resolved = self._resolve_messages(messages, prompt)
        text = prompt if prompt is not None else flatten_messages(resolved)
        start = time.monotonic()

        payload = {
            "model": model_id,
            "prompt": text,
            "stream": False,
            "options": {"num_predict": self.clamp_tokens(max_tokens)},
        }

        try:
            resp = await self._client.post("/api/generate", json=payload)
        except httpx.TimeoutException:
            raise self._fail(model_id, "transport", f"Request timed out after {self._timeout}s") from None
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise self._fail(model_id, "transport", f"Ollama unavailable: {exc}") from exc

        elapsed_ms = int((time.monotonic() - start) * 1000)

        if not 200 <= resp.status_code < 300:
            raise self._fail(model_id, "status", f"HTTP {resp.status_code}: {extract_error(resp)}")

        try:
            data = resp.json()
        except ValueError:
            raise self._fail(model_id, "shape", "Response body is not JSON") from None

        response_text = data.get("response") if isinstance(data, dict) else None
        content = self._require_text(model_id, response_text)

        return GenerationResult(
            content=content,
            vendor=self.vendor,
            model_id=model_id,
            latency_ms=elapsed_ms,
            token_count=_extract_token_count(data),
        )


def _extract_token_count(data: dict[str, Any]) -> int | None:
    """Sum prompt and generated token counts.

    Returns:
        Total tokens if both counters are numbers, None otherwise.
    """
    return sum_token_counts(data.get("prompt_eval_count"), data.get("eval_count"))
