"""Fallback router — the single entry point for text generation.

Walks the configured fallback order one attempt at a time and returns the
first non-blank result.  Vendors without a credential are skipped without
counting as failures.  Every other failure is recorded and the walk
continues; if nothing succeeds the caller gets ``AllProvidersFailedError``
listing each attempted provider and why it failed.

Attempts are strictly sequential.  There is no retry, backoff, or second
pass over the list.

Typical usage::

    import asyncio
    from model_relay.config import load_config
    from model_relay.router import FallbackRouter

    async def main():
        async with FallbackRouter(load_config()) as router:
            result = await router.generate(
                "gemini-2.0-pro", [{"role": "user", "content": "Hello"}], 200,
            )

    asyncio.run(main())
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from model_relay.config import Config
from model_relay.errors import AllProvidersFailedError, InputValidationError, ProviderError
from model_relay.models import GenerationResult
from model_relay.providers.base import DEFAULT_MAX_TOKENS
from model_relay.providers.registry import ProviderRegistry
from model_relay.types import FailureRecord, ProviderAttempt

logger = logging.getLogger(__name__)

MOCK_RESPONSE = "Mock response (MOCK_MODE=true)"
MAX_REQUEST_CHARS = 100_000


def validate_request(messages: Any, max_tokens: Any) -> str:
    """Check a generation request and build the flattened prompt.

    Args:
        messages: Sequence of ``{"role", "content"}`` mappings.
        max_tokens: Requested output budget.

    Returns:
        Message contents joined with newlines.

    Raises:
        InputValidationError: If messages are missing, malformed, empty,
            too large, or the token budget is not a positive integer.
    """
    if isinstance(messages, (str, bytes)) or not isinstance(messages, Sequence) or not messages:
        raise InputValidationError("messages must be a non-empty array")

    total = 0
    for msg in messages:
        if not isinstance(msg, Mapping):
            raise InputValidationError("each message must be an object")
        content = msg.get("content")
        if not isinstance(content, str) or not content:
            raise InputValidationError("each message must have a non-empty string content field")
        total += len(content)
        if total > MAX_REQUEST_CHARS:
            raise InputValidationError(
                f"message content exceeds maximum length ({MAX_REQUEST_CHARS} characters)"
            )

    if isinstance(max_tokens, bool) or not isinstance(max_tokens, int) or max_tokens < 1:
        raise InputValidationError("maxTokens must be a positive number")

    prompt = "\n".join(m["content"] for m in messages)
    if not prompt.strip():
        raise InputValidationError("Empty prompt generated from messages")
    return prompt


def _trace(attempt: ProviderAttempt, outcome: str, reason: str = "") -> None:
    """Emit one structured attempt event."""
    level = logging.WARNING if outcome == "failed" else logging.INFO
    logger.log(
        level,
        "%s:%s %s%s",
        attempt.provider.value,
        attempt.model,
        outcome,
        f" - {reason}" if reason else "",
        extra={
            "event": "provider_attempt",
            "vendor": attempt.provider.value,
            "model": attempt.model,
            "outcome": outcome,
            "reason": reason,
        },
    )


def _check_result(result: Any) -> str | None:
    """Return a failure reason if *result* is not a usable GenerationResult."""
    if not isinstance(result, GenerationResult):
        return f"invalid response shape: {type(result).__name__}"
    if not isinstance(result.content, str) or not result.content.strip():
        return "empty content"
    return None


class FallbackRouter:
    """Sequential multi-provider fallback over a fixed attempt order.

    Designed to be used as an async context manager.  A registry the
    router built itself is closed on exit; a registry passed in belongs to
    the caller and stays open, so it can be shared between routers.  It is
    built lazily on the first real (non-mock) request.

    Args:
        config: Application configuration (mock flag and fallback order).
        registry: Provider registry to draw clients from.  Defaults to a
            new ``ProviderRegistry`` over *config*.
    """

    def __init__(self, config: Config, registry: ProviderRegistry | None = None) -> None:
        self._config = config
        self._owns_registry = registry is None
        self._registry = registry if registry is not None else ProviderRegistry(config)
        self._order: tuple[ProviderAttempt, ...] = tuple(config.fallback_order)

    @property
    def fallback_order(self) -> tuple[ProviderAttempt, ...]:
        return self._order

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    async def generate(
        self,
        model_hint: str,
        messages: Sequence[Mapping[str, Any]],
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> GenerationResult:
        """Generate text with the first provider that succeeds.

        Args:
            model_hint: Model the caller would prefer.  Logged and echoed
                on mock results; the fallback order itself is fixed.
            messages: Chat messages; their contents are flattened into one
                prompt.
            max_tokens: Output budget; each provider clamps it to its ceiling.

        Returns:
            The first validated GenerationResult.

        Raises:
            InputValidationError: If the request is malformed.  No provider
                is attempted.
            AllProvidersFailedError: If every registered provider failed.
        """
        prompt = validate_request(messages, max_tokens)
        logger.info("generate started (model hint: %s)", model_hint)

        if self._config.mock_mode:
            logger.info("MOCK_MODE=true, returning mock response")
            return GenerationResult(content=MOCK_RESPONSE, model_id=model_hint, mock=True)

        await self._registry.ensure_initialized()

        failures: list[FailureRecord] = []
        for attempt in self._order:
            provider = self._registry.get(attempt.provider)
            if provider is None:
                _trace(attempt, "skipped", "no credential")
                continue

            _trace(attempt, "started")
            try:
                result = await provider.complete(attempt.model, prompt=prompt, max_tokens=max_tokens)
            except ProviderError as exc:
                reason = f"{exc.stage}: {exc.detail}"
            except Exception as exc:
                logger.exception("%s:%s raised unexpectedly", attempt.provider.value, attempt.model)
                reason = f"unexpected: {type(exc).__name__}: {exc}"
            else:
                reason = _check_result(result)
                if reason is None:
                    _trace(attempt, "succeeded")
                    return result

            failures.append(FailureRecord(attempt.provider, attempt.model, reason))
            _trace(attempt, "failed", reason)

        error = AllProvidersFailedError(failures)
        logger.error("%s", error)
        raise error

    async def available_providers(self) -> dict[str, Any]:
        """Report which vendors have a registered client, plus mock mode."""
        await self._registry.ensure_initialized()
        status: dict[str, Any] = dict(self._registry.available())
        status["mock_mode"] = self._config.mock_mode
        return status

    async def __aenter__(self) -> FallbackRouter:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._owns_registry:
            await self._registry.aclose()
