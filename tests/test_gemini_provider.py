"""Tests for the Gemini provider.

Covers: construction validation, message conversion (system extraction,
assistant → model role), text part extraction, token count extraction,
and mocked complete() including URL, headers, and failure stages.
"""

from __future__ import annotations

import sys
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from model_relay.errors import ProviderError
from model_relay.providers.gemini import (
    GEMINI_API_BASE,
    GeminiProvider,
    _extract_content,
    _extract_token_count,
    _to_gemini_contents,
)
from model_relay.types import Vendor

# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestGeminiProviderConstruction:
    """GeminiProvider.__init__() validation."""

    def test_valid_api_key(self) -> None:
        assert GeminiProvider(api_key="AIza-test")._api_key == "AIza-test"

    def test_empty_api_key_raises(self) -> None:
        with pytest.raises(ValueError, match="API key is required"):
            GeminiProvider(api_key="")


# ---------------------------------------------------------------------------
# Message conversion
# ---------------------------------------------------------------------------


class TestToGeminiContents:
    """_to_gemini_contents() maps OpenAI-style messages to Gemini contents."""

    def test_user_only(self) -> None:
        system, contents = _to_gemini_contents([{"role": "user", "content": "Hi"}])
        assert system is None
        assert contents == [{"role": "user", "parts": [{"text": "Hi"}]}]

    def test_system_extracted(self) -> None:
        system, contents = _to_gemini_contents(
            [
                {"role": "system", "content": "Be brief."},
                {"role": "user", "content": "Hi"},
            ]
        )
        assert system == "Be brief."
        assert len(contents) == 1

    def test_assistant_becomes_model(self) -> None:
        _, contents = _to_gemini_contents(
            [
                {"role": "user", "content": "Hi"},
                {"role": "assistant", "content": "Hello"},
            ]
        )
        assert contents[1]["role"] == "model"

    def test_system_only_becomes_user_turn(self) -> None:
        """Gemini needs at least one content entry."""
        system, contents = _to_gemini_contents([{"role": "system", "content": "Prompt"}])
        assert system is None
        assert contents == [{"role": "user", "parts": [{"text": "Prompt"}]}]


# ---------------------------------------------------------------------------
# Response extraction
# ---------------------------------------------------------------------------


class TestExtractContent:
    """_extract_content() joins the first candidate's text parts."""

    def test_single_part(self) -> None:
        data = {"candidates": [{"content": {"parts": [{"text": "Hello!"}]}}]}
        assert _extract_content(data) == "Hello!"

    def test_multiple_parts(self) -> None:
        data = {"candidates": [{"content": {"parts": [{"text": "Hello "}, {"text": "world"}]}}]}
        assert _extract_content(data) == "Hello world"

    def test_no_candidates(self) -> None:
        assert _extract_content({"candidates": []}) is None

    def test_no_text_parts(self) -> None:
        data = {"candidates": [{"content": {"parts": [{"inlineData": {}}]}}]}
        assert _extract_content(data) is None

    def test_blocked_prompt(self) -> None:
        assert _extract_content({"promptFeedback": {"blockReason": "SAFETY"}}) is None

    def test_token_count(self) -> None:
        assert _extract_token_count({"usageMetadata": {"totalTokenCount": 30}}) == 30
        assert _extract_token_count({}) is None
        assert _extract_token_count({"usageMetadata": {"totalTokenCount": None}}) is None


# ---------------------------------------------------------------------------
# Mocked complete()
# ---------------------------------------------------------------------------


def _mock_gemini_success() -> httpx.Response:
    resp = MagicMock(spec=httpx.Response)
    resp.status_code = 200
    resp.json.return_value = {
        "candidates": [{"content": {"role": "model", "parts": [{"text": "Hello back!"}]}}],
        "usageMetadata": {"totalTokenCount": 12},
    }
    return resp


@pytest.mark.skipif(
    sys.platform == "win32",
    reason="Slow asyncio overhead on Windows — validated on Ubuntu CI",
)
class TestComplete:
    """GeminiProvider.complete() with a mocked HTTP client."""

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        provider = GeminiProvider(api_key="AIza-test")
        async with provider:
            assert provider._client is not None
            mock_post = AsyncMock(return_value=_mock_gemini_success())
            provider._client.post = mock_post
            result = await provider.complete("gemini-2.0-flash", prompt="Hello", max_tokens=50)

        assert result.content == "Hello back!"
        assert result.vendor is Vendor.GEMINI
        assert result.token_count == 12
        assert mock_post.call_args[0][0] == f"{GEMINI_API_BASE}/gemini-2.0-flash:generateContent"
        payload = mock_post.call_args.kwargs["json"]
        assert payload["generationConfig"] == {"maxOutputTokens": 50}
        assert "systemInstruction" not in payload

    @pytest.mark.asyncio
    async def test_system_message_sent_as_instruction(self) -> None:
        provider = GeminiProvider(api_key="AIza-test")
        async with provider:
            assert provider._client is not None
            mock_post = AsyncMock(return_value=_mock_gemini_success())
            provider._client.post = mock_post
            await provider.complete(
                "gemini-2.0-pro",
                messages=[
                    {"role": "system", "content": "Be brief."},
                    {"role": "user", "content": "Hi"},
                ],
            )

        payload = mock_post.call_args.kwargs["json"]
        assert payload["systemInstruction"] == {"parts": [{"text": "Be brief."}]}

    @pytest.mark.asyncio
    async def test_api_key_header(self) -> None:
        provider = GeminiProvider(api_key="AIza-test")
        async with provider:
            assert provider._client is not None
            assert provider._client.headers["x-goog-api-key"] == "AIza-test"

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        resp = MagicMock(spec=httpx.Response)
        resp.status_code = 403
        resp.json.return_value = {"error": {"message": "API key not valid"}}
        provider = GeminiProvider(api_key="AIza-test")
        async with provider:
            assert provider._client is not None
            provider._client.post = AsyncMock(return_value=resp)
            with pytest.raises(ProviderError) as exc_info:
                await provider.complete("gemini-2.0-flash", prompt="Hi")

        assert exc_info.value.stage == "status"
        assert "API key not valid" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_no_text_is_shape_failure(self) -> None:
        resp = MagicMock(spec=httpx.Response)
        resp.status_code = 200
        resp.json.return_value = {"candidates": []}
        provider = GeminiProvider(api_key="AIza-test")
        async with provider:
            assert provider._client is not None
            provider._client.post = AsyncMock(return_value=resp)
            with pytest.raises(ProviderError) as exc_info:
                await provider.complete("gemini-2.0-flash", prompt="Hi")

        assert exc_info.value.stage == "shape"
