"""Tests for the Gemini REST client."""

import json
from unittest.mock import patch

import httpx
import pytest

from pragma_score.gemini_client import GeminiClient, GeminiError
from pragma_score.settings import settings


def _gemini_reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class TestGeminiClient:
    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            GeminiClient()

    @pytest.mark.asyncio
    async def test_generate_returns_candidate_text(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=_gemini_reply('{"executive_summary": "ok"}'))

        async with GeminiClient("test-key", transport=httpx.MockTransport(handler)) as client:
            text = await client.generate("Describe Acme")

        assert text == '{"executive_summary": "ok"}'
        body = json.loads(seen[0].content)
        assert body["contents"][0]["parts"][0]["text"] == "Describe Acme"
        assert body["generationConfig"]["responseMimeType"] == "application/json"
        assert seen[0].url.params["key"] == "test-key"

    @pytest.mark.asyncio
    async def test_plain_text_mode(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json=_gemini_reply("hello"))

        async with GeminiClient("test-key", transport=httpx.MockTransport(handler)) as client:
            assert await client.generate("hi", json_mode=False) == "hello"
        assert "responseMimeType" not in seen[0]["generationConfig"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, json={"error": "boom"}),
            httpx.Response(200, json={"candidates": []}),
            httpx.Response(200, content=b"not json"),
        ],
    )
    async def test_failures_raise_without_fallback(self, response):
        async with GeminiClient("test-key", transport=httpx.MockTransport(lambda request: response)) as client:
            with pytest.raises(GeminiError):
                await client.generate("Describe Acme")

    @pytest.mark.asyncio
    async def test_openrouter_fallback_after_primary_failure(self):
        seen = []

        def handler(request):
            seen.append(request)
            if request.url.host == "generativelanguage.googleapis.com":
                return httpx.Response(503, json={"error": "overloaded"})
            return httpx.Response(200, json={"choices": [{"message": {"content": '{"executive_summary": "backup"}'}}]})

        with patch.object(settings, "openrouter_api_key", "or-key"):
            async with GeminiClient("test-key", transport=httpx.MockTransport(handler)) as client:
                text = await client.generate("Describe Acme")

        assert text == '{"executive_summary": "backup"}'
        assert len(seen) == 2
        fallback = seen[1]
        assert str(fallback.url) == settings.openrouter_base_url
        assert fallback.headers["Authorization"] == "Bearer or-key"
        body = json.loads(fallback.content)
        assert body["messages"][0]["content"] == "Describe Acme"
        assert body["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_fallback_failure_raises(self):
        def handler(request):
            return httpx.Response(500, json={"error": "down"})

        with patch.object(settings, "openrouter_api_key", "or-key"):
            async with GeminiClient("test-key", transport=httpx.MockTransport(handler)) as client:
                with pytest.raises(GeminiError, match="OpenRouter"):
                    await client.generate("Describe Acme")
