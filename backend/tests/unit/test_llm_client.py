"""Unit tests for the reasoning client (HTTP mocked with httpx.MockTransport)."""

import json

import httpx
import pytest

from helpers.errors import GenerationFailedError
from helpers.llm_client import LLMClient, ReasoningClient


def _gemini_ok(text):
    return {
        "candidates": [{"content": {"parts": [{"text": text}]}}],
        "usageMetadata": {"promptTokenCount": 10, "candidatesTokenCount": 5, "totalTokenCount": 15},
    }


class TestGemini:
    """Tests for the Gemini provider."""

    @pytest.mark.asyncio
    async def test_complete(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["key"] = request.headers["x-goog-api-key"]
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json=_gemini_ok('{"causes": []}'))

        client = LLMClient(provider="gemini", api_key="test-key", transport=httpx.MockTransport(handler))
        text = await client.complete("Analyze this", system="Be brief", max_tokens=256)

        assert text == '{"causes": []}'
        assert seen["key"] == "test-key"
        assert seen["url"].endswith(f"models/{client.model}:generateContent")
        assert seen["payload"]["generationConfig"]["maxOutputTokens"] == 256
        assert [c["role"] for c in seen["payload"]["contents"]] == ["user", "model", "user"]

    @pytest.mark.asyncio
    async def test_bad_envelope(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"candidates": []}))
        client = LLMClient(provider="gemini", api_key="k", transport=transport)
        with pytest.raises(GenerationFailedError, match="Invalid response structure"):
            await client.complete("x")

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>oops</html>"))
        client = LLMClient(provider="gemini", api_key="k", transport=transport)
        with pytest.raises(GenerationFailedError):
            await client.complete("x")


class TestOpenAI:
    """Tests for the OpenAI provider."""

    @pytest.mark.asyncio
    async def test_complete(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["authorization"]
            seen["payload"] = json.loads(request.content)
            return httpx.Response(200, json={
                "choices": [{"message": {"content": "Weekly report"}}],
                "usage": {"prompt_tokens": 3, "completion_tokens": 2, "completion_tokens_details": {"x": 1}},
            })

        client = LLMClient(provider="openai", api_key="sk-test", transport=httpx.MockTransport(handler))
        text = await client.complete("Summarize", system="You are an analyst", temperature=0.0)

        assert text == "Weekly report"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["payload"]["temperature"] == 0.0
        assert seen["payload"]["messages"][0] == {"role": "system", "content": "You are an analyst"}


class TestFailures:
    """Failures surface as GenerationFailedError."""

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(GenerationFailedError, match="API key not configured"):
            await LLMClient(provider="gemini", api_key="").complete("x")

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = LLMClient(provider="gemini", api_key="k", transport=httpx.MockTransport(handler))
        with pytest.raises(GenerationFailedError, match="timed out"):
            await client.complete("x")

    @pytest.mark.asyncio
    async def test_http_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(429, text="rate limited"))
        client = LLMClient(provider="openai", api_key="k", transport=transport)
        with pytest.raises(GenerationFailedError, match="HTTP 429"):
            await client.complete("x")

    @pytest.mark.asyncio
    async def test_generate_does_not_raise(self):
        response = await LLMClient(provider="gemini", api_key="").generate("x")
        assert response.content == ""
        assert response.error == "API key not configured"


def test_satisfies_protocol():
    assert isinstance(LLMClient(provider="gemini", api_key="k"), ReasoningClient)
