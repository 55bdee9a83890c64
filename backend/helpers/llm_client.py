"""
Reasoning client for Gemini and OpenAI.

The engine only depends on the ReasoningClient protocol: `complete(prompt)`
returns raw text that callers treat as untrusted and run through
helpers.json_extraction.
"""

import logging
from typing import Protocol, runtime_checkable

import httpx
from pydantic import BaseModel

from config.settings import MODEL_CONFIG, settings, get_llm_api_key
from helpers.errors import GenerationFailedError

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"


@runtime_checkable
class ReasoningClient(Protocol):
    async def complete(
        self,
        prompt: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        ...


class LLMResponse(BaseModel):
    """Structured response from LLM."""
    content: str
    model: str
    usage: dict[str, int] | None = None
    error: str | None = None


class LLMClient:
    """
    LLM client over the provider's HTTP API.

    Usage:
        client = LLMClient()
        text = await client.complete(prompt="...")
    """

    def __init__(
        self,
        provider: str | None = None,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.provider = provider or settings.ai_provider
        self.api_key = api_key if api_key is not None else (get_llm_api_key() or "")
        self.timeout = settings.llm_timeout_seconds
        self.model = MODEL_CONFIG[self.provider]["model"]
        self._transport = transport

        if not self.api_key:
            logger.warning(f"[LLM] No API key for provider '{self.provider}'. Generation will fail.")

    async def complete(
        self,
        prompt: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        system: str | None = None,
    ) -> str:
        """
        Generate text for a prompt.

        Args:
            prompt: User prompt
            model: Override of the configured model
            temperature: Sampling temperature, defaults to settings.llm_temperature
            max_tokens: Maximum response tokens, defaults to settings.llm_max_tokens
            system: Optional system instructions

        Returns:
            Raw response text

        Raises:
            GenerationFailedError: Missing key, timeout, HTTP error or
                unexpected response envelope
        """
        if not self.api_key:
            raise GenerationFailedError("API key not configured")

        model = model or self.model
        temperature = settings.llm_temperature if temperature is None else temperature
        max_tokens = max_tokens or settings.llm_max_tokens

        try:
            if self.provider == "openai":
                response = await self._complete_openai(prompt, system, model, temperature, max_tokens)
            else:
                response = await self._complete_gemini(prompt, system, model, temperature, max_tokens)
        except httpx.TimeoutException as e:
            logger.warning(f"[LLM] Request timed out after {self.timeout}s")
            raise GenerationFailedError(f"Request timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"[LLM] API error: {e.response.status_code}")
            raise GenerationFailedError(
                f"HTTP {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"[LLM] Transport error: {type(e).__name__}: {e}")
            raise GenerationFailedError(str(e)) from e
        except ValueError as e:
            logger.warning(f"[LLM] Response body is not JSON: {e}")
            raise GenerationFailedError(f"Invalid response body: {e}") from e

        if response.usage:
            logger.debug(f"[LLM] {response.model} usage: {response.usage}")
        return response.content

    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 2048,
    ) -> LLMResponse:
        """
        Non-raising variant of complete().

        Returns:
            LLMResponse with content, or empty content and the error message
        """
        try:
            content = await self.complete(
                prompt, system=system, temperature=temperature, max_tokens=max_tokens
            )
            return LLMResponse(content=content, model=self.model)
        except GenerationFailedError as e:
            return LLMResponse(content="", model=self.model, error=str(e))

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _complete_gemini(
        self,
        prompt: str,
        system: str | None,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        """Generate using Google Gemini API."""
        contents = []

        if system:
            contents.append({"role": "user", "parts": [{"text": system}]})
            contents.append({
                "role": "model",
                "parts": [{"text": "I understand. I will follow these instructions."}]
            })

        contents.append({"role": "user", "parts": [{"text": prompt}]})

        payload = {
            "contents": contents,
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
            },
        }

        async with self._http_client() as client:
            response = await client.post(
                GEMINI_URL.format(model=model),
                headers={
                    "Content-Type": "application/json",
                    "x-goog-api-key": self.api_key,
                },
                json=payload,
            )
            response.raise_for_status()
            data = response.json()

        try:
            content = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationFailedError(f"Invalid response structure: {e}") from e

        usage = None
        if "usageMetadata" in data:
            usage = {
                "prompt_tokens": data["usageMetadata"].get("promptTokenCount", 0),
                "completion_tokens": data["usageMetadata"].get("candidatesTokenCount", 0),
                "total_tokens": data["usageMetadata"].get("totalTokenCount", 0),
            }

        return LLMResponse(content=content, model=model, usage=usage)

    async def _complete_openai(
        self,
        prompt: str,
        system: str | None,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> LLMResponse:
        """Generate using OpenAI chat completions."""
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        async with self._http_client() as client:
            response = await client.post(
                OPENAI_URL,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
                json={
                    "model": model,
                    "messages": messages,
                    "temperature": temperature,
                    "max_tokens": max_tokens,
                },
            )
            response.raise_for_status()
            data = response.json()

        try:
            content = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationFailedError(f"Invalid response structure: {e}") from e

        usage = {k: v for k, v in (data.get("usage") or {}).items() if isinstance(v, int)}
        return LLMResponse(content=content, model=model, usage=usage or None)
