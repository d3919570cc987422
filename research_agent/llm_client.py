"""Gemini client factory over the OpenAI-compatible SDK."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from research_agent.config import settings
from research_agent.errors import (
    ConfigurationError,
    ProviderAuthError,
    ProviderError,
    ProviderQuotaError,
)

PROVIDER = "gemini"


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class Completion:
    text: str
    usage: Usage
    model: str


class GeminiClientAdapter:
    """Thin wrapper that turns chat completions into plain text completions."""

    def __init__(self, openai_client: Any):
        self._client = openai_client

    @staticmethod
    def _map_error(exc: Exception) -> ProviderError:
        import openai

        message = f"Gemini API failed: {exc}"
        status_code = getattr(exc, "status_code", None)
        if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
            return ProviderAuthError(PROVIDER, message, status_code=status_code)
        if isinstance(exc, openai.RateLimitError):
            return ProviderQuotaError(PROVIDER, message, status_code=status_code)
        return ProviderError(PROVIDER, message, status_code=status_code)

    @staticmethod
    def _from_openai_response(response: Any, model: str) -> Completion:
        choices = getattr(response, "choices", None) or []
        if not choices:
            raise ProviderError(PROVIDER, "Invalid response from Gemini API: no candidates")
        message = getattr(choices[0], "message", None)
        text = getattr(message, "content", None) or ""

        usage = getattr(response, "usage", None)
        return Completion(
            text=text,
            usage=Usage(
                input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            ),
            model=model,
        )

    async def generate(
        self,
        *,
        model: str,
        system: str,
        prompt: str,
        temperature: float,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> Completion:
        import openai

        kwargs: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": temperature,
        }
        if max_tokens:
            kwargs["max_tokens"] = max_tokens
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            raise self._map_error(e) from e
        return self._from_openai_response(response, model)


def get_client() -> GeminiClientAdapter:
    """Build the Gemini client via the OpenAI-compatible SDK."""
    from openai import AsyncOpenAI

    if not settings.gemini_api_key:
        raise ConfigurationError(["GEMINI_API_KEY"])
    base_url = settings.gemini_base_url.strip() or "https://generativelanguage.googleapis.com/v1beta/openai/"
    openai_client = AsyncOpenAI(
        api_key=settings.gemini_api_key,
        base_url=base_url,
        timeout=settings.llm_timeout_seconds,
        max_retries=0,
    )
    return GeminiClientAdapter(openai_client)


def get_model() -> str:
    """Get the active Gemini model id."""
    return settings.gemini_model


_client: GeminiClientAdapter | None = None


def client() -> GeminiClientAdapter:
    """Get or create the LLM client."""
    global _client
    if _client is None:
        _client = get_client()
    return _client
