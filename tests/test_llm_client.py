"""Tests for the Gemini client factory."""
import sys
import types
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from research_agent.errors import ConfigurationError, ProviderAuthError, ProviderError, ProviderQuotaError
from research_agent.llm_client import GeminiClientAdapter, get_client, get_model


def fake_response(text="hello", prompt_tokens=12, completion_tokens=7):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
    )


def api_error(error_cls, status):
    request = httpx.Request("POST", "https://gemini.test/chat/completions")
    response = httpx.Response(status, request=request)
    return error_cls("upstream said no", response=response, body=None)


class TestGetModel:
    def test_get_model_returns_configured_model(self):
        with patch("research_agent.llm_client.settings") as mock_settings:
            mock_settings.gemini_model = "gemini-2.0-flash"
            assert get_model() == "gemini-2.0-flash"


class TestGetClient:
    def test_get_client_uses_gemini_endpoint(self):
        with patch("research_agent.llm_client.settings") as mock_settings:
            mock_settings.gemini_api_key = "gm-valid-key"
            mock_settings.gemini_base_url = "https://gemini.test/openai/"
            mock_settings.llm_timeout_seconds = 60.0

            openai_module = types.ModuleType("openai")
            mock_openai = MagicMock()
            openai_module.AsyncOpenAI = mock_openai

            with patch.dict(sys.modules, {"openai": openai_module}):
                get_client()

            mock_openai.assert_called_once_with(
                api_key="gm-valid-key",
                base_url="https://gemini.test/openai/",
                timeout=60.0,
                max_retries=0,
            )

    def test_get_client_requires_key(self):
        with patch("research_agent.llm_client.settings") as mock_settings:
            mock_settings.gemini_api_key = ""
            with pytest.raises(ConfigurationError):
                get_client()


class TestGeminiClientAdapter:
    @pytest.mark.asyncio
    async def test_generate_json_mode_sets_response_format(self):
        openai_client = MagicMock()
        openai_client.chat.completions.create = AsyncMock(return_value=fake_response('{"a": 1}'))
        adapter = GeminiClientAdapter(openai_client)

        completion = await adapter.generate(
            model="gemini-test", system="sys", prompt="user", temperature=0.7, json_mode=True
        )

        kwargs = openai_client.chat.completions.create.await_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "user"},
        ]
        assert "max_tokens" not in kwargs
        assert completion.text == '{"a": 1}'
        assert completion.usage.input_tokens == 12
        assert completion.usage.output_tokens == 7

    @pytest.mark.asyncio
    async def test_generate_text_mode(self):
        openai_client = MagicMock()
        openai_client.chat.completions.create = AsyncMock(return_value=fake_response("# Report"))
        adapter = GeminiClientAdapter(openai_client)

        await adapter.generate(
            model="gemini-test", system="sys", prompt="user", temperature=0.8, max_tokens=8192
        )

        kwargs = openai_client.chat.completions.create.await_args.kwargs
        assert "response_format" not in kwargs
        assert kwargs["max_tokens"] == 8192
        assert kwargs["temperature"] == 0.8

    @pytest.mark.asyncio
    async def test_empty_choices_raise(self):
        openai_client = MagicMock()
        openai_client.chat.completions.create = AsyncMock(
            return_value=SimpleNamespace(choices=[], usage=None)
        )
        adapter = GeminiClientAdapter(openai_client)

        with pytest.raises(ProviderError):
            await adapter.generate(model="m", system="s", prompt="p", temperature=0.1)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error_cls,status,expected",
        [
            (openai.AuthenticationError, 401, ProviderAuthError),
            (openai.RateLimitError, 429, ProviderQuotaError),
            (openai.InternalServerError, 500, ProviderError),
        ],
    )
    async def test_sdk_errors_are_mapped(self, error_cls, status, expected):
        openai_client = MagicMock()
        openai_client.chat.completions.create = AsyncMock(side_effect=api_error(error_cls, status))
        adapter = GeminiClientAdapter(openai_client)

        with pytest.raises(expected) as excinfo:
            await adapter.generate(model="m", system="s", prompt="p", temperature=0.1)
        assert excinfo.value.provider == "gemini"
        assert excinfo.value.status_code == status
