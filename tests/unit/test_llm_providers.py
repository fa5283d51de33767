"""Unit tests for LLM provider adapters: OpenAI-compatible, Anthropic, Ollama."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import openai
import pytest

from src.models.sentiment import ProviderDescriptor
from src.utils.errors import LLMError, RateLimitError


# ======================================================================
# Shared helpers
# ======================================================================


def _descriptor(**overrides) -> ProviderDescriptor:
    defaults = {
        "name": "groq",
        "kind": "openai",
        "model": "llama-3.1-8b-instant",
        "base_url": "https://api.groq.com/openai/v1",
        "api_key_setting": "groq_api_key",
    }
    defaults.update(overrides)
    return ProviderDescriptor(**defaults)


def _http_response(status_code: int) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", "https://llm.test/v1"))


def _chat_response(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    response.usage = MagicMock(total_tokens=42)
    return response


def _openai_client(create: AsyncMock) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = create
    return client


# ======================================================================
# OpenAI-compatible provider (OpenAI, Groq)
# ======================================================================


class TestOpenAILLMProvider:
    def test_name_comes_from_descriptor(self) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider

        provider = OpenAILLMProvider(_descriptor(), api_key="gsk-test")
        assert provider.get_provider_name() == "groq"

    def test_is_available_depends_on_key(self) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider

        assert OpenAILLMProvider(_descriptor(), api_key="gsk-test").is_available() is True
        assert OpenAILLMProvider(_descriptor(), api_key="").is_available() is False

    def test_client_points_at_base_url(self) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider

        with patch("src.providers.llm.openai_provider.openai.AsyncOpenAI") as client_cls:
            OpenAILLMProvider(_descriptor(), api_key="gsk-test", timeout_seconds=7.0)

        kwargs = client_cls.call_args.kwargs
        assert kwargs["base_url"] == "https://api.groq.com/openai/v1"
        assert kwargs["api_key"] == "gsk-test"
        assert kwargs["max_retries"] == 0

    def test_default_endpoint_without_base_url(self) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider

        with patch("src.providers.llm.openai_provider.openai.AsyncOpenAI") as client_cls:
            OpenAILLMProvider(_descriptor(name="openai", base_url=""), api_key="sk-test")

        assert "base_url" not in client_cls.call_args.kwargs

    @pytest.mark.asyncio
    async def test_complete_success_requests_json(self) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider

        create = AsyncMock(return_value=_chat_response('{"sentiment_label": "Positive"}'))
        with patch(
            "src.providers.llm.openai_provider.openai.AsyncOpenAI",
            return_value=_openai_client(create),
        ):
            provider = OpenAILLMProvider(_descriptor(), api_key="gsk-test")
            result = await provider.complete("system", "user text", temperature=0.1, max_tokens=50)

        assert result == '{"sentiment_label": "Positive"}'
        request = create.await_args.kwargs
        assert request["model"] == "llama-3.1-8b-instant"
        assert request["messages"][1] == {"role": "user", "content": "user text"}
        assert request["max_tokens"] == 50
        assert request["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_json_mode_off_omits_response_format(self) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider

        create = AsyncMock(return_value=_chat_response("{}"))
        with patch(
            "src.providers.llm.openai_provider.openai.AsyncOpenAI",
            return_value=_openai_client(create),
        ):
            provider = OpenAILLMProvider(_descriptor(json_mode=False), api_key="gsk-test")
            await provider.complete("system", "user")

        assert "response_format" not in create.await_args.kwargs

    @pytest.mark.asyncio
    async def test_rate_limit_is_mapped(self) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider

        create = AsyncMock(
            side_effect=openai.RateLimitError("slow down", response=_http_response(429), body=None)
        )
        with patch(
            "src.providers.llm.openai_provider.openai.AsyncOpenAI",
            return_value=_openai_client(create),
        ):
            provider = OpenAILLMProvider(_descriptor(), api_key="gsk-test")
            with pytest.raises(RateLimitError) as exc_info:
                await provider.complete("system", "user")

        assert exc_info.value.provider_name == "groq"

    @pytest.mark.asyncio
    async def test_api_error_is_mapped(self) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider

        create = AsyncMock(
            side_effect=openai.APIConnectionError(request=httpx.Request("POST", "https://llm.test"))
        )
        with patch(
            "src.providers.llm.openai_provider.openai.AsyncOpenAI",
            return_value=_openai_client(create),
        ):
            provider = OpenAILLMProvider(_descriptor(), api_key="gsk-test")
            with pytest.raises(LLMError):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_empty_content_is_an_error(self) -> None:
        from src.providers.llm.openai_provider import OpenAILLMProvider

        create = AsyncMock(return_value=_chat_response(None))
        with patch(
            "src.providers.llm.openai_provider.openai.AsyncOpenAI",
            return_value=_openai_client(create),
        ):
            provider = OpenAILLMProvider(_descriptor(), api_key="gsk-test")
            with pytest.raises(LLMError):
                await provider.complete("system", "user")


# ======================================================================
# Anthropic provider
# ======================================================================


def _anthropic_client(create: AsyncMock) -> MagicMock:
    client = MagicMock()
    client.messages.create = create
    return client


def _anthropic_descriptor() -> ProviderDescriptor:
    return _descriptor(
        name="anthropic",
        kind="anthropic",
        model="claude-3-5-haiku-latest",
        base_url="",
        api_key_setting="anthropic_api_key",
        json_mode=False,
    )


class TestAnthropicLLMProvider:
    def test_is_available_depends_on_key(self) -> None:
        from src.providers.llm.anthropic_provider import AnthropicLLMProvider

        assert AnthropicLLMProvider(_anthropic_descriptor(), api_key="k").is_available() is True
        assert AnthropicLLMProvider(_anthropic_descriptor(), api_key="").is_available() is False

    @pytest.mark.asyncio
    async def test_complete_joins_text_blocks(self) -> None:
        from src.providers.llm.anthropic_provider import AnthropicLLMProvider

        response = MagicMock()
        response.content = [
            MagicMock(type="text", text='{"sentiment_label":'),
            MagicMock(type="tool_use", text="ignored"),
            MagicMock(type="text", text='"Neutral", "sentiment_score": 0}'),
        ]
        response.usage = MagicMock(input_tokens=10, output_tokens=5)
        create = AsyncMock(return_value=response)

        with patch(
            "src.providers.llm.anthropic_provider.anthropic.AsyncAnthropic",
            return_value=_anthropic_client(create),
        ):
            provider = AnthropicLLMProvider(_anthropic_descriptor(), api_key="k")
            result = await provider.complete("system prompt", "user prompt")

        assert result == '{"sentiment_label":\n"Neutral", "sentiment_score": 0}'
        kwargs = create.await_args.kwargs
        assert kwargs["system"] == "system prompt"
        assert kwargs["model"] == "claude-3-5-haiku-latest"

    @pytest.mark.asyncio
    async def test_rate_limit_is_mapped(self) -> None:
        from src.providers.llm.anthropic_provider import AnthropicLLMProvider

        create = AsyncMock(
            side_effect=anthropic.RateLimitError(
                "overloaded", response=_http_response(429), body=None
            )
        )
        with patch(
            "src.providers.llm.anthropic_provider.anthropic.AsyncAnthropic",
            return_value=_anthropic_client(create),
        ):
            provider = AnthropicLLMProvider(_anthropic_descriptor(), api_key="k")
            with pytest.raises(RateLimitError):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_no_text_is_an_error(self) -> None:
        from src.providers.llm.anthropic_provider import AnthropicLLMProvider

        response = MagicMock()
        response.content = []
        create = AsyncMock(return_value=response)
        with patch(
            "src.providers.llm.anthropic_provider.anthropic.AsyncAnthropic",
            return_value=_anthropic_client(create),
        ):
            provider = AnthropicLLMProvider(_anthropic_descriptor(), api_key="k")
            with pytest.raises(LLMError):
                await provider.complete("system", "user")


# ======================================================================
# Ollama provider
# ======================================================================


def _ollama_descriptor() -> ProviderDescriptor:
    return _descriptor(name="ollama", kind="ollama", model="llama3.1", base_url="")


class TestOllamaLLMProvider:
    def test_is_available_depends_on_base_url(self) -> None:
        from src.providers.llm.ollama_provider import OllamaLLMProvider

        assert OllamaLLMProvider(_ollama_descriptor(), base_url="http://localhost:11434").is_available()
        assert not OllamaLLMProvider(_ollama_descriptor(), base_url="").is_available()

    def test_client_uses_v1_endpoint(self) -> None:
        from src.providers.llm.ollama_provider import OllamaLLMProvider

        with patch("src.providers.llm.ollama_provider.openai.AsyncOpenAI") as client_cls:
            OllamaLLMProvider(_ollama_descriptor(), base_url="http://localhost:11434/")

        assert client_cls.call_args.kwargs["base_url"] == "http://localhost:11434/v1"

    @pytest.mark.asyncio
    async def test_complete_success(self) -> None:
        from src.providers.llm.ollama_provider import OllamaLLMProvider

        create = AsyncMock(return_value=_chat_response('{"sentiment_label": "Negative"}'))
        with patch(
            "src.providers.llm.ollama_provider.openai.AsyncOpenAI",
            return_value=_openai_client(create),
        ):
            provider = OllamaLLMProvider(_ollama_descriptor(), base_url="http://localhost:11434")
            result = await provider.complete("system", "user")

        assert result == '{"sentiment_label": "Negative"}'
        assert create.await_args.kwargs["model"] == "llama3.1"

    @pytest.mark.asyncio
    async def test_connection_error_is_mapped(self) -> None:
        from src.providers.llm.ollama_provider import OllamaLLMProvider

        create = AsyncMock(
            side_effect=openai.APIConnectionError(request=httpx.Request("POST", "http://localhost"))
        )
        with patch(
            "src.providers.llm.ollama_provider.openai.AsyncOpenAI",
            return_value=_openai_client(create),
        ):
            provider = OllamaLLMProvider(_ollama_descriptor(), base_url="http://localhost:11434")
            with pytest.raises(LLMError):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_unconfigured_server_is_an_error(self) -> None:
        from src.providers.llm.ollama_provider import OllamaLLMProvider

        provider = OllamaLLMProvider(_ollama_descriptor(), base_url="")
        with pytest.raises(LLMError):
            await provider.complete("system", "user")
