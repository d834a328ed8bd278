"""Unit tests for LLM provider adapters — OpenAI, Anthropic, Ollama."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import openai
import pytest

from reelcritic.config.settings import Settings
from reelcritic.providers.llm.anthropic_provider import AnthropicLLMProvider
from reelcritic.providers.llm.ollama_provider import OllamaLLMProvider
from reelcritic.providers.llm.openai_provider import OpenAILLMProvider
from reelcritic.utils.errors import LLMError


# ======================================================================
# Shared helpers
# ======================================================================

def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_text_model": "",
        "anthropic_api_key": "test-anthropic",
        "ollama_base_url": "http://localhost:11434",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


def _request() -> httpx.Request:
    return httpx.Request("POST", "https://llm.invalid/v1")


def _chat_response(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    response.usage = MagicMock(total_tokens=100)
    return response


def _anthropic_response(*texts: str) -> MagicMock:
    blocks = []
    for text in texts:
        block = MagicMock()
        block.type = "text"
        block.text = text
        blocks.append(block)
    response = MagicMock()
    response.content = blocks
    response.usage = MagicMock(input_tokens=50, output_tokens=50)
    return response


# ======================================================================
# OpenAI LLM Provider
# ======================================================================


class TestOpenAILLMProvider:
    def test_provider_name(self) -> None:
        assert OpenAILLMProvider(_settings()).get_provider_name() == "openai"
        compatible = OpenAILLMProvider(_settings(openai_base_url="https://api.groq.com/openai/v1"))
        assert compatible.get_provider_name() == "openai-compatible"

    def test_is_available(self) -> None:
        assert OpenAILLMProvider(_settings()).is_available() is True
        assert OpenAILLMProvider(_settings(openai_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_complete_success(self) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_chat_response('{"score": 0.8}'))

        with patch("reelcritic.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(_settings())
            result = await provider.complete("system prompt", "user prompt", temperature=0.1, max_tokens=50)

        assert result == '{"score": 0.8}'
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["max_tokens"] == 50
        assert kwargs["messages"][0] == {"role": "system", "content": "system prompt"}

    @pytest.mark.asyncio
    async def test_empty_content_raises(self) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_chat_response(None))

        with patch("reelcritic.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(_settings())
            with pytest.raises(LLMError, match="empty response"):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_api_error_is_wrapped(self) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.APIConnectionError(request=_request())
        )

        with patch("reelcritic.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(_settings())
            with pytest.raises(LLMError) as excinfo:
                await provider.complete("system", "user")

        assert excinfo.value.provider_name == "openai"

    @pytest.mark.asyncio
    async def test_timeout_is_wrapped(self) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(side_effect=openai.APITimeoutError(request=_request()))

        with patch("reelcritic.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(_settings())
            with pytest.raises(LLMError, match="timed out"):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_validate_credentials(self) -> None:
        mock_client = AsyncMock()
        mock_client.models.list = AsyncMock(return_value=MagicMock())

        with patch("reelcritic.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            assert await OpenAILLMProvider(_settings()).validate_credentials() is True

        mock_client.models.list = AsyncMock(side_effect=openai.APIConnectionError(request=_request()))
        with patch("reelcritic.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            assert await OpenAILLMProvider(_settings()).validate_credentials() is False

    @pytest.mark.asyncio
    async def test_validate_without_key_skips_network(self) -> None:
        mock_client = AsyncMock()
        with patch("reelcritic.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            assert await OpenAILLMProvider(_settings(openai_api_key="")).validate_credentials() is False
        mock_client.models.list.assert_not_called()


# ======================================================================
# Anthropic LLM Provider
# ======================================================================


class TestAnthropicLLMProvider:
    def test_provider_name_and_availability(self) -> None:
        provider = AnthropicLLMProvider(_settings())
        assert provider.get_provider_name() == "anthropic"
        assert provider.is_available() is True
        assert AnthropicLLMProvider(_settings(anthropic_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_complete_joins_text_blocks(self) -> None:
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=_anthropic_response("first", "second"))

        with patch("reelcritic.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            provider = AnthropicLLMProvider(_settings())
            result = await provider.complete("system", "user")

        assert result == "first\nsecond"
        assert mock_client.messages.create.call_args.kwargs["system"] == "system"

    @pytest.mark.asyncio
    async def test_no_text_blocks_raises(self) -> None:
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=_anthropic_response())

        with patch("reelcritic.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            provider = AnthropicLLMProvider(_settings())
            with pytest.raises(LLMError, match="no text content"):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_api_error_is_wrapped(self) -> None:
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(side_effect=anthropic.APIConnectionError(request=_request()))

        with patch("reelcritic.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            provider = AnthropicLLMProvider(_settings())
            with pytest.raises(LLMError) as excinfo:
                await provider.complete("system", "user")

        assert excinfo.value.provider_name == "anthropic"

    @pytest.mark.asyncio
    async def test_validate_credentials(self) -> None:
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=_anthropic_response("ok"))

        with patch("reelcritic.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            assert await AnthropicLLMProvider(_settings()).validate_credentials() is True


# ======================================================================
# Ollama LLM Provider
# ======================================================================


class TestOllamaLLMProvider:
    def test_provider_name_and_availability(self) -> None:
        provider = OllamaLLMProvider(_settings())
        assert provider.get_provider_name() == "ollama"
        assert provider.is_available() is True
        assert OllamaLLMProvider(_settings(ollama_base_url="")).is_available() is False

    def test_client_points_at_v1_endpoint(self) -> None:
        with patch("reelcritic.providers.llm.ollama_provider.openai.AsyncOpenAI") as client_cls:
            OllamaLLMProvider(_settings(ollama_base_url="http://gpu-box:11434/"))
        assert client_cls.call_args.kwargs["base_url"] == "http://gpu-box:11434/v1"

    @pytest.mark.asyncio
    async def test_complete_success(self) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_chat_response("local answer"))

        with patch("reelcritic.providers.llm.ollama_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OllamaLLMProvider(_settings())
            assert await provider.complete("system", "user") == "local answer"

        assert mock_client.chat.completions.create.call_args.kwargs["model"] == "llama3.1"

    @pytest.mark.asyncio
    async def test_api_error_is_wrapped(self) -> None:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.APIConnectionError(request=_request())
        )

        with patch("reelcritic.providers.llm.ollama_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OllamaLLMProvider(_settings())
            with pytest.raises(LLMError):
                await provider.complete("system", "user")

    @pytest.mark.asyncio
    async def test_validate_credentials_checks_tags_endpoint(self) -> None:
        mock_http = AsyncMock()
        mock_http.get = AsyncMock(return_value=MagicMock(status_code=200))
        mock_http.__aenter__ = AsyncMock(return_value=mock_http)
        mock_http.__aexit__ = AsyncMock(return_value=False)

        with patch("reelcritic.providers.llm.ollama_provider.httpx.AsyncClient", return_value=mock_http):
            assert await OllamaLLMProvider(_settings()).validate_credentials() is True

        mock_http.get.assert_awaited_once_with("http://localhost:11434/api/tags")

    @pytest.mark.asyncio
    async def test_validate_credentials_unreachable(self) -> None:
        mock_http = AsyncMock()
        mock_http.get = AsyncMock(side_effect=httpx.ConnectError("refused"))
        mock_http.__aenter__ = AsyncMock(return_value=mock_http)
        mock_http.__aexit__ = AsyncMock(return_value=False)

        with patch("reelcritic.providers.llm.ollama_provider.httpx.AsyncClient", return_value=mock_http):
            assert await OllamaLLMProvider(_settings()).validate_credentials() is False
