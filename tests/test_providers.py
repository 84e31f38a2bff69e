"""Tests for completion providers."""

import json

import httpx
import pytest

from sparkskills.providers import LLMProvider, LLMResponse, OpenAICompatibleProvider


class TestLLMResponse:
    """Tests for LLMResponse dataclass."""

    def test_default_values(self):
        response = LLMResponse()

        assert response.content is None
        assert response.finish_reason == "stop"
        assert response.usage == {}
        assert response.is_error is False

    def test_error_response(self):
        response = LLMResponse(content="API error (500): boom", finish_reason="error")
        assert response.is_error is True

    def test_finish_reasons(self):
        assert LLMResponse(finish_reason="length").is_error is False
        assert LLMResponse(finish_reason="end_turn").is_error is False


class TestLLMProviderInterface:
    def test_cannot_instantiate_abstract(self):
        with pytest.raises(TypeError):
            LLMProvider()  # type: ignore[abstract]

    def test_lazy_anthropic_export(self):
        import sparkskills.providers as providers
        from sparkskills.providers.anthropic import AnthropicProvider

        assert providers.AnthropicProvider is AnthropicProvider

    def test_unknown_attribute(self):
        import sparkskills.providers as providers

        with pytest.raises(AttributeError):
            providers.GeminiProvider  # noqa: B018


def _provider(handler, **kwargs) -> OpenAICompatibleProvider:
    return OpenAICompatibleProvider(
        api_key="sk-test",
        api_base="https://llm.test/v1",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestOpenAICompatibleProvider:
    def test_defaults(self):
        provider = OpenAICompatibleProvider()
        assert provider.base_url == "https://api.openai.com/v1"
        assert provider.get_default_model() == "gpt-4.1-mini"

    @pytest.mark.asyncio
    async def test_chat_request_and_response(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "choices": [{"message": {"content": "Hello!"}, "finish_reason": "stop"}],
                "usage": {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5},
            })

        provider = _provider(handler)
        result = await provider.chat(
            [{"role": "user", "content": "Hi"}], model="gpt-4.1", max_tokens=100
        )

        assert result.content == "Hello!"
        assert result.usage == {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5}
        assert seen["url"] == "https://llm.test/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["model"] == "gpt-4.1"
        assert seen["body"]["max_tokens"] == 100
        assert seen["body"]["messages"] == [{"role": "user", "content": "Hi"}]

    @pytest.mark.asyncio
    async def test_default_model_used(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": "x"}}]})

        result = await _provider(handler, default_model="local-model").chat(
            [{"role": "user", "content": "Hi"}]
        )

        assert seen["body"]["model"] == "local-model"
        assert result.finish_reason == "stop"
        assert result.usage == {}

    @pytest.mark.asyncio
    async def test_http_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, text="slow down")

        result = await _provider(handler).chat([{"role": "user", "content": "Hi"}])

        assert result.is_error
        assert result.content == "API error (429): slow down"

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        result = await _provider(handler).chat([{"role": "user", "content": "Hi"}])

        assert result.is_error
        assert result.content.startswith("Request failed:")
        assert "connection refused" in result.content

    @pytest.mark.asyncio
    async def test_no_auth_header_without_key(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"choices": [{"message": {"content": "x"}}]})

        provider = OpenAICompatibleProvider(
            api_base="http://localhost:8000/v1", transport=httpx.MockTransport(handler)
        )
        await provider.chat([{"role": "user", "content": "Hi"}])

        assert seen["auth"] is None

    @pytest.mark.asyncio
    async def test_empty_choices_is_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": []})

        result = await _provider(handler).chat([{"role": "user", "content": "Hi"}])

        assert result.is_error

    def test_error_text_is_bounded(self):
        assert len(LLMResponse.failure("x" * 2000).content) == 500
