"""Anthropic completion provider using the official SDK."""

import logging
from typing import Any

import anthropic

from sparkskills.providers.base import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


def _split_system(messages: list[dict[str, Any]]) -> tuple[str | None, list[dict[str, Any]]]:
    """Separate system messages, which the Messages API takes as a parameter."""
    system_parts = [m["content"] for m in messages if m.get("role") == "system"]
    rest = [m for m in messages if m.get("role") != "system"]
    return ("\n\n".join(system_parts) if system_parts else None), rest


class AnthropicProvider(LLMProvider):
    """
    Completion provider for the Anthropic Messages API.

    The request carries the model, ``max_tokens`` and the message list;
    the text blocks of the reply are joined into ``LLMResponse.content``.
    """

    DEFAULT_BASE_URL = "https://api.anthropic.com"

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "claude-3-haiku-20240307",
        timeout: float = 120.0,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key,
            base_url=api_base or self.DEFAULT_BASE_URL,
            timeout=timeout,
        )

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Send a Messages API request."""
        system, conversation = _split_system(messages)
        kwargs: dict[str, Any] = {
            "model": model or self.default_model,
            "max_tokens": max_tokens,
            "messages": conversation,
            "temperature": temperature,
        }
        if system:
            kwargs["system"] = system

        try:
            response = await self.client.messages.create(**kwargs)
        except anthropic.APIStatusError as e:
            logger.warning("Anthropic request returned %s", e.status_code)
            return LLMResponse.failure(f"API error ({e.status_code}): {e.message}")
        except Exception as e:
            logger.warning("Anthropic request failed: %s", e)
            return LLMResponse.failure(f"Request failed: {e}")
        return self._parse_response(response)

    @staticmethod
    def _parse_response(response: Any) -> LLMResponse:
        """Map an Anthropic ``Message`` onto ``LLMResponse``."""
        texts = [block.text for block in response.content if block.type == "text"]

        usage = {}
        if response.usage:
            prompt = response.usage.input_tokens
            completion = response.usage.output_tokens
            usage = {
                "prompt_tokens": prompt,
                "completion_tokens": completion,
                "total_tokens": prompt + completion,
            }

        return LLMResponse(
            content="\n\n".join(texts) if texts else None,
            finish_reason=response.stop_reason or "stop",
            usage=usage,
        )

    def get_default_model(self) -> str:
        return self.default_model
