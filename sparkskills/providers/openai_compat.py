"""OpenAI-compatible completion provider using httpx."""

import logging
from typing import Any

import httpx

from sparkskills.providers.base import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider(LLMProvider):
    """
    Completion provider for OpenAI-compatible APIs.

    Works with OpenAI, OpenRouter, local vLLM, and other endpoints that
    implement ``POST /chat/completions``. A custom ``transport`` can be
    passed to route requests somewhere other than the network.
    """

    DEFAULT_BASE_URL = "https://api.openai.com/v1"

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "gpt-4.1-mini",
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.timeout = timeout
        self.base_url = (api_base or self.DEFAULT_BASE_URL).rstrip("/")
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Send a chat completion request."""
        payload = {
            "model": model or self.default_model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/chat/completions", json=payload, headers=self._headers()
                )
                response.raise_for_status()
                return self._parse_response(response.json())
            except httpx.HTTPStatusError as e:
                logger.warning("Completion request returned %s", e.response.status_code)
                return LLMResponse.failure(
                    f"API error ({e.response.status_code}): {e.response.text}"
                )
            except Exception as e:
                logger.warning("Completion request failed: %s", e)
                return LLMResponse.failure(f"Request failed: {e}")

    @staticmethod
    def _parse_response(data: dict[str, Any]) -> LLMResponse:
        """Map a chat completion body onto ``LLMResponse``."""
        choices = data.get("choices") or []
        if not choices:
            return LLMResponse.failure("Completion response contained no choices")

        choice = choices[0]
        usage = data.get("usage") or {}
        return LLMResponse(
            content=choice.get("message", {}).get("content"),
            finish_reason=choice.get("finish_reason") or "stop",
            usage={
                key: usage.get(key, 0)
                for key in ("prompt_tokens", "completion_tokens", "total_tokens")
            } if usage else {},
        )

    def get_default_model(self) -> str:
        return self.default_model
