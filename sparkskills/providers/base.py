"""Base class for completion providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

MAX_ERROR_CHARS = 500


@dataclass
class LLMResponse:
    """Response from a completion provider."""

    content: str | None = None
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)

    @classmethod
    def failure(cls, message: str) -> "LLMResponse":
        """Error response carrying a status or exception description."""
        return cls(content=message[:MAX_ERROR_CHARS], finish_reason="error")

    @property
    def is_error(self) -> bool:
        """Whether the provider reported a failed request."""
        return self.finish_reason == "error"


class LLMProvider(ABC):
    """
    Abstract base class for completion providers.

    Implementations never raise on transport or API errors; they return an
    ``LLMResponse`` with ``finish_reason="error"`` and the status/body text
    as content.
    """

    def __init__(self, api_key: str | None = None, api_base: str | None = None):
        self.api_key = api_key
        self.api_base = api_base

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: List of messages with 'role' and 'content'.
            model: Model identifier (provider-specific).
            max_tokens: Maximum tokens in response.
            temperature: Sampling temperature.

        Returns:
            LLMResponse with the text content.
        """
        pass

    @abstractmethod
    def get_default_model(self) -> str:
        """Get the default model for this provider."""
        pass
