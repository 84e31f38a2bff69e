"""Completion provider implementations."""

from sparkskills.providers.base import LLMProvider, LLMResponse
from sparkskills.providers.openai_compat import OpenAICompatibleProvider

__all__ = ["LLMProvider", "LLMResponse", "OpenAICompatibleProvider"]

# Lazy import so the anthropic SDK is only loaded when selected.
def __getattr__(name: str):  # noqa: N807
    if name == "AnthropicProvider":
        from sparkskills.providers.anthropic import AnthropicProvider
        return AnthropicProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
