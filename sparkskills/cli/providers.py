"""Provider and model registry for the SparkSkills CLI.

Pure data module defining the available completion providers, their chat
models and the cheaper model each one uses for reflection calls. Used by
the onboarding and status commands.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class ModelOption:
    """A single model offered by a provider."""

    id: str
    label: str
    description: str


@dataclass(frozen=True, slots=True)
class ProviderOption:
    """A completion provider with its API-key hint, models and reflection model."""

    key: str
    label: str
    key_url_hint: str
    reflection_model: str = ""
    models: list[ModelOption] = field(default_factory=list)


PROVIDERS: list[ProviderOption] = [
    ProviderOption(
        key="anthropic",
        label="Anthropic",
        key_url_hint="https://console.anthropic.com/settings/keys",
        reflection_model="claude-3-haiku-20240307",
        models=[
            ModelOption(
                "claude-sonnet-4-6",
                "Claude Sonnet 4.6",
                "Best speed and intelligence balance",
            ),
            ModelOption(
                "claude-haiku-4-5", "Claude Haiku 4.5", "Fastest, near-frontier intelligence"
            ),
            ModelOption(
                "claude-3-haiku-20240307", "Claude 3 Haiku", "Cheap reflection model"
            ),
        ],
    ),
    ProviderOption(
        key="openai",
        label="OpenAI",
        key_url_hint="https://platform.openai.com/api-keys",
        reflection_model="gpt-4.1-mini",
        models=[
            ModelOption("gpt-4.1", "GPT-4.1", "Smartest non-reasoning model, 1M context"),
            ModelOption("gpt-4.1-mini", "GPT-4.1 Mini", "Fast and affordable"),
        ],
    ),
]


def get_provider(key: str) -> ProviderOption | None:
    """Look up a provider by its unique key.

    Args:
        key: The provider key (e.g. ``"openai"`` or ``"anthropic"``).

    Returns:
        The matching ``ProviderOption``, or ``None`` if no provider has that key.
    """
    for provider in PROVIDERS:
        if provider.key == key:
            return provider
    return None
