"""Configuration schema using Pydantic."""

import json
import logging
import os
from datetime import timedelta
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ProviderConfig(BaseModel):
    """Completion provider configuration."""

    api_key: str = ""
    api_base: str | None = None


class ProvidersConfig(BaseModel):
    """Completion providers configuration."""

    openai: ProviderConfig = Field(default_factory=ProviderConfig)
    anthropic: ProviderConfig = Field(default_factory=ProviderConfig)


class AgentConfig(BaseModel):
    """Agent configuration."""

    provider: str = ""
    model: str = ""


class SkillsConfig(BaseModel):
    """Skill library configuration."""

    enabled: bool = True
    demo_mode: bool = False
    storage_dir: str = "~/.sparkskills/store"
    max_relevant: int = 5
    token_budget: int = 1500
    context_ttl_minutes: int = 60


class ReflectionConfig(BaseModel):
    """Reflection call configuration."""

    enabled: bool = True
    model: str = "claude-3-haiku-20240307"
    max_tokens: int = 2048


_API_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


class Config(BaseModel):
    """Root configuration."""

    agent: AgentConfig = Field(default_factory=AgentConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    skills: SkillsConfig = Field(default_factory=SkillsConfig)
    reflection: ReflectionConfig = Field(default_factory=ReflectionConfig)

    @property
    def storage_path(self) -> Path:
        """Get expanded skill storage path."""
        return Path(self.skills.storage_dir).expanduser()

    @property
    def context_ttl(self) -> timedelta:
        return timedelta(minutes=self.skills.context_ttl_minutes)

    def get_provider_config(self) -> ProviderConfig | None:
        """Get the ProviderConfig for the active provider."""
        p = self.agent.provider
        if p == "openai":
            return self.providers.openai
        elif p == "anthropic":
            return self.providers.anthropic
        return None

    def get_api_key(self) -> str | None:
        """Get API key for the active provider, falling back to the environment."""
        provider_config = self.get_provider_config()
        if provider_config is None:
            return None
        return provider_config.api_key or os.environ.get(_API_KEY_ENV[self.agent.provider]) or None

    def get_api_base(self) -> str | None:
        """Get API base URL for the active provider."""
        p = self.agent.provider
        if p == "openai":
            return self.providers.openai.api_base
        elif p == "anthropic":
            return self.providers.anthropic.api_base or "https://api.anthropic.com"
        return None


def get_config_path() -> Path:
    """Get the config file path."""
    return Path.home() / ".sparkskills" / "config.json"


def load_config() -> Config:
    """Load configuration from file."""
    config_path = get_config_path()

    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
            return Config(**data)
        except Exception as e:
            logger.warning("Ignoring unreadable config at %s: %s", config_path, e)

    return Config()


def save_config(config: Config) -> None:
    """Save configuration to file."""
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(config.model_dump_json(indent=2))
