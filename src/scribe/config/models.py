"""Configuration models using Pydantic."""

import logging
from typing import Literal

from pydantic import BaseModel, Field, SecretStr

logger = logging.getLogger(__name__)

DEFAULT_UPDATE_INTERVAL_MS = 1000


class ModelConfig(BaseModel):
    """Configuration for the generation model.

    Temperature is optional - if None, the provider's default is used.
    """

    provider: Literal["anthropic", "openai"] = "anthropic"
    model: str | None = None  # None = provider default
    temperature: float | None = 0.7
    max_tokens: int = 4096


class ProviderConfig(BaseModel):
    """Provider-level configuration."""

    api_key: SecretStr | None = None


class TelegramConfig(BaseModel):
    """Configuration for the Telegram transport."""

    bot_token: SecretStr | None = None
    allowed_users: list[str] = []


class StreamingConfig(BaseModel):
    """Outbound update policy for in-progress responses."""

    # Minimum wall-clock gap between non-final message edits
    update_interval_ms: int = Field(default=DEFAULT_UPDATE_INTERVAL_MS, ge=0)

    @property
    def update_interval(self) -> float:
        """Update interval in seconds."""
        return self.update_interval_ms / 1000


class TavilyConfig(BaseModel):
    """Configuration for the Tavily search API."""

    api_key: SecretStr | None = None
    search_depth: Literal["basic", "advanced"] = "advanced"
    max_results: int = Field(default=5, ge=1, le=20)
    include_answer: bool = True
    timeout: float = 30.0

    @property
    def web_search_configured(self) -> bool:
        return self.api_key is not None and bool(self.api_key.get_secret_value())


class ConfigError(Exception):
    """Configuration error."""

    pass


class ScribeConfig(BaseModel):
    """Root configuration model."""

    model: ModelConfig = Field(default_factory=ModelConfig)
    anthropic: ProviderConfig | None = None
    openai: ProviderConfig | None = None
    telegram: TelegramConfig | None = None
    streaming: StreamingConfig = Field(default_factory=StreamingConfig)
    tavily: TavilyConfig = Field(default_factory=TavilyConfig)

    def resolve_api_key(self) -> SecretStr | None:
        """Resolve the API key for the configured model provider."""
        provider_config = getattr(self, self.model.provider)
        if provider_config is None:
            return None
        return provider_config.api_key

    def require_api_key(self) -> SecretStr:
        """Resolve the model API key or raise ConfigError."""
        api_key = self.resolve_api_key()
        if api_key is None:
            env_var = (
                "ANTHROPIC_API_KEY"
                if self.model.provider == "anthropic"
                else "OPENAI_API_KEY"
            )
            raise ConfigError(
                f"No API key for provider '{self.model.provider}'. "
                f"Set {env_var} or [{self.model.provider}].api_key in config"
            )
        return api_key
