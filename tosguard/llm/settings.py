"""LLM module configuration. Env prefix: LLM_. API key: LLM_API_KEY (or OPENAI_API_KEY)."""
from __future__ import annotations

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from tosguard.llm.types import LLMProvider, provider_from_model_id


class LLMSettings(BaseSettings):
    """Settings for the completion client. All overridable via LLM_* env vars."""

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    model: str = Field(default="gpt-4o-mini", description="LiteLLM model id (bare name = OpenAI)")
    api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("LLM_API_KEY", "OPENAI_API_KEY"),
        description="Provider API key",
    )
    api_base: str | None = Field(default=None, description="Override provider base URL")
    default_timeout_s: float = Field(default=60.0, gt=0, description="Per-call timeout")
    drop_unsupported_params: bool = Field(
        default=True,
        description="Drop OpenAI params not supported by provider (multi-provider safety)",
    )

    @property
    def provider(self) -> LLMProvider:
        return provider_from_model_id(self.model)

    @property
    def requires_api_key(self) -> bool:
        """Local models (Ollama) run without a key."""
        return self.provider != LLMProvider.OLLAMA

    def api_key_value(self) -> str | None:
        return self.api_key.get_secret_value() if self.api_key else None
