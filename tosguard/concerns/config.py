"""Concerns pipeline configuration. Env prefix: TOSGUARD_."""
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tosguard.concerns.errors import ConfigurationError
from tosguard.concerns.segmenter import CHARS_PER_TOKEN, input_budget_chars
from tosguard.llm.settings import LLMSettings
from tosguard.llm.types import DecodingConfig

# Token limits per model: (context window, max output tokens).
MODEL_TOKEN_LIMITS: dict[str, tuple[int, int]] = {
    "gpt-4o-mini": (128_000, 16_384),
    "gpt-4o": (128_000, 16_384),
    "gpt-4.1-mini": (1_047_576, 32_768),
}


class ConcernsSettings(BaseSettings):
    """Settings for segmentation, prompting, retries and failure policy."""

    model_config = SettingsConfigDict(
        env_prefix="TOSGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    mode: Literal["concerns", "summary"] = Field(default="concerns", description="Structured concerns or free-text summaries")
    structured_output: Literal["function", "text"] = Field(
        default="function",
        description="Ask for a report_concerns function call, or for a bare JSON array in text",
    )
    temperature: float = Field(default=0.0, ge=0.0, le=2.0, description="Decoding temperature for concern extraction")
    summary_temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="Decoding temperature in summary mode")

    # Budget: explicit overrides win over MODEL_TOKEN_LIMITS
    context_window_tokens: int | None = Field(default=None, gt=0)
    max_output_tokens: int | None = Field(default=None, gt=0)
    input_budget_chars: int | None = Field(default=None, gt=0, description="Fixed segment size in characters")
    chars_per_token: int = Field(default=CHARS_PER_TOKEN, ge=1)

    # Failure handling
    failure_policy: Literal["abort", "continue"] = Field(
        default="continue",
        description="abort: stop at the first failed segment; continue: return partial result plus failed segments",
    )
    max_extraction_attempts: int = Field(default=3, ge=1, le=10, description="Calls per segment on retryable errors")
    retry_backoff_base_s: float = Field(default=0.5, ge=0, description="Base delay for exponential backoff")
    retry_backoff_max_s: float = Field(default=8.0, ge=0, description="Max backoff delay")
    output_retry_attempts: int = Field(
        default=0,
        ge=0,
        le=3,
        description="Fresh extraction calls for a segment whose output could not be recovered",
    )


def _token_limits(llm: LLMSettings, settings: ConcernsSettings) -> tuple[int | None, int | None]:
    base = llm.model.split("/")[-1]
    known = MODEL_TOKEN_LIMITS.get(llm.model) or MODEL_TOKEN_LIMITS.get(base)
    context = settings.context_window_tokens or (known[0] if known else None)
    output = settings.max_output_tokens or (known[1] if known else None)
    return context, output


def resolve_budget(llm: LLMSettings, settings: ConcernsSettings) -> tuple[int, int]:
    """Return (input_budget_chars, max_output_tokens). Raises ConfigurationError when underdetermined."""
    context, output = _token_limits(llm, settings)
    if output is None:
        raise ConfigurationError(
            f"Unknown token limits for model {llm.model!r}; set TOSGUARD_MAX_OUTPUT_TOKENS "
            "and TOSGUARD_CONTEXT_WINDOW_TOKENS (or TOSGUARD_INPUT_BUDGET_CHARS)"
        )
    if settings.input_budget_chars is not None:
        return settings.input_budget_chars, output
    if context is None:
        raise ConfigurationError(
            f"Unknown context window for model {llm.model!r}; set TOSGUARD_CONTEXT_WINDOW_TOKENS "
            "or TOSGUARD_INPUT_BUDGET_CHARS"
        )
    try:
        return input_budget_chars(context, output, settings.chars_per_token), output
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


def validate_llm_settings(llm: LLMSettings) -> None:
    if not (llm.model or "").strip():
        raise ConfigurationError("LLM model is not set (LLM_MODEL)")
    if llm.requires_api_key and not llm.api_key_value():
        raise ConfigurationError("API key is not set (LLM_API_KEY or OPENAI_API_KEY)")


def decoding_config(llm: LLMSettings, settings: ConcernsSettings, max_output_tokens: int) -> DecodingConfig:
    temperature = settings.summary_temperature if settings.mode == "summary" else settings.temperature
    return DecodingConfig(
        model=llm.model,
        max_output_tokens=max_output_tokens,
        temperature=temperature,
        timeout_s=llm.default_timeout_s,
    )
