"""Typed request/response and decoding models for the LLM module (Pydantic v2)."""
from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class LLMProvider(str, Enum):
    """Providers reachable through LiteLLM."""

    OPENAI = "openai"
    GEMINI = "gemini"
    OLLAMA = "ollama"


def provider_from_model_id(model_id: str) -> LLMProvider:
    """Model ids are LiteLLM-style: "gemini/..." or "ollama/..."; bare names are OpenAI."""
    prefix = (model_id or "").split("/")[0].lower() if "/" in (model_id or "") else ""
    if prefix == "gemini":
        return LLMProvider.GEMINI
    if prefix in ("ollama", "ollama_chat"):
        return LLMProvider.OLLAMA
    return LLMProvider.OPENAI


class LLMMessage(BaseModel):
    """Single message in OpenAI-style format."""

    role: Literal["system", "user", "assistant", "tool"]
    content: str


class DecodingConfig(BaseModel):
    """Fixed decoding parameters for one extraction call."""

    model: str
    max_output_tokens: int = Field(..., ge=1)
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    timeout_s: float | None = Field(default=None, gt=0)


class LLMRequest(BaseModel):
    """Request for a single chat completion."""

    messages: list[LLMMessage]
    temperature: float | None = None
    max_output_tokens: int | None = None
    tools: list[dict[str, Any]] | None = None
    tool_choice: dict[str, Any] | str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)
    timeout_s: float | None = None


class LLMUsage(BaseModel):
    """Token usage reported by the provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


class LLMResponse(BaseModel):
    """Normalized response. tool_arguments holds the first function-call payload, if any."""

    text: str
    tool_arguments: str | None = None
    raw: dict[str, Any] | None = None
    usage: LLMUsage | None = None
    provider: LLMProvider
    model: str
    latency_ms: int
    finish_reason: str | None = None
