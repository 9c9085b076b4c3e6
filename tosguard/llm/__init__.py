"""
LLM module: single typed async interface for completion calls.
Public API: LiteLLMClient, LLMClientPort, LLMRequest, LLMResponse, DecodingConfig, LLMSettings.
Other modules must not call LiteLLM directly.
"""
from tosguard.llm.client_litellm import LiteLLMClient
from tosguard.llm.errors import (
    LLMAuthError,
    LLMBadRequest,
    LLMContentRefused,
    LLMError,
    LLMRateLimited,
    LLMTimeout,
    LLMUnavailable,
)
from tosguard.llm.ports import LLMClientPort
from tosguard.llm.settings import LLMSettings
from tosguard.llm.types import (
    DecodingConfig,
    LLMMessage,
    LLMProvider,
    LLMRequest,
    LLMResponse,
    LLMUsage,
)

__all__ = [
    "LiteLLMClient",
    "LLMClientPort",
    "LLMSettings",
    "LLMRequest",
    "LLMResponse",
    "LLMMessage",
    "LLMProvider",
    "LLMUsage",
    "DecodingConfig",
    "LLMError",
    "LLMTimeout",
    "LLMRateLimited",
    "LLMBadRequest",
    "LLMAuthError",
    "LLMContentRefused",
    "LLMUnavailable",
]
