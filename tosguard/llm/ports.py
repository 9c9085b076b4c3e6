"""Port interface for the LLM module. The concerns pipeline depends on this, not on LiteLLM."""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from tosguard.llm.types import LLMRequest, LLMResponse


@runtime_checkable
class LLMClientPort(Protocol):
    """Provider-agnostic completion. One blocking call, no retries."""

    async def acompletion(
        self,
        model: str,
        req: LLMRequest,
        *,
        timeout_s: float | None = None,
    ) -> LLMResponse:
        """Execute one completion for the given model. Raises LLMError on failure."""
        ...
