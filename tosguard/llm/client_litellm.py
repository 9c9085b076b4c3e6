"""
LiteLLM client wrapper: normalize request/response, per-call timeout, exception mapping.
One call per acompletion(); retry policy belongs to the caller.
Exception mapping (LiteLLM -> LLMError):
  - APITimeoutError / Timeout -> LLMTimeout
  - RateLimitError -> LLMRateLimited
  - AuthenticationError / PermissionDeniedError -> LLMAuthError
  - ContentPolicyViolationError -> LLMContentRefused
  - BadRequestError / InvalidRequestError / ContextWindowExceededError -> LLMBadRequest
  - APIError / ServiceUnavailableError / APIConnectionError / InternalServerError -> LLMUnavailable
  - unknown -> LLMUnavailable (5xx or timeout-like) or LLMError(UNKNOWN)
"""
from __future__ import annotations

import time
from typing import Any

from litellm import acompletion

from tosguard.llm.errors import (
    LLMAuthError,
    LLMBadRequest,
    LLMContentRefused,
    LLMError,
    LLMRateLimited,
    LLMTimeout,
    LLMUnavailable,
)
from tosguard.llm.telemetry import emit_error_metric, emit_latency_metric, emit_tokens_metric
from tosguard.llm.types import LLMProvider, LLMRequest, LLMResponse, LLMUsage, provider_from_model_id

# Exception mapping uses type(e).__name__ so LiteLLM layout changes are safe.


def _map_exception(e: Exception, provider: LLMProvider) -> LLMError:
    """Map LiteLLM/provider exceptions to LLMError. Uses class name so it works across import paths."""
    if isinstance(e, LLMError):
        return e
    exc_name = type(e).__name__
    if exc_name in ("APITimeoutError", "Timeout"):
        return LLMTimeout(details=exc_name, provider=provider)
    if exc_name == "RateLimitError":
        return LLMRateLimited(details=exc_name, provider=provider)
    if exc_name in ("AuthenticationError", "PermissionDeniedError"):
        return LLMAuthError(details=exc_name, provider=provider)
    if exc_name == "ContentPolicyViolationError":
        return LLMContentRefused(str(e), details=exc_name, provider=provider)
    if exc_name in ("BadRequestError", "InvalidRequestError", "ContextWindowExceededError"):
        return LLMBadRequest(str(e), details=exc_name, provider=provider)
    if exc_name in ("ServiceUnavailableError", "APIConnectionError", "APIError", "InternalServerError"):
        return LLMUnavailable(str(e), details=exc_name, provider=provider)
    status = getattr(e, "status_code", None)
    if status == 429:
        return LLMRateLimited(str(e), details=exc_name, provider=provider)
    if status in (500, 502, 503, 504) or "timeout" in str(e).lower():
        return LLMUnavailable(str(e), details=exc_name, provider=provider)
    return LLMError(
        str(e),
        code="UNKNOWN",
        retryable=False,
        provider=provider,
        details=exc_name,
    )


def _request_to_kwargs(req: LLMRequest, model: str, timeout_s: float) -> dict[str, Any]:
    """Build LiteLLM completion kwargs from LLMRequest."""
    kwargs: dict[str, Any] = {
        "model": model,
        "messages": [m.model_dump() for m in req.messages],
        "timeout": timeout_s,
    }
    if req.temperature is not None:
        kwargs["temperature"] = req.temperature
    if req.max_output_tokens is not None:
        kwargs["max_tokens"] = req.max_output_tokens
    if req.tools is not None:
        kwargs["tools"] = req.tools
    if req.tool_choice is not None:
        kwargs["tool_choice"] = req.tool_choice
    if req.metadata:
        kwargs["metadata"] = dict(req.metadata)
    return kwargs


def _first_tool_arguments(msg: Any) -> str | None:
    tool_calls = getattr(msg, "tool_calls", None) or []
    for call in tool_calls:
        fn = getattr(call, "function", None)
        if fn is None and isinstance(call, dict):
            fn = call.get("function")
        args = fn.get("arguments") if isinstance(fn, dict) else getattr(fn, "arguments", None)
        if args is not None:
            return args
    return None


def _response_from_completion(
    raw: Any,
    provider: LLMProvider,
    model: str,
    latency_ms: int,
) -> LLMResponse:
    """Build LLMResponse from LiteLLM response object."""
    text = ""
    tool_arguments = None
    usage = None
    finish_reason = None
    if getattr(raw, "choices", None):
        c0 = raw.choices[0]
        msg = getattr(c0, "message", None)
        if msg is not None:
            text = getattr(msg, "content", None) or ""
            tool_arguments = _first_tool_arguments(msg)
        else:
            text = getattr(c0, "text", None) or ""
        finish_reason = getattr(c0, "finish_reason", None)
    if getattr(raw, "usage", None):
        u = raw.usage
        usage = LLMUsage(
            input_tokens=getattr(u, "prompt_tokens", None) or 0,
            output_tokens=getattr(u, "completion_tokens", None) or 0,
            total_tokens=getattr(u, "total_tokens", None) or 0,
        )
    raw_dict: dict[str, Any] = {}
    if hasattr(raw, "model_dump"):
        raw_dict = raw.model_dump()
    return LLMResponse(
        text=text,
        tool_arguments=tool_arguments,
        raw=raw_dict,
        usage=usage,
        provider=provider,
        model=model,
        latency_ms=latency_ms,
        finish_reason=finish_reason,
    )


class LiteLLMClient:
    """Async LiteLLM wrapper: timeout, request/response normalization, error mapping."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        api_base: str | None = None,
        default_timeout_s: float = 60.0,
        drop_params: bool = True,
    ) -> None:
        self._api_key = api_key
        self._api_base = api_base
        self._default_timeout_s = default_timeout_s
        self._drop_params = drop_params

    async def acompletion(
        self,
        model: str,
        req: LLMRequest,
        *,
        timeout_s: float | None = None,
    ) -> LLMResponse:
        """Execute one completion. Raises LLMError on failure."""
        provider = provider_from_model_id(model)
        timeout = timeout_s or req.timeout_s or self._default_timeout_s
        kwargs = _request_to_kwargs(req, model, timeout)
        if self._drop_params:
            kwargs["drop_params"] = True
        if self._api_base is not None:
            kwargs["api_base"] = self._api_base
        if self._api_key is not None:
            kwargs["api_key"] = self._api_key

        t0 = time.perf_counter()
        try:
            raw = await acompletion(**kwargs)
        except LLMError as e:
            emit_error_metric(provider.value, e.code)
            raise
        except Exception as e:  # noqa: BLE001
            err = _map_exception(e, provider)
            emit_error_metric(provider.value, err.code)
            raise err from e
        latency_ms = int((time.perf_counter() - t0) * 1000)
        resp = _response_from_completion(raw, provider, model, latency_ms)
        emit_latency_metric(provider.value, model, float(latency_ms))
        if resp.usage:
            emit_tokens_metric(provider.value, model, "in", resp.usage.input_tokens)
            emit_tokens_metric(provider.value, model, "out", resp.usage.output_tokens)
        return resp
