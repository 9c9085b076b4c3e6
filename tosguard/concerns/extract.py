"""Extraction client: one completion call per segment, no retries. Failures carry the segment ordinal."""
from __future__ import annotations

import logging

from tosguard.concerns.errors import ExtractionFailure
from tosguard.concerns.prompt import REPORT_CONCERNS_TOOL, REPORT_CONCERNS_TOOL_CHOICE, ExtractionPrompt
from tosguard.llm.errors import LLMError
from tosguard.llm.ports import LLMClientPort
from tosguard.llm.telemetry import log_llm_call
from tosguard.llm.types import DecodingConfig, LLMRequest, LLMResponse, provider_from_model_id

logger = logging.getLogger(__name__)


def build_request(
    prompt: ExtractionPrompt,
    decoding: DecodingConfig,
    *,
    use_function: bool = False,
) -> LLMRequest:
    req = LLMRequest(
        messages=prompt.to_messages(),
        temperature=decoding.temperature,
        max_output_tokens=decoding.max_output_tokens,
        timeout_s=decoding.timeout_s,
    )
    if use_function:
        req.tools = [REPORT_CONCERNS_TOOL]
        req.tool_choice = REPORT_CONCERNS_TOOL_CHOICE
    if prompt.segment_ordinal is not None:
        req.metadata["segment"] = str(prompt.segment_ordinal)
    return req


async def extract(
    client: LLMClientPort,
    prompt: ExtractionPrompt,
    decoding: DecodingConfig,
    *,
    ordinal: int,
    use_function: bool = False,
) -> LLMResponse:
    """Send the rendered messages once. Raises ExtractionFailure (retryable or fatal subclass)."""
    req = build_request(prompt, decoding, use_function=use_function)
    provider = provider_from_model_id(decoding.model).value
    try:
        resp = await client.acompletion(decoding.model, req, timeout_s=decoding.timeout_s)
    except LLMError as e:
        logger.warning("LLM call failed for segment %d: %s (%s)", ordinal + 1, e, e.code)
        log_llm_call(
            provider=provider,
            model=decoding.model,
            latency_ms=0,
            status="FAILED",
            segment=ordinal,
            error_code=e.code,
        )
        raise ExtractionFailure.from_llm_error(ordinal, e) from e
    log_llm_call(
        provider=resp.provider.value,
        model=resp.model,
        latency_ms=resp.latency_ms,
        status="SUCCEEDED",
        segment=ordinal,
    )
    return resp
