"""
Aggregator: segment -> prompt -> extract -> recover, one segment at a time in document order.

Each segment yields a SegmentOk or SegmentErr; outcomes are folded into a PipelineResult and
the failure policy is applied once at the end:
  - continue (default): return the partial result; failures list the failed segment ordinals
  - abort: stop at the first failed segment and raise PipelineAborted with the partial result
The same policy applies to ExtractionFailure and UnrecoverableOutput.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Union

from tosguard.concerns.config import (
    ConcernsSettings,
    decoding_config,
    resolve_budget,
    validate_llm_settings,
)
from tosguard.concerns.errors import (
    EmptyDocumentError,
    ExtractionFailure,
    PipelineAborted,
    UnrecoverableOutput,
)
from tosguard.concerns.extract import extract
from tosguard.concerns.prompt import build_extraction_prompt, build_summary_prompt
from tosguard.concerns.recover import recover
from tosguard.concerns.schema import (
    ConcernBatch,
    PipelineResult,
    Segment,
    SegmentFailure,
    SegmentSummary,
)
from tosguard.concerns.segmenter import segment_document
from tosguard.llm.client_litellm import LiteLLMClient
from tosguard.llm.ports import LLMClientPort
from tosguard.llm.settings import LLMSettings
from tosguard.llm.telemetry import log_segment_outcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SegmentOk:
    ordinal: int
    value: Union[ConcernBatch, SegmentSummary]
    attempts: int


@dataclass(frozen=True)
class SegmentErr:
    ordinal: int
    error: Union[ExtractionFailure, UnrecoverableOutput]
    attempts: int
    cancelled: bool = False


SegmentOutcome = Union[SegmentOk, SegmentErr]


def fold_outcomes(
    outcomes: list[SegmentOutcome],
    total_segments: int,
    *,
    mode: str = "concerns",
    skipped: list[int] | None = None,
) -> PipelineResult:
    """Accumulate successes and failures separately, preserving ordinal order."""
    result = PipelineResult(total_segments=total_segments, mode=mode, skipped=list(skipped or []))
    for outcome in sorted(outcomes, key=lambda o: o.ordinal):
        if isinstance(outcome, SegmentErr):
            err = outcome.error
            result.failures.append(
                SegmentFailure(
                    ordinal=outcome.ordinal,
                    code=err.code,
                    message=str(err),
                    attempts=outcome.attempts,
                    raw_text=err.raw_text if isinstance(err, UnrecoverableOutput) else None,
                )
            )
        elif isinstance(outcome.value, SegmentSummary):
            result.summaries.append(outcome.value)
        else:
            result.batches.append(outcome.value)
    return result


class ConcernPipeline:
    """Find concerning clauses in a document of any length. Client is injected or built from settings."""

    def __init__(
        self,
        llm_settings: LLMSettings | None = None,
        settings: ConcernsSettings | None = None,
        *,
        client: LLMClientPort | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._llm_settings = llm_settings or LLMSettings()
        self._settings = settings or ConcernsSettings()
        if client is None:
            validate_llm_settings(self._llm_settings)
            client = LiteLLMClient(
                api_key=self._llm_settings.api_key_value(),
                api_base=self._llm_settings.api_base,
                default_timeout_s=self._llm_settings.default_timeout_s,
                drop_params=self._llm_settings.drop_unsupported_params,
            )
        self._client = client
        self._budget_chars, max_output_tokens = resolve_budget(self._llm_settings, self._settings)
        self._decoding = decoding_config(self._llm_settings, self._settings, max_output_tokens)
        self._sleep = sleep

    @property
    def budget_chars(self) -> int:
        return self._budget_chars

    def segments(self, document: str) -> list[Segment]:
        return segment_document(document, self._budget_chars)

    async def run(self, document: str, *, cancel_event: asyncio.Event | None = None) -> PipelineResult:
        """
        Process every segment in ascending order. Returns the result under the continue policy;
        raises PipelineAborted under the abort policy or when cancel_event is set before a segment
        or a retry. A segment interrupted mid-retry is reported as skipped, not failed.
        """
        if not document or not document.strip():
            raise EmptyDocumentError()
        segments = self.segments(document)
        total = len(segments)
        if total == 1:
            logger.info("Processing Terms of Use in one API call")
        else:
            logger.info("Splitting Terms of Use into %d segments for processing", total)

        outcomes: list[SegmentOutcome] = []
        skipped: list[int] = []
        cancelled = False
        for seg in segments:
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                skipped = [s.index for s in segments[seg.index :]]
                break
            logger.info("Processing segment %d of %d", seg.index + 1, total)
            outcome = await self._process_segment(seg, total, cancel_event)
            if isinstance(outcome, SegmentErr) and outcome.cancelled:
                cancelled = True
                skipped = [s.index for s in segments[seg.index :]]
                break
            outcomes.append(outcome)
            if isinstance(outcome, SegmentErr) and self._settings.failure_policy == "abort":
                skipped = [s.index for s in segments[seg.index + 1 :]]
                break

        result = fold_outcomes(outcomes, total, mode=self._settings.mode, skipped=skipped)
        return self._apply_policy(result, outcomes, cancelled)

    def _apply_policy(
        self,
        result: PipelineResult,
        outcomes: list[SegmentOutcome],
        cancelled: bool,
    ) -> PipelineResult:
        errors = [o.error for o in outcomes if isinstance(o, SegmentErr)]
        done = result.total_segments - len(result.skipped)
        if cancelled:
            raise PipelineAborted(
                f"Run cancelled after {done} of {result.total_segments} segments",
                result=result,
                cause=errors[0] if errors else None,
            )
        if errors and self._settings.failure_policy == "abort":
            first = errors[0]
            raise PipelineAborted(
                f"Aborted at segment {first.ordinal + 1} of {result.total_segments}: {first}",
                result=result,
                cause=first,
            )
        if errors:
            logger.warning(
                "Returning partial result: segments %s of %d failed",
                ", ".join(str(e.ordinal + 1) for e in errors),
                result.total_segments,
            )
        return result

    async def _process_segment(
        self,
        segment: Segment,
        total: int,
        cancel_event: asyncio.Event | None,
    ) -> SegmentOutcome:
        summary_mode = self._settings.mode == "summary"
        use_function = not summary_mode and self._settings.structured_output == "function"
        if summary_mode:
            prompt = build_summary_prompt(segment, total)
        else:
            prompt = build_extraction_prompt(segment, total, structured_output=self._settings.structured_output)

        attempts = 0
        extraction_failures = 0
        output_failures = 0
        last: Union[ExtractionFailure, UnrecoverableOutput]
        while True:
            attempts += 1
            try:
                resp = await extract(
                    self._client,
                    prompt,
                    self._decoding,
                    ordinal=segment.index,
                    use_function=use_function,
                )
                if summary_mode:
                    text = resp.text.strip()
                    if not text:
                        raise UnrecoverableOutput(segment.index, resp.text, "empty summary")
                    value: Union[ConcernBatch, SegmentSummary] = SegmentSummary(ordinal=segment.index, text=text)
                    count = 0
                else:
                    value = recover(resp, segment.index)
                    count = len(value.concerns)
                log_segment_outcome(
                    segment=segment.index,
                    total_segments=total,
                    status="SUCCEEDED",
                    attempts=attempts,
                    concern_count=count,
                )
                return SegmentOk(segment.index, value, attempts)
            except ExtractionFailure as e:
                extraction_failures += 1
                last = e
                retry = e.retryable and extraction_failures < self._settings.max_extraction_attempts
                if retry:
                    delay = min(
                        self._settings.retry_backoff_base_s * (2 ** (extraction_failures - 1)),
                        self._settings.retry_backoff_max_s,
                    )
                    logger.info(
                        "Retrying segment %d in %.1fs after %s (attempt %d of %d)",
                        segment.index + 1,
                        delay,
                        e.cause.code,
                        extraction_failures + 1,
                        self._settings.max_extraction_attempts,
                    )
                    await self._sleep(delay)
            except UnrecoverableOutput as e:
                output_failures += 1
                last = e
                retry = output_failures <= self._settings.output_retry_attempts
                if retry:
                    logger.info("Requesting fresh output for segment %d", segment.index + 1)

            if retry and cancel_event is not None and cancel_event.is_set():
                log_segment_outcome(
                    segment=segment.index,
                    total_segments=total,
                    status="CANCELLED",
                    attempts=attempts,
                    error_code=last.code,
                )
                return SegmentErr(segment.index, last, attempts, cancelled=True)
            if not retry:
                log_segment_outcome(
                    segment=segment.index,
                    total_segments=total,
                    status="FAILED",
                    attempts=attempts,
                    error_code=last.code,
                )
                return SegmentErr(segment.index, last, attempts)
