"""Error taxonomy for the concerns pipeline. Every terminal error names the failing segment."""
from __future__ import annotations

from typing import TYPE_CHECKING

from tosguard.llm.errors import LLMError

if TYPE_CHECKING:
    from tosguard.concerns.schema import PipelineResult


class ConcernsError(Exception):
    """Base for pipeline errors. code is stable for callers and logs."""

    def __init__(self, message: str, *, code: str = "CONCERNS_ERROR") -> None:
        super().__init__(message)
        self.code = code


class ConfigurationError(ConcernsError):
    """Credential or model parameter missing. Raised before any segment is processed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="CONFIGURATION_ERROR")


class EmptyDocumentError(ConcernsError):
    """Document is empty after trimming whitespace."""

    def __init__(self, message: str = "No Terms of Use content provided") -> None:
        super().__init__(message, code="EMPTY_DOCUMENT")


class ExtractionFailure(ConcernsError):
    """The completion call for one segment failed."""

    retryable = False

    def __init__(self, ordinal: int, cause: LLMError) -> None:
        super().__init__(
            f"Extraction failed for segment {ordinal + 1}: {cause}",
            code="EXTRACTION_FAILED",
        )
        self.ordinal = ordinal
        self.cause = cause

    @classmethod
    def from_llm_error(cls, ordinal: int, cause: LLMError) -> "ExtractionFailure":
        if cause.retryable:
            return RetryableExtractionFailure(ordinal, cause)
        return FatalExtractionFailure(ordinal, cause)


class RetryableExtractionFailure(ExtractionFailure):
    """Timeout, rate limit or 5xx: worth another call."""

    retryable = True


class FatalExtractionFailure(ExtractionFailure):
    """Auth, bad request or refusal: retrying will not help."""


class UnrecoverableOutput(ConcernsError):
    """Model output could not be coerced into the concern structure after repair."""

    def __init__(self, ordinal: int, raw_text: str, reason: str) -> None:
        super().__init__(
            f"Unrecoverable model output for segment {ordinal + 1}: {reason}",
            code="UNRECOVERABLE_OUTPUT",
        )
        self.ordinal = ordinal
        self.raw_text = raw_text
        self.reason = reason


class PipelineAborted(ConcernsError):
    """Run stopped early (abort policy or cancellation). result holds what was gathered."""

    def __init__(
        self,
        message: str,
        *,
        result: "PipelineResult",
        cause: ConcernsError | None = None,
    ) -> None:
        super().__init__(message, code="PIPELINE_ABORTED")
        self.result = result
        self.cause = cause
