"""
Concerns pipeline: segment a long Terms of Use text, ask the LLM for concerning clauses per
segment, recover structured output, and aggregate in document order.
Public API: ConcernPipeline, review_terms, ConcernsSettings, and the schema/error types.
"""
from tosguard.concerns.config import ConcernsSettings
from tosguard.concerns.errors import (
    ConcernsError,
    ConfigurationError,
    EmptyDocumentError,
    ExtractionFailure,
    FatalExtractionFailure,
    PipelineAborted,
    RetryableExtractionFailure,
    UnrecoverableOutput,
)
from tosguard.concerns.pipeline import ConcernPipeline
from tosguard.concerns.review import handle_review, review_terms
from tosguard.concerns.schema import (
    Concern,
    ConcernBatch,
    PipelineResult,
    Segment,
    SegmentFailure,
    SegmentSummary,
)

__all__ = [
    "ConcernPipeline",
    "ConcernsSettings",
    "review_terms",
    "handle_review",
    "Concern",
    "ConcernBatch",
    "PipelineResult",
    "Segment",
    "SegmentFailure",
    "SegmentSummary",
    "ConcernsError",
    "ConfigurationError",
    "EmptyDocumentError",
    "ExtractionFailure",
    "RetryableExtractionFailure",
    "FatalExtractionFailure",
    "UnrecoverableOutput",
    "PipelineAborted",
]
