"""Data model for the concerns pipeline: segments, concerns, per-segment results, run result."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Segment(BaseModel):
    """Contiguous slice [start_offset, end_offset) of the document."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0)
    start_offset: int = Field(..., ge=0)
    end_offset: int = Field(..., ge=0)
    text: str

    def __len__(self) -> int:
        return self.end_offset - self.start_offset


class Concern(BaseModel):
    """One finding. Wire name of explanation is "concern"; quote is not verified against the source."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    section: str = ""
    quote: str = ""
    explanation: str = Field(
        default="",
        validation_alias=AliasChoices("concern", "explanation"),
        serialization_alias="concern",
    )

    @field_validator("section", "quote", "explanation", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Any:
        # Models emit "section": 4.2 or null; keep the value, only fix the type.
        if v is None:
            return ""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def is_meaningful(self) -> bool:
        return bool(self.explanation.strip())


class ConcernBatch(BaseModel):
    """Concerns recovered from one segment, in model order."""

    model_config = ConfigDict(frozen=True)

    ordinal: int = Field(..., ge=0)
    concerns: tuple[Concern, ...] = ()
    warnings: tuple[str, ...] = ()
    repaired: bool = False


class SegmentSummary(BaseModel):
    """Free-text output for one segment (summary mode)."""

    model_config = ConfigDict(frozen=True)

    ordinal: int = Field(..., ge=0)
    text: str


@dataclass(frozen=True)
class ParseSuccess:
    concerns: tuple[Concern, ...]
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class ParseFailure:
    reason: str


ParseOutcome = Union[ParseSuccess, ParseFailure]


@dataclass(frozen=True)
class SegmentFailure:
    """Terminal failure for one segment, after retries."""

    ordinal: int
    code: str
    message: str
    attempts: int = 1
    raw_text: str | None = None


@dataclass
class PipelineResult:
    """Outcome of one run. Batches and summaries are in ascending ordinal order."""

    total_segments: int
    mode: str = "concerns"
    batches: list[ConcernBatch] = field(default_factory=list)
    summaries: list[SegmentSummary] = field(default_factory=list)
    failures: list[SegmentFailure] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)

    @property
    def concerns(self) -> list[Concern]:
        return [c for batch in self.batches for c in batch.concerns]

    @property
    def failed_ordinals(self) -> list[int]:
        return [f.ordinal for f in self.failures]

    @property
    def is_partial(self) -> bool:
        return bool(self.failures or self.skipped)

    def to_payload(self) -> dict[str, Any]:
        """Caller-facing JSON shape: {"concerns": [...]} plus failure info when partial."""
        payload: dict[str, Any]
        if self.mode == "summary":
            payload = {"summaries": [{"segment": s.ordinal + 1, "text": s.text} for s in self.summaries]}
        else:
            payload = {"concerns": [c.model_dump(by_alias=True) for c in self.concerns]}
        if self.is_partial:
            payload["total_segments"] = self.total_segments
            payload["failed_segments"] = [
                {"segment": f.ordinal + 1, "code": f.code, "message": f.message} for f in self.failures
            ]
            if self.skipped:
                payload["skipped_segments"] = [i + 1 for i in self.skipped]
        return payload
