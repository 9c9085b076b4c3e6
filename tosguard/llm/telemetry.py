"""Observability: redaction, structured logging, metric hooks. No ad hoc logs in client/pipeline."""
from __future__ import annotations

import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

# Redaction: patterns to mask (never log raw)
_SECRET_PATTERNS = [
    re.compile(r"\b(?:sk-[a-zA-Z0-9_-]{20,})\b", re.IGNORECASE),  # OpenAI-style
    re.compile(r"\b(?:AIza[a-zA-Z0-9_-]{35})\b"),  # Google API key style
    re.compile(r"\bBearer\s+[a-zA-Z0-9_.-]+\b", re.IGNORECASE),
]
_PII_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")  # email
_PREVIEW_MAX_CHARS = 200


def redact_preview(text: str, max_chars: int = _PREVIEW_MAX_CHARS) -> str:
    """Redact secrets and PII, then truncate. Use for raw model output in logs."""
    if not text:
        return ""
    out = text
    for pat in _SECRET_PATTERNS:
        out = pat.sub("[REDACTED]", out)
    out = _PII_PATTERN.sub("[EMAIL]", out)
    if len(out) > max_chars:
        out = out[:max_chars] + "..."
    return out


def log_llm_call(
    *,
    provider: str,
    model: str,
    latency_ms: int,
    status: str,
    segment: int | None = None,
    error_code: str | None = None,
) -> None:
    """Emit structured log for one LLM call. Never log prompt text or API keys."""
    extra: dict[str, Any] = {
        "provider": provider,
        "model": model,
        "latency_ms": latency_ms,
        "status": status,
    }
    if segment is not None:
        extra["segment"] = segment
    if error_code is not None:
        extra["error_code"] = error_code
    logger.info("llm_call", extra=extra)


def log_segment_outcome(
    *,
    segment: int,
    total_segments: int,
    status: str,
    attempts: int,
    concern_count: int = 0,
    error_code: str | None = None,
) -> None:
    """One record per processed segment."""
    extra: dict[str, Any] = {
        "segment": segment,
        "total_segments": total_segments,
        "status": status,
        "attempts": attempts,
        "concern_count": concern_count,
    }
    if error_code is not None:
        extra["error_code"] = error_code
    logger.info("segment_outcome", extra=extra)


def emit_latency_metric(provider: str, model: str, latency_ms: float) -> None:
    logger.debug("metric llm_latency_ms %s %s %s", provider, model, latency_ms)


def emit_tokens_metric(provider: str, model: str, kind: str, count: int) -> None:
    logger.debug("metric llm_tokens %s %s %s %s", provider, model, kind, count)


def emit_error_metric(provider: str, code: str) -> None:
    logger.debug("metric llm_errors %s %s", provider, code)
