"""Caller-facing boundary: raw terms text in, JSON-ready payload (or error payload) out."""
from __future__ import annotations

import logging
from typing import Any

from tosguard.concerns.errors import (
    ConcernsError,
    ConfigurationError,
    EmptyDocumentError,
    PipelineAborted,
)
from tosguard.concerns.pipeline import ConcernPipeline

logger = logging.getLogger(__name__)


async def review_terms(terms_content: str, *, pipeline: ConcernPipeline | None = None) -> dict[str, Any]:
    """Run the pipeline and return {"concerns": [...]} (plus failed segments when partial)."""
    if not terms_content or not terms_content.strip():
        raise EmptyDocumentError()
    pipeline = pipeline or ConcernPipeline()
    result = await pipeline.run(terms_content)
    return result.to_payload()


async def handle_review(body: dict[str, Any], *, pipeline: ConcernPipeline | None = None) -> tuple[int, dict[str, Any]]:
    """
    Transport-agnostic handler for {"termsContent": "..."}. Returns (status, payload):
    200 on success (possibly partial), 400 on blank input, 500 on configuration or run failure.
    """
    terms = body.get("termsContent") if isinstance(body, dict) else None
    if not isinstance(terms, str) or not terms.strip():
        logger.error("No Terms of Use content provided")
        return 400, {"error": EmptyDocumentError().args[0]}
    try:
        return 200, await review_terms(terms, pipeline=pipeline)
    except PipelineAborted as e:
        logger.error("Error processing Terms of Use: %s", e)
        payload = e.result.to_payload()
        payload["error"] = str(e)
        return 500, payload
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return 500, {"error": str(e)}
    except ConcernsError as e:
        logger.error("Error processing Terms of Use: %s", e)
        return 500, {"error": str(e) or "Failed to summarize the Terms of Use"}
