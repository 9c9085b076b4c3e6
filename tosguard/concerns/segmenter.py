"""Split a document into contiguous fixed-size character windows that fit the model's input budget."""
from __future__ import annotations

import logging
import math

from tosguard.concerns.schema import Segment

logger = logging.getLogger(__name__)

# Rough heuristic used for budgeting: one token is about four characters of English text.
CHARS_PER_TOKEN = 4


def input_budget_chars(
    context_window_tokens: int,
    max_output_tokens: int,
    chars_per_token: int = CHARS_PER_TOKEN,
) -> int:
    """Characters that fit in the context window after reserving room for the output."""
    max_input_tokens = context_window_tokens - max_output_tokens
    if max_input_tokens <= 0:
        raise ValueError(
            f"max_output_tokens={max_output_tokens} leaves no input room in a "
            f"{context_window_tokens}-token context window"
        )
    return max_input_tokens * chars_per_token


def segment_document(document: str, budget_chars: int) -> list[Segment]:
    """
    Partition document into ceil(len/budget) windows [i*budget, min((i+1)*budget, len)).
    Windows never overlap and ignore sentence boundaries; a document that fits is one segment.
    An empty document yields no segments.
    """
    if budget_chars <= 0:
        raise ValueError(f"budget_chars must be positive, got {budget_chars}")
    length = len(document)
    if length == 0:
        return []
    if length <= budget_chars:
        return [Segment(index=0, start_offset=0, end_offset=length, text=document)]

    count = math.ceil(length / budget_chars)
    logger.info("Splitting document of %d chars into %d segments of <= %d chars", length, count, budget_chars)
    segments = []
    for i in range(count):
        start = i * budget_chars
        end = min(start + budget_chars, length)
        segments.append(Segment(index=i, start_offset=start, end_offset=end, text=document[start:end]))
    return segments
