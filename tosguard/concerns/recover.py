"""
Recover a ConcernBatch from raw model output.

Order, terminal on first success:
  1. direct parse of the function-call payload (or the whole text)
  2. parse of the outermost [...] substring, then the outermost {...}
  3. one parse of each substring after the repair chain
  4. UnrecoverableOutput

The repair chain only touches delimiters, quoting and punctuation. It is the identity on
valid JSON and idempotent, so a well-formed response parses the same with or without it.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from tosguard.concerns.errors import UnrecoverableOutput
from tosguard.concerns.schema import Concern, ConcernBatch, ParseFailure, ParseOutcome, ParseSuccess
from tosguard.llm.telemetry import redact_preview
from tosguard.llm.types import LLMResponse

logger = logging.getLogger(__name__)

_SMART_QUOTES = "“”„‟‘’‚‛"
_VALUE_END = ",:}]"
_JSON_WHITESPACE = " \t\r\n"
_CONTROL_OUTSIDE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")
_CONTROL_INSIDE = re.compile(r"[\x00-\x1f]")
_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}
_TRAILING_COMMAS = re.compile(r"(?:,\s*)+(?=[}\]])")
_OPENERS = {"[": "]", "{": "}"}


def _ends_value(text: str, i: int) -> bool:
    """True if the quote at i is followed (after whitespace) by , : } ] or end of text."""
    j = i + 1
    while j < len(text) and text[j] in _JSON_WHITESPACE:
        j += 1
    return j >= len(text) or text[j] in _VALUE_END


def _split_strings(text: str) -> list[tuple[str, bool]]:
    """Split into (span, is_string) runs. String spans keep their quotes; escapes stay inside."""
    spans: list[tuple[str, bool]] = []
    buf: list[str] = []
    in_string = False
    i = 0
    while i < len(text):
        ch = text[i]
        if in_string and ch == "\\" and i + 1 < len(text):
            buf.append(text[i : i + 2])
            i += 2
            continue
        if ch == '"':
            if in_string:
                buf.append(ch)
                spans.append(("".join(buf), True))
                buf = []
            else:
                if buf:
                    spans.append(("".join(buf), False))
                buf = [ch]
            in_string = not in_string
        else:
            buf.append(ch)
        i += 1
    if buf:
        spans.append(("".join(buf), in_string))
    return spans


def normalize_quotes(text: str) -> str:
    """
    Smart quotes used as string delimiters become plain double quotes. Inside a string, only a
    quote followed by , : } ] (or the end) closes it; other bare double quotes get escaped.
    Smart quotes inside plain-quoted strings are content and are left alone.
    """
    out: list[str] = []
    delim: str | None = None  # None outside a string, '"' for plain, "smart" for smart-delimited
    i = 0
    while i < len(text):
        ch = text[i]
        if delim is None:
            if ch == '"':
                delim = '"'
                out.append('"')
            elif ch in _SMART_QUOTES:
                delim = "smart"
                out.append('"')
            else:
                out.append(ch)
        elif ch == "\\" and i + 1 < len(text):
            out.append(text[i : i + 2])
            i += 2
            continue
        elif ch == '"' or (delim == "smart" and ch in _SMART_QUOTES):
            if _ends_value(text, i):
                out.append('"')
                delim = None
            elif ch == '"':
                out.append('\\"')
            else:
                out.append(ch)
        else:
            out.append(ch)
        i += 1
    return "".join(out)


def _clean_string_span(span: str) -> str:
    # A backslash before a control char is consumed with it; only the control char is escaped or dropped.
    out: list[str] = []
    i = 0
    while i < len(span):
        ch = span[i]
        if ch == "\\" and i + 1 < len(span):
            nxt = span[i + 1]
            out.append(_CONTROL_ESCAPES.get(nxt, "") if _CONTROL_INSIDE.match(nxt) else span[i : i + 2])
            i += 2
            continue
        out.append(_CONTROL_ESCAPES.get(ch, "") if _CONTROL_INSIDE.match(ch) else ch)
        i += 1
    return "".join(out)


def strip_control_chars(text: str) -> str:
    """Drop control characters; inside strings, newlines and tabs are escaped instead of dropped."""
    out: list[str] = []
    for span, is_string in _split_strings(text):
        if is_string:
            out.append(_clean_string_span(span))
        else:
            out.append(_CONTROL_OUTSIDE.sub("", span))
    return "".join(out)


def remove_trailing_commas(text: str) -> str:
    """Remove commas (and runs of commas) directly before a closing bracket or brace."""
    return "".join(
        span if is_string else _TRAILING_COMMAS.sub("", span)
        for span, is_string in _split_strings(text)
    )


REPAIR_CHAIN = (normalize_quotes, strip_control_chars, remove_trailing_commas)


def repair_json(text: str) -> str:
    """Apply the repair chain in fixed order."""
    for step in REPAIR_CHAIN:
        text = step(text)
    return text


def _outermost(text: str, opener: str) -> str | None:
    start = text.find(opener)
    end = text.rfind(_OPENERS[opener])
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def structured_candidates(text: str) -> list[str]:
    """Outermost [...] first, then outermost {...}. Surrounding prose may itself mention braces."""
    candidates: list[str] = []
    for opener in _OPENERS:
        found = _outermost(text, opener)
        if found is not None and found not in candidates:
            candidates.append(found)
    return candidates


def _concerns_from_payload(data: Any) -> ParseOutcome:
    if isinstance(data, dict):
        if isinstance(data.get("concerns"), list):
            items = data["concerns"]
        elif any(k in data for k in ("concern", "explanation")):
            items = [data]
        else:
            return ParseFailure("JSON object has no 'concerns' list")
    elif isinstance(data, list):
        items = data
    else:
        return ParseFailure(f"expected a JSON array of concerns, got {type(data).__name__}")

    concerns: list[Concern] = []
    warnings: list[str] = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            return ParseFailure(f"item {i} is not an object")
        try:
            concern = Concern.model_validate(item)
        except ValidationError as e:
            return ParseFailure(f"item {i} does not match the concern shape: {e.errors()[0]['msg']}")
        if not concern.is_meaningful:
            warnings.append(f"Dropped item {i}: empty concern explanation")
            continue
        concerns.append(concern)
    return ParseSuccess(concerns=tuple(concerns), warnings=tuple(warnings))


def parse_concerns(text: str) -> ParseOutcome:
    """Parse text as the concern contract. Never raises."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        return ParseFailure(f"invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})")
    return _concerns_from_payload(data)


def _batch(ordinal: int, outcome: ParseSuccess, *, repaired: bool = False) -> ConcernBatch:
    for w in outcome.warnings:
        logger.warning("Segment %d: %s", ordinal + 1, w)
    return ConcernBatch(
        ordinal=ordinal,
        concerns=outcome.concerns,
        warnings=outcome.warnings,
        repaired=repaired,
    )


def recover(response: LLMResponse | str, ordinal: int) -> ConcernBatch:
    """Turn raw output into a ConcernBatch or raise UnrecoverableOutput. An empty array is a valid result."""
    if isinstance(response, LLMResponse):
        raw = response.tool_arguments if response.tool_arguments is not None else response.text
    else:
        raw = response
    raw = raw or ""

    direct = parse_concerns(raw.strip())
    if isinstance(direct, ParseSuccess):
        return _batch(ordinal, direct)

    candidates = structured_candidates(raw)
    if not candidates:
        logger.error("No JSON array found in model output for segment %d: %s", ordinal + 1, redact_preview(raw))
        raise UnrecoverableOutput(ordinal, raw, "no JSON array or object found in model output")

    for extracted in candidates:
        outcome = direct if extracted == raw.strip() else parse_concerns(extracted)
        if isinstance(outcome, ParseSuccess):
            return _batch(ordinal, outcome)
        logger.info("Parse failed for segment %d (%s)", ordinal + 1, outcome.reason)

    failures: list[ParseFailure] = []
    for extracted in candidates:
        repaired = parse_concerns(repair_json(extracted))
        if isinstance(repaired, ParseSuccess):
            logger.info("Repaired model output for segment %d", ordinal + 1)
            return _batch(ordinal, repaired, repaired=True)
        failures.append(repaired)

    reason = failures[0].reason
    logger.error(
        "Failed to parse and repair model output for segment %d: %s; raw=%s",
        ordinal + 1,
        reason,
        redact_preview(raw),
    )
    raise UnrecoverableOutput(ordinal, raw, reason)
