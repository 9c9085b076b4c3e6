"""Redaction and structured log records."""
import logging

from tosguard.llm.telemetry import log_llm_call, redact_preview


def test_redact_preview_masks_secrets_and_truncates() -> None:
    text = "key sk-abcdefghijklmnopqrstuvwx mail me@example.com " + "z" * 300
    out = redact_preview(text)
    assert "sk-abc" not in out
    assert "[REDACTED]" in out
    assert "[EMAIL]" in out
    assert out.endswith("...")
    assert redact_preview("") == ""


def test_log_llm_call_has_structured_fields(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="tosguard.llm.telemetry"):
        log_llm_call(provider="openai", model="gpt-4o-mini", latency_ms=12, status="FAILED", segment=2, error_code="TIMEOUT")
    record = caplog.records[-1]
    assert record.getMessage() == "llm_call"
    assert record.segment == 2
    assert record.error_code == "TIMEOUT"
